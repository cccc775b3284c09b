"""
Amendment Parser - amendment notes embedded in Swedish statute text
===================================================================

Swedish consolidated statutes record amendments with fixed phrases:

    "...personuppgifter. Lag (2021:1174)."     provision amended by 2021:1174
    "Upphävd genom lag (2019:100)."            repealed
    "Införd genom lag (2020:50)."              inserted
    "Har upphävts genom lag (2019:100)."       repealed

Transitional provisions ("Denna lag träder i kraft ...") list the SFS
numbers they concern.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Mapping, Optional

from ..models.legal import (
    AmendmentPosition,
    AmendmentReference,
    AmendmentType,
    CrossReference,
    CrossRefType,
    Provision,
)

# ── Compiled Regex Patterns ──────────────────────────────────────────

_SUFFIX_RE = re.compile(r"Lag\s*\((\d{4}:\d+)\)\.\s*$")

# (pattern, type) in the order they are reported
_INLINE_PATTERNS: tuple[tuple[re.Pattern, AmendmentType], ...] = (
    (re.compile(r"[Uu]pphävd\s+genom\s+lag\s*\((\d{4}:\d+)\)"), AmendmentType.REPEALED),
    (re.compile(r"[Ii]nförd\s+genom\s+lag\s*\((\d{4}:\d+)\)"), AmendmentType.INTRODUCED),
    (re.compile(r"[Hh]ar\s+upphävts\s+genom\s+lag\s*\((\d{4}:\d+)\)"), AmendmentType.REPEALED),
)

_FORCE_RE = re.compile(r"[Tt]räder\s+i\s+kraft")
_SFS_RE = re.compile(r"(\d{4}:\d+)")
_SFS_EXACT_RE = re.compile(r"^\d{4}:\d+$")
_AMENDING_HEADER_RE = re.compile(r"Ändringar\s+i\s+([^(]+?)\s*\((\d{4}:\d+)\)")
_PRECEDING_SECTION_RE = re.compile(r"(\d+)\s*§")

_EFFECTIVE_DATE_RE = re.compile(
    r"träder\s+i\s+kraft\s+den\s+(\d{1,2})\s+([a-zåäö]+)\s+(\d{4})", re.IGNORECASE
)
_ISO_DATE_RE = re.compile(r"(\d{4})-(\d{2})-(\d{2})")

SWEDISH_MONTHS: tuple[str, ...] = (
    "januari",
    "februari",
    "mars",
    "april",
    "maj",
    "juni",
    "juli",
    "augusti",
    "september",
    "oktober",
    "november",
    "december",
)


@dataclass
class ProvisionAmendments:
    provision_ref: str
    amendments: list[AmendmentReference]


@dataclass
class AmendingSection:
    """One "Ändringar i <lag> (yyyy:nnn)" header inside an amending statute."""

    section_ref: Optional[str]
    target_statute_id: str
    target_statute_name: str


@dataclass
class MetadataAmendments:
    repealed_by_sfs: Optional[str] = None
    repealed_date: Optional[date] = None
    repeal_description: Optional[str] = None
    referenced_sfs: list[str] = field(default_factory=list)


def extract_amendment_references(content: str) -> list[AmendmentReference]:
    """
    Extract amendment notes from one provision's content.

    A trailing "Lag (yyyy:nnn)." is definitive: nothing else is reported.
    Otherwise inline repeal/insert notes are collected, followed by every
    further SFS number when the text is a transitional provision.
    """
    if not content:
        return []

    suffix = _SUFFIX_RE.search(content)
    if suffix:
        return [
            AmendmentReference(
                amended_by_sfs=suffix.group(1),
                amendment_type=AmendmentType.AMENDED,
                position=AmendmentPosition.SUFFIX,
                raw_text=suffix.group(0),
            )
        ]

    amendments: list[AmendmentReference] = []
    for pattern, amendment_type in _INLINE_PATTERNS:
        for match in pattern.finditer(content):
            amendments.append(
                AmendmentReference(
                    amended_by_sfs=match.group(1),
                    amendment_type=amendment_type,
                    position=AmendmentPosition.INLINE,
                    raw_text=match.group(0),
                )
            )

    if _FORCE_RE.search(content):
        seen = {a.amended_by_sfs for a in amendments}
        for match in _SFS_RE.finditer(content):
            sfs_nr = match.group(1)
            if sfs_nr in seen:
                continue
            seen.add(sfs_nr)
            amendments.append(
                AmendmentReference(
                    amended_by_sfs=sfs_nr,
                    amendment_type=AmendmentType.ENTRY_INTO_FORCE,
                    position=AmendmentPosition.TRANSITION,
                    raw_text=match.group(0),
                )
            )

    return amendments


def parse_statute_amendments(provisions: Iterable[Provision]) -> list[ProvisionAmendments]:
    """Amendment notes per provision; provisions without notes are omitted."""
    results = []
    for provision in provisions:
        amendments = extract_amendment_references(provision.content)
        if amendments:
            results.append(ProvisionAmendments(provision.provision_ref, amendments))
    return results


def build_amendment_edges(
    document_id: str, parsed: Iterable[ProvisionAmendments]
) -> list[CrossReference]:
    """Store amendment notes as amended_by edges from the amending statute."""
    edges = []
    for item in parsed:
        for amendment in item.amendments:
            if amendment.amended_by_sfs == document_id:
                continue
            edges.append(
                CrossReference(
                    source_document_id=amendment.amended_by_sfs,
                    target_document_id=document_id,
                    target_provision_ref=item.provision_ref,
                    ref_type=CrossRefType.AMENDED_BY,
                )
            )
    return edges


def parse_amending_statute(text: str) -> list[AmendingSection]:
    """
    Find the statutes an amending statute changes.

        1 § Ändringar i dataskyddslagen (2018:218)

    Only the headers are recognised; the "ska ha följande lydelse" bodies
    are not parsed.
    """
    sections = []
    for match in _AMENDING_HEADER_RE.finditer(text or ""):
        preceding = text[max(0, match.start() - 100) : match.start()]
        section_matches = _PRECEDING_SECTION_RE.findall(preceding)
        sections.append(
            AmendingSection(
                section_ref=f"{section_matches[-1]} §" if section_matches else None,
                target_statute_id=match.group(2),
                target_statute_name=match.group(1).strip(),
            )
        )
    return sections


def extract_metadata_amendments(metadata: Mapping[str, str]) -> MetadataAmendments:
    """
    Read repeal information from a statute's register metadata.

        {"Upphävd": "2018-05-25",
         "Författningen har upphävts genom": "SFS 2018:218"}
    """
    result = MetadataAmendments()

    repeal_date = metadata.get("Upphävd")
    if repeal_date:
        result.repealed_date = _iso_date(repeal_date)

    repealed_by = metadata.get("Författningen har upphävts genom")
    if repealed_by:
        result.repealed_by_sfs = normalize_sfs_number(repealed_by)
        result.repeal_description = repealed_by

    for value in metadata.values():
        for sfs_nr in _SFS_RE.findall(value or ""):
            if sfs_nr not in result.referenced_sfs:
                result.referenced_sfs.append(sfs_nr)

    return result


def is_valid_sfs_number(sfs: str) -> bool:
    return bool(sfs) and _SFS_EXACT_RE.match(sfs) is not None


def normalize_sfs_number(sfs: str) -> Optional[str]:
    """Pull the "yyyy:nnn" out of e.g. "SFS 2018:218 "; None if absent."""
    match = _SFS_RE.search(sfs or "")
    return match.group(1) if match else None


def _iso_date(text: str) -> Optional[date]:
    match = _ISO_DATE_RE.search(text)
    if not match:
        return None
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None


def extract_effective_date(text: str) -> Optional[date]:
    """
    Entry-into-force date of an amendment.

    "Denna lag träder i kraft den 1 juli 2021" -> date(2021, 7, 1).
    Falls back to the first ISO date in the text.
    """
    if not text:
        return None

    match = _EFFECTIVE_DATE_RE.search(text)
    if match:
        month_name = match.group(2).lower()
        if month_name in SWEDISH_MONTHS:
            try:
                return date(
                    int(match.group(3)),
                    SWEDISH_MONTHS.index(month_name) + 1,
                    int(match.group(1)),
                )
            except ValueError:
                return None

    return _iso_date(text)
