"""
Citation Grammar - parse Swedish legal citation strings
=======================================================

Supported formats:
    SFS 2018:218
    SFS 2018:218 3 kap. 5 §      2018:218 3 kap. 5 a §      2018:218 3 kap.
    2018:218 3:5                 2018:218 5 §
    3 kap. 5 § lagen (2018:218)
    Prop. 2017/18:105
    SOU 2023:45
    Ds 2022:10
    NJA 2020 s. 45   HFD 2019 ref. 12   AD 2019 nr 12

The grammar is an ordered list of named sub-grammars; the first one that
matches decides the parse. Failures are returned as an invalid
``ParsedCitation`` carrying a diagnostic, never raised.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Optional

from ..models.legal import DocumentType, ParsedCitation, normalize_section


@dataclass(frozen=True)
class SubGrammar:
    name: str
    type: DocumentType
    pattern: re.Pattern
    build: Callable[[str, re.Match], ParsedCitation]


# Reporter code -> pinpoint marker used when formatting
CASE_LAW_REPORTERS = MappingProxyType(
    {
        "NJA": "s.",
        "HFD": "ref.",
        "AD": "nr",
        "MD": "ref.",
        "MIG": "ref.",
        "RÅ": "ref.",
    }
)

# ── Compiled Regex Patterns ──────────────────────────────────────────

# 3 kap. 5 § lagen (2018:218)
_STATUTE_PROVISION_FIRST_RE = re.compile(
    r"^(?:(\d+)\s*kap\.\s*)?(\d+\s*[a-z]?)\s*§\s+.+\((\d{4}:\d+)\)\s*$", re.IGNORECASE
)

# 2018:218 3:5, optionally followed by a stycke/punkt pinpoint
_STATUTE_SHORT_RE = re.compile(r"^(?:SFS\s+)?(\d{4}:\d+)\s+(\d+):(\d+(?:\s?[a-z])?)(?=\s|$)", re.IGNORECASE)

# SFS 2018:218 [3 kap.] [5 [a] §]
_STATUTE_LONG_RE = re.compile(
    r"^(?:SFS\s+)?(\d{4}:\d+)(?![\d:/])(?!\s+\d+:\d)\s*(?:(\d+)\s*kap\.\s*)?(?:(\d+(?:\s?[a-z])?)\s*§)?",
    re.IGNORECASE,
)

_BILL_RE = re.compile(r"^Prop\.\s*(\d{4}/\d{2}:\d+)", re.IGNORECASE)
_SOU_RE = re.compile(r"^SOU\s+(\d{4}:\d+)", re.IGNORECASE)
_DS_RE = re.compile(r"^Ds\s+(\d{4}:\d+)", re.IGNORECASE)

_CASE_LAW_RE = re.compile(
    r"^(" + "|".join(CASE_LAW_REPORTERS) + r")\s+(\d{4})\s+(?:s\.|ref\.?|nr\.?)\s*(\d+)",
    re.IGNORECASE,
)

_CASE_LAW_PREFIX_RE = re.compile(r"^(?:" + "|".join(CASE_LAW_REPORTERS) + r")\s", re.IGNORECASE)


# ── Builders ────────────────────────────────────────────────────────


def _statute(raw: str, document_id: str, chapter: Optional[str], section: Optional[str]) -> ParsedCitation:
    return ParsedCitation(
        raw=raw,
        type=DocumentType.STATUTE,
        document_id=document_id,
        chapter=chapter,
        section=normalize_section(section) if section else None,
        valid=True,
    )


def _build_provision_first(raw: str, match: re.Match) -> ParsedCitation:
    return _statute(raw, match.group(3), match.group(1), match.group(2))


def _build_statute(raw: str, match: re.Match) -> ParsedCitation:
    return _statute(raw, match.group(1), match.group(2), match.group(3))


def _build_document(doc_type: DocumentType) -> Callable[[str, re.Match], ParsedCitation]:
    def build(raw: str, match: re.Match) -> ParsedCitation:
        return ParsedCitation(raw=raw, type=doc_type, document_id=match.group(1), valid=True)

    return build


def _build_case_law(raw: str, match: re.Match) -> ParsedCitation:
    return ParsedCitation(
        raw=raw,
        type=DocumentType.CASE_LAW,
        document_id=f"{match.group(1).upper()} {match.group(2)}",
        page=match.group(3),
        valid=True,
    )


CITATION_GRAMMARS: tuple[SubGrammar, ...] = (
    SubGrammar("statute_provision_first", DocumentType.STATUTE, _STATUTE_PROVISION_FIRST_RE, _build_provision_first),
    SubGrammar("statute_short", DocumentType.STATUTE, _STATUTE_SHORT_RE, _build_statute),
    SubGrammar("statute_long", DocumentType.STATUTE, _STATUTE_LONG_RE, _build_statute),
    SubGrammar("bill", DocumentType.BILL, _BILL_RE, _build_document(DocumentType.BILL)),
    SubGrammar("sou", DocumentType.SOU, _SOU_RE, _build_document(DocumentType.SOU)),
    SubGrammar("ds", DocumentType.DS, _DS_RE, _build_document(DocumentType.DS)),
    SubGrammar("case_law", DocumentType.CASE_LAW, _CASE_LAW_RE, _build_case_law),
)


def parse_citation(citation: str) -> ParsedCitation:
    """
    Parse a Swedish legal citation string.

    Args:
        citation: Raw citation string

    Returns:
        ParsedCitation; ``valid`` is False with ``error`` set when no
        sub-grammar matches.
    """
    raw = citation or ""
    trimmed = raw.strip()

    if not trimmed:
        return ParsedCitation(raw=raw, type=DocumentType.STATUTE, document_id="", valid=False, error="Empty citation")

    for grammar in CITATION_GRAMMARS:
        match = grammar.pattern.match(trimmed)
        if match:
            return grammar.build(raw, match)

    return ParsedCitation(
        raw=raw,
        type=DocumentType.STATUTE,
        document_id="",
        valid=False,
        error=f'Unrecognized citation format: "{trimmed}"',
    )


def detect_document_type(citation: str) -> Optional[DocumentType]:
    """Guess the document family from the citation prefix without full parsing."""
    trimmed = (citation or "").strip()
    lower = trimmed.lower()
    if lower.startswith("prop."):
        return DocumentType.BILL
    if lower.startswith("sou "):
        return DocumentType.SOU
    if lower.startswith("ds "):
        return DocumentType.DS
    if _CASE_LAW_PREFIX_RE.match(trimmed):
        return DocumentType.CASE_LAW
    if re.match(r"^(?:sfs\s+)?\d{4}:\d+", trimmed, re.IGNORECASE):
        return DocumentType.STATUTE
    if _STATUTE_PROVISION_FIRST_RE.match(trimmed):
        return DocumentType.STATUTE
    return None
