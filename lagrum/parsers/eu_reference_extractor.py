"""
EU Reference Extractor - directives and regulations cited in Swedish law
========================================================================

Locates citations of EU directives/regulations in Swedish legal text,
classifies how the Swedish text relates to the EU act and extracts article
pinpoints from the surrounding context.

Surface forms covered:
    direktiv (EU) 2016/680                      community in parentheses
    direktiv 95/46/EG                            community suffix
    Europaparlamentets och rådets direktiv ...   issuing body prefix
    förordning (EG) nr 765/2008                  community + optional "nr"
    kommissionens genomförandeförordning (EU) 2019/947
    EU:s dataskyddsförordning, GDPR              named acts

Usage:
    from lagrum.parsers.eu_reference_extractor import extract_eu_references

    refs = extract_eu_references("... kompletterar förordning (EU) 2016/679 ...")
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from ..models.legal import (
    EUCommunity,
    EUDocumentType,
    EUReference,
    EUReferenceType,
)
from ..utils.logging import get_logger

logger = get_logger(__name__)

CONTEXT_WINDOW = 100


class EUCitationForm(str, Enum):
    """Which surface grammar produced a match."""

    COMMUNITY_PARENS = "community_parens"
    COMMUNITY_SUFFIX = "community_suffix"
    ISSUING_BODY = "issuing_body"


@dataclass(frozen=True)
class EUSubGrammar:
    name: str
    doc_type: EUDocumentType
    pattern: re.Pattern


@dataclass(frozen=True)
class NamedEUAct:
    name: str
    pattern: re.Pattern
    doc_type: EUDocumentType
    year: int
    number: int
    community: EUCommunity


# ── Sub-grammars (tried in this order) ──────────────────────────────

_ISSUING_BODIES = (
    r"Europaparlamentets och rådets|rådets|kommissionens genomförandeförordning|"
    r"kommissionens delegerade förordning|kommissionens"
)

DIRECTIVE_GRAMMARS: tuple[EUSubGrammar, ...] = (
    EUSubGrammar(
        "directive_community_parens",
        EUDocumentType.DIRECTIVE,
        re.compile(r"direktiv\s+\(([^)]+)\)\s+(\d{2,4})/(\d+)", re.IGNORECASE),
    ),
    EUSubGrammar(
        "directive_community_suffix",
        EUDocumentType.DIRECTIVE,
        re.compile(r"direktiv\s+(\d{2,4})/(\d+)(?:/([A-Z]+))?", re.IGNORECASE),
    ),
    EUSubGrammar(
        "directive_issuing_body",
        EUDocumentType.DIRECTIVE,
        re.compile(
            r"(rådets|kommissionens|Europaparlamentets och rådets)\s+direktiv\s+"
            r"(?:\(([^)]+)\)\s+)?(\d{2,4})/(\d+)(?:/([A-Z]+))?",
            re.IGNORECASE,
        ),
    ),
)

REGULATION_GRAMMARS: tuple[EUSubGrammar, ...] = (
    EUSubGrammar(
        "regulation_community_parens",
        EUDocumentType.REGULATION,
        re.compile(r"förordning\s+\(([^)]+)\)\s+(?:nr\s+)?(\d{2,4})/(\d+)", re.IGNORECASE),
    ),
    EUSubGrammar(
        "regulation_issuing_body",
        EUDocumentType.REGULATION,
        re.compile(
            rf"({_ISSUING_BODIES})\s+(?:förordning\s+)?\(([^)]+)\)\s+(?:nr\s+)?(\d{{2,4}})/(\d+)",
            re.IGNORECASE,
        ),
    ),
)

NAMED_EU_ACTS: tuple[NamedEUAct, ...] = (
    NamedEUAct(
        "dataskyddsförordningen",
        re.compile(
            r"\b(?:EU:s\s+dataskyddsförordning|allmänna?\s+dataskyddsförordningen|"
            r"dataskyddsförordningen|GDPR)\b",
            re.IGNORECASE,
        ),
        EUDocumentType.REGULATION,
        2016,
        679,
        EUCommunity.EU,
    ),
    NamedEUAct(
        "dataskyddsdirektivet",
        re.compile(r"\bdataskyddsdirektivet\b", re.IGNORECASE),
        EUDocumentType.DIRECTIVE,
        1995,
        46,
        EUCommunity.EG,
    ),
    NamedEUAct(
        "eidas-förordningen",
        re.compile(r"\beIDAS(?:-förordningen)?\b", re.IGNORECASE),
        EUDocumentType.REGULATION,
        2014,
        910,
        EUCommunity.EU,
    ),
    NamedEUAct(
        "nis2-direktivet",
        re.compile(r"\bNIS\s?2(?:-direktivet)?\b", re.IGNORECASE),
        EUDocumentType.DIRECTIVE,
        2022,
        2555,
        EUCommunity.EU,
    ),
)

# Ordered: the first keyword found in the context wins
IMPLEMENTATION_KEYWORDS: tuple[tuple[str, EUReferenceType], ...] = (
    ("genomförande", EUReferenceType.IMPLEMENTS),
    ("genomför", EUReferenceType.IMPLEMENTS),
    ("kompletterar", EUReferenceType.SUPPLEMENTS),
    ("komplettering", EUReferenceType.SUPPLEMENTS),
    ("tillämpning", EUReferenceType.APPLIES),
    ("tillämpas", EUReferenceType.APPLIES),
    ("i enlighet med", EUReferenceType.COMPLIES_WITH),
    ("överensstämmelse med", EUReferenceType.COMPLIES_WITH),
    ("med stöd av", EUReferenceType.CITES_ARTICLE),
    ("enligt", EUReferenceType.CITES_ARTICLE),
)

_ISSUING_BODY_RE = re.compile(r"rådet|kommission|Europa", re.IGNORECASE)

# ── Article patterns ────────────────────────────────────────────────

_ARTICLE_SEGMENT_RE = re.compile(r"\bartik(?:el|larna)\s+([^;\n]+)", re.IGNORECASE)

# Tail context after the article list: "... i EU:s dataskyddsförordning"
_ARTICLE_TAIL_RE = re.compile(
    r"\s+i\s+(?:EU|EG|EEG|Euratom|dataskyddsförordning(?:en)?|förordningen|direktivet)\b",
    re.IGNORECASE,
)
_ARTICLE_CONJUNCTION_RE = re.compile(r"\s+(?:och|and)\s+", re.IGNORECASE)
_ARTICLE_LIST_SEPARATOR_RE = re.compile(r"\s*(?:,|\b(?:och|and)\b)\s*", re.IGNORECASE)

# Leading article-shaped run of a list item: "9.2(h)", "6.1 c", "13 – 15"
_ARTICLE_TOKEN_PREFIX_RE = re.compile(
    r"^\d+(?:\s*\.\s*\d+)*"
    r"(?:\s*\(\s*[a-z0-9]+\s*\))*"
    r"(?:\s*[a-z](?![a-zåäö]))?"
    r"(?:\s*[-–—]\s*\d+(?:\s*\.\s*\d+)*)?",
    re.IGNORECASE,
)

_ARTICLE_PATH_RE = re.compile(r"^\d+(?:\.\d+)*(?:\.[a-z])?$")
_ARTICLE_RANGE_RE = re.compile(r"^\d+(?:\.\d+)*-\d+(?:\.\d+)*$")


# ── Normalisation helpers ───────────────────────────────────────────


def normalize_year(year: int) -> int:
    """Two-digit years: < 50 -> 20xx, else 19xx. Larger values pass through."""
    if year < 100:
        return 2000 + year if year < 50 else 1900 + year
    return year


def parse_community(text: Optional[str]) -> EUCommunity:
    """Map a community designation ("EU", "EG", "EEG", "Euratom") to its enum."""
    normalized = (text or "").upper().strip()
    if "EURATOM" in normalized:
        return EUCommunity.EURATOM
    if "EEG" in normalized:
        return EUCommunity.EEG
    if "EG" in normalized:
        return EUCommunity.EG
    return EUCommunity.EU


def normalize_article_token(value: str) -> Optional[str]:
    """
    Normalise one article pinpoint.

    "9(h)" -> "9.h", "9.2(h)" -> "9.2.h", "6.1c" -> "6.1.c", "13–15" -> "13-15".
    Returns None for anything that is not a dotted path or a numeric range.
    """
    normalized = value.strip()
    if not normalized:
        return None

    normalized = re.sub(r"[–—]", "-", normalized)
    normalized = re.sub(r"\(([^)]+)\)", r".\1", normalized)
    normalized = re.sub(r"\s+", "", normalized)
    normalized = normalized.strip(".")

    if re.match(r"^\d+(?:\.\d+)*[a-z]$", normalized, re.IGNORECASE):
        normalized = re.sub(r"([0-9])([a-z])$", r"\1.\2", normalized, flags=re.IGNORECASE)

    normalized = normalized.lower()

    if _ARTICLE_PATH_RE.match(normalized) or _ARTICLE_RANGE_RE.match(normalized):
        return normalized
    return None


def extract_article_references(text: str) -> list[str]:
    """
    Extract article-level pinpoints from arbitrary text.

    Examples:
        "artikel 9.2(h) och 9.3"  -> ["9.2.h", "9.3"]
        "artiklarna 83 och 84"    -> ["83", "84"]
    """
    found: list[str] = []
    seen: set[str] = set()

    for match in _ARTICLE_SEGMENT_RE.finditer(text or ""):
        segment = match.group(1).strip()
        segment = _ARTICLE_TAIL_RE.split(segment)[0].strip()
        if not segment:
            continue

        segment = _ARTICLE_CONJUNCTION_RE.sub(",", segment)

        for part in _ARTICLE_LIST_SEPARATOR_RE.split(segment):
            prefix = _ARTICLE_TOKEN_PREFIX_RE.match(part.strip())
            if not prefix:
                continue
            normalized = normalize_article_token(prefix.group(0))
            if not normalized or normalized in seen:
                continue
            seen.add(normalized)
            found.append(normalized)

    return found


def _extract_context(text: str, index: int, match_length: int, window: int) -> str:
    start = max(0, index - window)
    end = min(len(text), index + match_length + window)
    return re.sub(r"\s+", " ", text[start:end]).strip()


def _to_int(value: Optional[str]) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except ValueError:
        return None


# ── Disambiguation (capture group 1 decides the form) ───────────────


def classify_directive_match(groups: Sequence[Optional[str]]) -> Optional[EUCitationForm]:
    """
    Decide which directive grammar a match belongs to from its capture groups.

    Group 1 naming an issuing body -> issuing-body form; non-numeric group 1
    -> community in parentheses; numeric group 1 -> year/number with an
    optional community suffix. Anything else is unparsable.
    """
    first = groups[0] if groups else None
    if first and _ISSUING_BODY_RE.search(first):
        return EUCitationForm.ISSUING_BODY
    if first and not first[0].isdigit() and len(groups) > 2 and groups[1] and groups[2]:
        return EUCitationForm.COMMUNITY_PARENS
    if first and first[0].isdigit() and len(groups) > 1 and groups[1]:
        return EUCitationForm.COMMUNITY_SUFFIX
    return None


def classify_regulation_match(groups: Sequence[Optional[str]]) -> Optional[EUCitationForm]:
    """Regulations: issuing body in group 1, else community in parentheses."""
    first = groups[0] if groups else None
    if first and _ISSUING_BODY_RE.search(first):
        return EUCitationForm.ISSUING_BODY
    if first and len(groups) > 2 and groups[1] and groups[2]:
        return EUCitationForm.COMMUNITY_PARENS
    return None


def _fields_for_form(
    form: EUCitationForm, groups: Sequence[Optional[str]]
) -> tuple[Optional[str], Optional[str], Optional[str], Optional[str]]:
    """Return (issuing_body, community, year, number) for a classified match."""
    if form is EUCitationForm.ISSUING_BODY:
        suffix = groups[4] if len(groups) > 4 else None
        return groups[0], groups[1] or suffix, groups[2], groups[3]
    if form is EUCitationForm.COMMUNITY_PARENS:
        return None, groups[0], groups[1], groups[2]
    return None, groups[2] if len(groups) > 2 else None, groups[0], groups[1]


def _build_reference(
    grammar: EUSubGrammar, match: re.Match, text: str, window: int
) -> Optional[EUReference]:
    groups = match.groups()
    if grammar.doc_type is EUDocumentType.DIRECTIVE:
        form = classify_directive_match(groups)
    else:
        form = classify_regulation_match(groups)
    if form is None:
        logger.debug(f"Unparsable {grammar.name} match discarded: {match.group(0)!r}")
        return None

    issuing_body, community, raw_year, raw_number = _fields_for_form(form, groups)
    year = _to_int(raw_year)
    number = _to_int(raw_number)
    if year is None or number is None:
        logger.debug(f"Non-numeric year/number in {grammar.name} match: {match.group(0)!r}")
        return None

    year = normalize_year(year)
    full_text = match.group(0)
    return EUReference(
        type=grammar.doc_type,
        id=f"{year}/{number}",
        year=year,
        number=number,
        community=parse_community(community),
        issuing_body=issuing_body,
        full_text=full_text,
        context=_extract_context(text, match.start(), len(full_text), window),
    )


def enhance_reference(ref: EUReference) -> EUReference:
    """Attach article pinpoints, implementation keyword and reference type."""
    articles = extract_article_references(ref.context)
    if articles:
        ref.article = ",".join(articles)
        ref.reference_type = EUReferenceType.CITES_ARTICLE

    lower_context = ref.context.lower()
    for keyword, ref_type in IMPLEMENTATION_KEYWORDS:
        if keyword in lower_context:
            ref.implementation_keyword = keyword
            if ref.reference_type is None:
                ref.reference_type = ref_type
            break

    if ref.reference_type is None:
        ref.reference_type = (
            EUReferenceType.IMPLEMENTS
            if ref.type is EUDocumentType.DIRECTIVE
            else EUReferenceType.APPLIES
        )
    return ref


def extract_eu_references(text: str, context_window: int = CONTEXT_WINDOW) -> list[EUReference]:
    """
    Extract all EU references from Swedish legal text.

    Directive grammars run first, then regulation grammars, then named acts.
    References are deduplicated on "{id}:{community}"; the first occurrence wins
    and picks up the issuing body from a later duplicate when it has none.
    """
    if not text or not text.strip():
        return []

    references: dict[str, EUReference] = {}

    def _add(ref: EUReference) -> None:
        key = f"{ref.id}:{ref.community.value if ref.community else None}"
        existing = references.get(key)
        if existing is None:
            references[key] = ref
        elif existing.issuing_body is None and ref.issuing_body:
            existing.issuing_body = ref.issuing_body

    for grammar in DIRECTIVE_GRAMMARS + REGULATION_GRAMMARS:
        for match in grammar.pattern.finditer(text):
            ref = _build_reference(grammar, match, text, context_window)
            if ref is not None:
                _add(ref)

    for act in NAMED_EU_ACTS:
        for match in act.pattern.finditer(text):
            full_text = match.group(0)
            _add(
                EUReference(
                    type=act.doc_type,
                    id=f"{act.year}/{act.number}",
                    year=act.year,
                    number=act.number,
                    community=act.community,
                    full_text=full_text,
                    context=_extract_context(text, match.start(), len(full_text), context_window),
                )
            )

    return [enhance_reference(ref) for ref in references.values()]


# ── Derived identifiers & display ───────────────────────────────────


def eu_document_id(ref: EUReference) -> str:
    """Store key: "regulation:2016/679"."""
    return f"{ref.type.value}:{ref.id}"


def parse_eu_document_id(value: str) -> Optional[tuple[EUDocumentType, int, int]]:
    """Inverse of ``eu_document_id``; None when the key is malformed."""
    match = re.match(r"^(directive|regulation):(\d{4})/(\d+)$", value or "")
    if not match:
        return None
    return EUDocumentType(match.group(1)), int(match.group(2)), int(match.group(3))


def celex_number(ref: EUReference) -> str:
    """
    CELEX-style identifier: 3 (legislation sector) + year + L|R + number.

    Display/export convenience only, not checked against EUR-Lex.
    """
    type_code = "L" if ref.type is EUDocumentType.DIRECTIVE else "R"
    return f"3{ref.year}{type_code}{ref.number:04d}"


def format_eu_reference(ref: EUReference, style: str = "short") -> str:
    community = (ref.community or EUCommunity.EU).value
    type_label = "direktiv" if ref.type is EUDocumentType.DIRECTIVE else "förordning"
    if style == "short":
        return f"{type_label} ({community}) {ref.id}"

    result = f"{ref.issuing_body} " if ref.issuing_body else ""
    result += f"{type_label} ({community}) {ref.id}"
    if ref.article:
        result += f", artikel {ref.article}"
    return result
