"""
Format parsed citations per Swedish citation conventions.

    full:     "SFS 2018:218 3 kap. 5 §", "Prop. 2017/18:105", "NJA 2020 s. 45"
    short:    "2018:218 3:5", "2018:218 5 §"
    pinpoint: "3 kap. 5 §", "5 §"
"""

from __future__ import annotations

from typing import Optional, Union

from ..core.exceptions import ValidationError
from ..models.legal import CitationStyle, DocumentType, ParsedCitation
from .grammar import CASE_LAW_REPORTERS

_DOCUMENT_PREFIXES = {
    DocumentType.BILL: "Prop.",
    DocumentType.SOU: "SOU",
    DocumentType.DS: "Ds",
}


def _coerce_style(style: Union[CitationStyle, str]) -> CitationStyle:
    try:
        return CitationStyle(style)
    except ValueError:
        raise ValidationError(
            f"Unknown citation style: {style!r}",
            service_name="formatter",
            operation="format_citation",
            details={"allowed": [s.value for s in CitationStyle]},
        ) from None


def format_citation(citation: ParsedCitation, style: Union[CitationStyle, str] = CitationStyle.FULL) -> str:
    """
    Render a parsed citation in the requested style.

    Invalid citations are returned as their raw text. Bills, SOU, Ds and
    case law render the same in every style.
    """
    style = _coerce_style(style)

    if not citation.valid:
        return citation.raw

    if citation.type is DocumentType.STATUTE:
        return _format_statute(citation, style)
    if citation.type is DocumentType.CASE_LAW:
        return _format_case_law(citation)
    return f"{_DOCUMENT_PREFIXES[citation.type]} {citation.document_id}"


def _format_statute(citation: ParsedCitation, style: CitationStyle) -> str:
    document_id, chapter, section = citation.document_id, citation.chapter, citation.section

    if style is CitationStyle.PINPOINT:
        if chapter and section:
            return f"{chapter} kap. {section} §"
        if section:
            return f"{section} §"
        return document_id

    if style is CitationStyle.SHORT:
        if chapter and section:
            return f"{document_id} {chapter}:{section}"
        if section:
            return f"{document_id} {section} §"
        return document_id

    result = f"SFS {document_id}"
    if chapter:
        result += f" {chapter} kap."
    if section:
        result += f" {section} §"
    return result


def _format_case_law(citation: ParsedCitation) -> str:
    if not citation.page:
        return citation.document_id
    reporter = citation.document_id.split(" ", 1)[0]
    marker = CASE_LAW_REPORTERS.get(reporter, "ref.")
    return f"{citation.document_id} {marker} {citation.page}"


def format_provision_ref(chapter: Optional[str], section: str) -> str:
    """Canonical key: "3:5" for chapter 3 section 5, "5" for flat statutes."""
    if chapter:
        return f"{chapter}:{section}"
    return section
