"""
Citation Service - tool-facing operations of the citation engine
================================================================

Composes grammar -> validator / temporal resolver -> formatter and returns
pydantic models that the tool layer serialises as-is.

Usage:
    from lagrum.services.citation_service import get_citation_service

    service = get_citation_service()
    result = service.validate("SFS 2018:218 3 kap. 5 §")
"""

from __future__ import annotations

import re
from datetime import date
from functools import lru_cache
from typing import Optional, Union

from ..citation.formatter import format_citation
from ..citation.grammar import parse_citation
from ..citation.validator import validate_citation
from ..core.exceptions import ResourceNotFoundError, ValidationError
from ..models.legal import (
    CitationStyle,
    DocumentStatus,
    DocumentType,
    EUDocumentType,
    EUReferenceType,
    ParsedCitation,
    normalize_provision_ref,
)
from ..models.schemas import (
    CitationInfo,
    CurrencyResponse,
    EUBasisDocument,
    EUBasisResponse,
    FormatCitationResponse,
    ProvisionAtDateResponse,
    ValidateCitationResponse,
)
from ..parsers.amendment_parser import is_valid_sfs_number
from ..parsers.eu_reference_extractor import celex_number, eu_document_id, format_eu_reference
from ..utils.logging import get_logger
from .legal_store import LegalStore, get_legal_store
from .temporal_resolver import DateLike, TemporalResolver, coerce_as_of_date

logger = get_logger(__name__)

# Strongest relation first when one statute cites an act several ways
_EU_REFERENCE_PRIORITY = (
    EUReferenceType.IMPLEMENTS,
    EUReferenceType.SUPPLEMENTS,
    EUReferenceType.APPLIES,
    EUReferenceType.CITES_ARTICLE,
)

_REPEAL_DATE_RE = re.compile(r"[Uu]pphävd[^0-9]{0,20}(\d{4}-\d{2}-\d{2})")


def _citation_info(parsed: ParsedCitation) -> CitationInfo:
    return CitationInfo(
        raw=parsed.raw,
        type=parsed.type,
        document_id=parsed.document_id,
        chapter=parsed.chapter,
        section=parsed.section,
        page=parsed.page,
        valid=parsed.valid,
        error=parsed.error,
    )


def _repeal_date(description: Optional[str]) -> Optional[date]:
    match = _REPEAL_DATE_RE.search(description or "")
    if not match:
        return None
    try:
        return date.fromisoformat(match.group(1))
    except ValueError:
        return None


class CitationService:
    """Validation, formatting and point-in-time lookups over one store."""

    def __init__(self, store: LegalStore):
        if store is None:
            raise ValidationError("A legal store is required", service_name="citation_service")
        self._store = store
        self._resolver = TemporalResolver(store)

    def validate(self, citation: str) -> ValidateCitationResponse:
        result = validate_citation(self._store, citation)
        formatted = format_citation(result.citation) if result.citation.valid else None
        return ValidateCitationResponse(
            citation=_citation_info(result.citation),
            formatted_citation=formatted,
            valid=result.valid,
            document_exists=result.document_exists,
            provision_exists=result.provision_exists,
            status=result.status,
            document_title=result.document_title,
            warnings=result.warnings,
        )

    def format(
        self, citation: str, style: Union[CitationStyle, str] = CitationStyle.FULL
    ) -> FormatCitationResponse:
        parsed = parse_citation(citation)
        formatted = format_citation(parsed, style)
        if not parsed.valid:
            return FormatCitationResponse(
                input=citation or "", formatted=formatted, valid=False, error=parsed.error
            )
        return FormatCitationResponse(input=citation, formatted=formatted, type=parsed.type, valid=True)

    def provision_at_date(
        self, sfs: str, provision_ref: str, as_of_date: Optional[DateLike] = None
    ) -> ProvisionAtDateResponse:
        resolution = self._resolver.resolve(sfs, provision_ref, as_of_date)
        return ProvisionAtDateResponse(
            document_id=resolution.document_id,
            provision_ref=resolution.provision_ref,
            as_of_date=resolution.as_of_date,
            status=resolution.status,
            chapter=resolution.chapter,
            section=resolution.section,
            title=resolution.title,
            content=resolution.content,
            valid_from=resolution.valid_from,
            valid_to=resolution.valid_to,
            earliest_valid_from=resolution.earliest_valid_from,
        )

    def check_currency(
        self,
        document_id: str,
        provision_ref: Optional[str] = None,
        as_of_date: Optional[DateLike] = None,
    ) -> Optional[CurrencyResponse]:
        """
        Report whether a document is in force, optionally as of a date.

        Returns None for an unknown document.
        """
        if not document_id:
            raise ValidationError(
                "document_id is required", service_name="citation_service", operation="check_currency"
            )
        as_of = coerce_as_of_date(as_of_date)

        document = self._store.get_document(document_id)
        if document is None:
            return None

        warnings: list[str] = []
        if document.status is DocumentStatus.REPEALED:
            warnings.append("This statute has been repealed (upphävd)")
        elif document.status is DocumentStatus.AMENDED:
            warnings.append("This statute has been amended since last ingestion")
        elif document.status is DocumentStatus.NOT_YET_IN_FORCE:
            warnings.append("This statute has not yet entered into force")

        status_as_of = None
        is_in_force_as_of = None
        if as_of is not None:
            valid_from = document.in_force_date or document.issued_date
            repealed_on = _repeal_date(document.description)
            if valid_from is not None and valid_from > as_of:
                status_as_of = DocumentStatus.NOT_YET_IN_FORCE
            elif repealed_on is not None and repealed_on <= as_of:
                status_as_of = DocumentStatus.REPEALED
            else:
                status_as_of = DocumentStatus.IN_FORCE
            is_in_force_as_of = status_as_of is DocumentStatus.IN_FORCE

        provision_exists = None
        if provision_ref:
            provision_ref = normalize_provision_ref(provision_ref)
            if as_of is not None:
                provision_exists = self._resolver.resolve(document_id, provision_ref, as_of).found
            else:
                provision_exists = self._store.provision_exists(document_id, provision_ref)
            if not provision_exists:
                warnings.append(f'Provision "{provision_ref}" not found in this document')

        return CurrencyResponse(
            document_id=document.id,
            title=document.title,
            type=document.type,
            status=document.status,
            issued_date=document.issued_date,
            in_force_date=document.in_force_date,
            is_current=document.status is DocumentStatus.IN_FORCE,
            as_of_date=as_of,
            status_as_of=status_as_of,
            is_in_force_as_of=is_in_force_as_of,
            provision_exists=provision_exists,
            warnings=warnings,
        )

    def eu_basis(self, sfs_number: str) -> EUBasisResponse:
        """
        EU directives and regulations a statute refers to, one entry per act.

        Raises:
            ValidationError: malformed SFS number
            ResourceNotFoundError: statute not in the store
        """
        if not sfs_number or not is_valid_sfs_number(sfs_number):
            raise ValidationError(
                f'Invalid SFS number format: "{sfs_number}". Expected format: "YYYY:NNN"',
                service_name="citation_service",
                operation="eu_basis",
            )

        document = self._store.get_document(sfs_number)
        if document is None or document.type is not DocumentType.STATUTE:
            raise ResourceNotFoundError(
                f"Statute {sfs_number} not found in database",
                service_name="citation_service",
                operation="eu_basis",
                details={"sfs_number": sfs_number},
            )

        grouped: dict[str, list] = {}
        pairs = self._store.get_eu_references(sfs_number)
        for provision_ref, ref in pairs:
            grouped.setdefault(eu_document_id(ref), []).append((provision_ref, ref))

        documents = []
        for key, refs in grouped.items():
            first = refs[0][1]
            found_types = {ref.reference_type for _, ref in refs}
            reference_type = next(
                (t for t in _EU_REFERENCE_PRIORITY if t in found_types), EUReferenceType.REFERENCES
            )

            articles: list[str] = []
            provision_refs: list[str] = []
            for provision_ref, ref in refs:
                for article in (ref.article or "").split(","):
                    if article and article not in articles:
                        articles.append(article)
                if provision_ref and provision_ref not in provision_refs:
                    provision_refs.append(provision_ref)

            documents.append(
                EUBasisDocument(
                    id=key,
                    type=first.type,
                    year=first.year,
                    number=first.number,
                    community=first.community,
                    celex_number=celex_number(first),
                    reference_type=reference_type,
                    citation=format_eu_reference(first),
                    articles=articles,
                    provision_refs=provision_refs,
                )
            )

        rank = {t: i for i, t in enumerate(_EU_REFERENCE_PRIORITY)}
        documents.sort(key=lambda d: (rank.get(d.reference_type, len(rank)), -d.year))

        return EUBasisResponse(
            sfs_number=sfs_number,
            sfs_title=document.title,
            eu_documents=documents,
            total_eu_references=len(pairs),
            directive_count=sum(1 for d in documents if d.type is EUDocumentType.DIRECTIVE),
            regulation_count=sum(1 for d in documents if d.type is EUDocumentType.REGULATION),
        )


@lru_cache()
def get_citation_service() -> CitationService:
    """Get the cached CitationService over the configured store."""
    return CitationService(get_legal_store())
