"""
Citation Validator - check that a citation is grounded in the corpus.

Every citation handed back to a caller should correspond to a stored
document (and provision, when it pinpoints one). Misses are reported as
warnings and booleans; only a missing store is an error.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..core.exceptions import ValidationError
from ..models.legal import DocumentStatus, DocumentType, ParsedCitation
from ..services.legal_store import LegalStore
from ..utils.logging import get_logger
from .grammar import parse_citation

logger = get_logger(__name__)


@dataclass
class ValidationResult:
    citation: ParsedCitation
    document_exists: bool
    provision_exists: bool
    status: Optional[DocumentStatus] = None
    document_title: Optional[str] = None
    warnings: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        """Parsed, document stored, and the pinpoint (if any) stored."""
        return self.citation.valid and self.document_exists and self.provision_exists


def validate_citation(store: LegalStore, citation: str) -> ValidationResult:
    """
    Parse ``citation`` and validate it against ``store``.

    Raises:
        ValidationError: if no store is given
    """
    if store is None:
        raise ValidationError(
            "A legal store is required to validate citations",
            service_name="validator",
            operation="validate_citation",
        )

    parsed = parse_citation(citation)
    if not parsed.valid:
        return ValidationResult(
            citation=parsed,
            document_exists=False,
            provision_exists=False,
            warnings=[parsed.error or "Invalid citation format"],
        )

    return validate_parsed_citation(store, parsed)


def validate_parsed_citation(store: LegalStore, parsed: ParsedCitation) -> ValidationResult:
    """Validate an already parsed citation."""
    if store is None:
        raise ValidationError(
            "A legal store is required to validate citations",
            service_name="validator",
            operation="validate_parsed_citation",
        )

    document = store.get_document(parsed.document_id)
    if document is None:
        logger.debug(f"Citation target not in store: {parsed.document_id}")
        return ValidationResult(
            citation=parsed,
            document_exists=False,
            provision_exists=False,
            warnings=[f'Document "{parsed.document_id}" not found in database'],
        )

    warnings: list[str] = []
    if document.status is DocumentStatus.REPEALED:
        warnings.append(f'Document "{parsed.document_id}" has been repealed (upphävd)')
    elif document.status is DocumentStatus.AMENDED:
        warnings.append(f'Document "{parsed.document_id}" has been amended since ingestion')

    # No pinpoint requested: the provision check does not apply
    provision_exists = True
    if parsed.type is DocumentType.STATUTE and parsed.has_pinpoint:
        ref = parsed.provision_ref
        if ref is not None:
            provision_exists = store.provision_exists(parsed.document_id, str(ref))
            if not provision_exists:
                warnings.append(f'Provision "{ref}" not found in document "{parsed.document_id}"')
        else:
            provision_exists = store.chapter_exists(parsed.document_id, parsed.chapter)
            if not provision_exists:
                warnings.append(f'Chapter "{parsed.chapter} kap." not found in document "{parsed.document_id}"')

    return ValidationResult(
        citation=parsed,
        document_exists=True,
        provision_exists=provision_exists,
        status=document.status,
        document_title=document.title,
        warnings=warnings,
    )
