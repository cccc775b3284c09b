from .legal import (
    AmendmentPosition,
    AmendmentReference,
    AmendmentType,
    CitationStyle,
    CrossReference,
    CrossRefType,
    DocumentStatus,
    DocumentType,
    EUCommunity,
    EUDocumentType,
    EUReference,
    EUReferenceType,
    LegalDocument,
    ParsedCitation,
    Provision,
    ProvisionRef,
    ProvisionVersion,
    ResolutionStatus,
    normalize_provision_ref,
    normalize_section,
)

__all__ = [
    "AmendmentPosition",
    "AmendmentReference",
    "AmendmentType",
    "CitationStyle",
    "CrossReference",
    "CrossRefType",
    "DocumentStatus",
    "DocumentType",
    "EUCommunity",
    "EUDocumentType",
    "EUReference",
    "EUReferenceType",
    "LegalDocument",
    "ParsedCitation",
    "Provision",
    "ProvisionRef",
    "ProvisionVersion",
    "ResolutionStatus",
    "normalize_provision_ref",
    "normalize_section",
]
