"""
Pydantic schemas for citation tool responses
Typed results that the tool layer serialises to JSON
"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field

from .legal import (
    DocumentStatus,
    DocumentType,
    EUCommunity,
    EUDocumentType,
    EUReferenceType,
    ResolutionStatus,
)


# ============================================================
# Citation Models
# ============================================================


class CitationInfo(BaseModel):
    """Parsed citation as reported to callers"""

    raw: str
    type: DocumentType
    document_id: str
    chapter: Optional[str] = None
    section: Optional[str] = None
    page: Optional[str] = None
    valid: bool
    error: Optional[str] = None


class ValidateCitationResponse(BaseModel):
    citation: CitationInfo
    formatted_citation: Optional[str] = None
    valid: bool
    document_exists: bool
    provision_exists: bool
    status: Optional[DocumentStatus] = None
    document_title: Optional[str] = None
    warnings: list[str] = Field(default_factory=list)


class FormatCitationResponse(BaseModel):
    input: str
    formatted: str
    type: Optional[DocumentType] = None  # None when the input did not parse
    valid: bool
    error: Optional[str] = None


# ============================================================
# Temporal Models
# ============================================================


class ProvisionAtDateResponse(BaseModel):
    """Provision wording as of a date"""

    document_id: str
    provision_ref: str
    as_of_date: Optional[date] = None
    status: ResolutionStatus
    chapter: Optional[str] = None
    section: Optional[str] = None
    title: Optional[str] = None
    content: Optional[str] = None
    valid_from: Optional[date] = None
    valid_to: Optional[date] = None
    earliest_valid_from: Optional[date] = Field(
        default=None, description="First known valid_from when the date precedes the history"
    )


class CurrencyResponse(BaseModel):
    """Is a statute (or one of its provisions) in force"""

    document_id: str
    title: str
    type: DocumentType
    status: DocumentStatus
    issued_date: Optional[date] = None
    in_force_date: Optional[date] = None
    is_current: bool
    as_of_date: Optional[date] = None
    status_as_of: Optional[DocumentStatus] = None
    is_in_force_as_of: Optional[bool] = None
    provision_exists: Optional[bool] = None
    warnings: list[str] = Field(default_factory=list)


# ============================================================
# EU Models
# ============================================================


class EUBasisDocument(BaseModel):
    """One EU act a Swedish statute refers to, with aggregated articles"""

    id: str  # "regulation:2016/679"
    type: EUDocumentType
    year: int
    number: int
    community: Optional[EUCommunity] = None
    celex_number: str
    reference_type: EUReferenceType
    citation: str
    articles: list[str] = Field(default_factory=list)
    provision_refs: list[str] = Field(default_factory=list)


class EUBasisResponse(BaseModel):
    sfs_number: str
    sfs_title: str
    eu_documents: list[EUBasisDocument] = Field(default_factory=list)
    total_eu_references: int = 0
    directive_count: int = 0
    regulation_count: int = 0
