"""
Domain records for Swedish legal documents, provisions and references.

Plain dataclasses shared by the parsers, the citation grammar and the store.
Enumerations are str-valued so they serialise verbatim into the store and
into tool responses.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional

# ── Enumerations ─────────────────────────────────────────────────────


class DocumentType(str, Enum):
    STATUTE = "statute"
    BILL = "bill"
    SOU = "sou"
    DS = "ds"
    CASE_LAW = "case_law"


class DocumentStatus(str, Enum):
    IN_FORCE = "in_force"
    AMENDED = "amended"
    REPEALED = "repealed"
    NOT_YET_IN_FORCE = "not_yet_in_force"


class CrossRefType(str, Enum):
    REFERENCES = "references"
    AMENDED_BY = "amended_by"
    IMPLEMENTS = "implements"
    SEE_ALSO = "see_also"


class EUDocumentType(str, Enum):
    DIRECTIVE = "directive"
    REGULATION = "regulation"


class EUCommunity(str, Enum):
    EU = "EU"
    EG = "EG"
    EEG = "EEG"
    EURATOM = "Euratom"


class EUReferenceType(str, Enum):
    """How the citing Swedish law relates to the EU act."""

    IMPLEMENTS = "implements"
    SUPPLEMENTS = "supplements"
    APPLIES = "applies"
    REFERENCES = "references"
    COMPLIES_WITH = "complies_with"
    DEROGATES_FROM = "derogates_from"
    CITES_ARTICLE = "cites_article"


class AmendmentType(str, Enum):
    AMENDED = "ändrad"
    INTRODUCED = "införd"
    REPEALED = "upphävd"
    ENTRY_INTO_FORCE = "ikraftträdande"


class AmendmentPosition(str, Enum):
    """Where in a provision an amendment note was found."""

    SUFFIX = "suffix"
    INLINE = "inline"
    TRANSITION = "transition"


class CitationStyle(str, Enum):
    FULL = "full"
    SHORT = "short"
    PINPOINT = "pinpoint"


class ResolutionStatus(str, Enum):
    """Outcome of a point-in-time provision lookup."""

    CURRENT = "current"
    HISTORICAL = "historical"
    NOT_FOUND = "not_found"  # provision has history, but nothing valid at the date
    NEVER_EXISTED = "never_existed"


# ── Section tokens & provision references ────────────────────────────

_SECTION_TOKEN_RE = re.compile(r"^(\d+)\s*([a-zA-Z])?$")


def normalize_section(token: str) -> str:
    """
    Normalise a section token: "5", "5 a", "5a", " 5  A " -> "5" / "5 a".

    Tokens that are not digit(+letter) shaped are only whitespace-collapsed.
    """
    collapsed = re.sub(r"\s+", " ", token).strip()
    match = _SECTION_TOKEN_RE.match(collapsed)
    if not match:
        return collapsed
    number, letter = match.groups()
    return f"{number} {letter.lower()}" if letter else number


@dataclass(frozen=True)
class ProvisionRef:
    """
    Canonical provision key.

    ``chapter`` is None for flat (unchaptered) statutes; ``str(ref)`` is the
    store key: "3:5", "3:5 a" or "5".
    """

    section: str
    chapter: Optional[str] = None

    @property
    def is_chaptered(self) -> bool:
        return self.chapter is not None

    def __str__(self) -> str:
        if self.chapter is not None:
            return f"{self.chapter}:{self.section}"
        return self.section

    @classmethod
    def parse(cls, ref: str) -> "ProvisionRef":
        ref = ref.strip()
        if ":" in ref:
            chapter, section = ref.split(":", 1)
            return cls(section=normalize_section(section), chapter=chapter.strip())
        return cls(section=normalize_section(ref))


def normalize_provision_ref(ref: str) -> str:
    """Store key for a caller-supplied ref: "3:5a", "3:5 A" -> "3:5 a"."""
    return str(ProvisionRef.parse(ref))


# ── Documents & provisions ───────────────────────────────────────────


@dataclass
class LegalDocument:
    """A statute, bill, SOU, Ds or court decision."""

    id: str  # "2018:218", "2017/18:105", "NJA 2020"
    type: DocumentType
    title: str
    status: DocumentStatus = DocumentStatus.IN_FORCE
    issued_date: Optional[date] = None
    in_force_date: Optional[date] = None
    short_name: Optional[str] = None
    title_en: Optional[str] = None
    url: Optional[str] = None
    description: Optional[str] = None


@dataclass
class Provision:
    """A paragraf within a statute, as produced by the segmenter."""

    provision_ref: str
    section: str
    content: str
    chapter: Optional[str] = None
    title: Optional[str] = None

    @property
    def ref(self) -> ProvisionRef:
        return ProvisionRef(section=self.section, chapter=self.chapter)


@dataclass
class ProvisionVersion:
    """
    One historical wording of a provision.

    valid_from is inclusive (None = since the document's inception),
    valid_to is exclusive (None = still current).
    """

    document_id: str
    provision_ref: str
    section: str
    content: str
    chapter: Optional[str] = None
    title: Optional[str] = None
    valid_from: Optional[date] = None
    valid_to: Optional[date] = None
    id: int = 0  # store sequence id

    @property
    def is_current(self) -> bool:
        return self.valid_to is None

    def covers(self, as_of: date) -> bool:
        started = self.valid_from is None or self.valid_from <= as_of
        not_ended = self.valid_to is None or self.valid_to > as_of
        return started and not_ended


@dataclass
class CrossReference:
    """Directed edge between documents or provisions."""

    source_document_id: str
    target_document_id: str
    ref_type: CrossRefType = CrossRefType.REFERENCES
    source_provision_ref: Optional[str] = None
    target_provision_ref: Optional[str] = None


@dataclass
class EUReference:
    """A citation of an EU directive or regulation found in Swedish text."""

    type: EUDocumentType
    id: str  # "2016/679"
    year: int
    number: int
    full_text: str
    context: str
    community: Optional[EUCommunity] = None
    issuing_body: Optional[str] = None
    article: Optional[str] = None  # "6.1.c,13-15"
    reference_type: Optional[EUReferenceType] = None
    implementation_keyword: Optional[str] = None


@dataclass
class ParsedCitation:
    """Result of parsing a free-form citation string. Never persisted."""

    raw: str
    type: DocumentType
    document_id: str
    valid: bool
    chapter: Optional[str] = None
    section: Optional[str] = None
    page: Optional[str] = None
    error: Optional[str] = None

    @property
    def has_pinpoint(self) -> bool:
        return self.chapter is not None or self.section is not None

    @property
    def provision_ref(self) -> Optional[ProvisionRef]:
        """The cited provision, or None for document-level and chapter-only citations."""
        if self.section is None:
            return None
        return ProvisionRef(section=self.section, chapter=self.chapter)


@dataclass
class AmendmentReference:
    """An amendment note inside provision text, e.g. "Lag (2021:1174)."."""

    amended_by_sfs: str
    amendment_type: AmendmentType
    position: AmendmentPosition
    raw_text: str
