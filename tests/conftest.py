"""
Pytest configuration and shared fixtures for the lagrum test suite.

Provides:
- Marker registration (unit, integration)
- In-memory LegalStore for validator/resolver unit tests
- tmp_path-backed SQLiteLegalStore, empty or seeded with sample statutes

Usage:
    pytest tests/ -v -m unit          # Pure unit tests
    pytest tests/ -v -m integration   # Tests that touch SQLite
"""

import sys
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Iterable, Optional

import pytest

# Add project root to Python path
project_root = Path(__file__).resolve().parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from lagrum.models.legal import (  # noqa: E402
    CrossReference,
    CrossRefType,
    DocumentStatus,
    DocumentType,
    EUReference,
    LegalDocument,
    Provision,
    ProvisionVersion,
)
from lagrum.services.legal_store import LegalStore, SQLiteLegalStore  # noqa: E402


# ═══════════════════════════════════════════════════════════════════
# TEST MARKERS
# ═══════════════════════════════════════════════════════════════════


def pytest_configure(config):
    """Register lagrum test markers."""
    config.addinivalue_line("markers", "unit: pure unit tests (no database)")
    config.addinivalue_line("markers", "integration: tests against a temporary SQLite store")


# ═══════════════════════════════════════════════════════════════════
# IN-MEMORY STORE
# ═══════════════════════════════════════════════════════════════════


class InMemoryLegalStore(LegalStore):
    """Dict-backed LegalStore; just enough behaviour for unit tests."""

    def __init__(self):
        self.documents: dict[str, LegalDocument] = {}
        self.provisions: dict[tuple[str, str], Provision] = {}
        self.versions: list[ProvisionVersion] = []
        self.cross_references: list[CrossReference] = []
        self.eu_references: list[tuple[str, Optional[str], EUReference]] = []

    def document_exists(self, document_id):
        return document_id in self.documents

    def get_document(self, document_id):
        return self.documents.get(document_id)

    def add_document(self, document):
        self.documents[document.id] = document

    def set_document_status(self, document_id, status):
        self.documents[document_id].status = status

    def provision_exists(self, document_id, provision_ref):
        return (document_id, provision_ref) in self.provisions

    def chapter_exists(self, document_id, chapter):
        return any(doc == document_id and p.chapter == chapter for (doc, _), p in self.provisions.items())

    def get_provision(self, document_id, provision_ref):
        return self.provisions.get((document_id, provision_ref))

    def get_provisions(self, document_id):
        return [p for (doc, _), p in self.provisions.items() if doc == document_id]

    def add_provisions(self, document_id, provisions: Iterable[Provision]):
        count = 0
        for provision in provisions:
            self.provisions[(document_id, provision.provision_ref)] = provision
            count += 1
        return count

    def remove_provisions(self, document_id, provision_refs):
        count = 0
        for ref in provision_refs:
            if self.provisions.pop((document_id, ref), None) is not None:
                count += 1
        return count

    def get_provision_versions(self, document_id, provision_ref):
        return [v for v in self.versions if v.document_id == document_id and v.provision_ref == provision_ref]

    def add_provision_version(self, version):
        version.id = len(self.versions) + 1
        self.versions.append(version)
        return version.id

    def close_open_version(self, document_id, provision_ref, valid_to):
        closed = 0
        for version in self.get_provision_versions(document_id, provision_ref):
            if version.valid_to is None:
                version.valid_to = valid_to
                closed += 1
        return closed

    def add_cross_references(self, references):
        references = list(references)
        self.cross_references.extend(references)
        return len(references)

    def get_cross_references(self, document_id, incoming=False):
        if incoming:
            return [r for r in self.cross_references if r.target_document_id == document_id]
        return [r for r in self.cross_references if r.source_document_id == document_id]

    def add_eu_references(self, document_id, provision_ref, references):
        references = list(references)
        self.eu_references.extend((document_id, provision_ref, r) for r in references)
        return len(references)

    def get_eu_references(self, document_id):
        return [(ref_id, r) for doc, ref_id, r in self.eu_references if doc == document_id]

    def clear_derived_references(self, document_id):
        self.cross_references = [
            r
            for r in self.cross_references
            if not (r.source_document_id == document_id and r.ref_type is CrossRefType.REFERENCES)
            and not (r.target_document_id == document_id and r.ref_type is CrossRefType.AMENDED_BY)
        ]
        self.eu_references = [e for e in self.eu_references if e[0] != document_id]

    def search_provisions(self, query, limit=10):
        return []


def _version(ref: str, content: str, valid_from: Optional[date], valid_to: Optional[date]) -> ProvisionVersion:
    chapter, section = ref.split(":")
    return ProvisionVersion(
        document_id="2018:218",
        provision_ref=ref,
        chapter=chapter,
        section=section,
        content=content,
        valid_from=valid_from,
        valid_to=valid_to,
    )


# ═══════════════════════════════════════════════════════════════════
# SAMPLE CORPUS
# ═══════════════════════════════════════════════════════════════════

DATASKYDDSLAGEN = LegalDocument(
    id="2018:218",
    type=DocumentType.STATUTE,
    title="Lag (2018:218) med kompletterande bestämmelser till EU:s dataskyddsförordning",
    short_name="DSL",
    status=DocumentStatus.IN_FORCE,
    issued_date=date(2018, 4, 19),
    in_force_date=date(2018, 5, 25),
)

PERSONUPPGIFTSLAGEN = LegalDocument(
    id="1998:204",
    type=DocumentType.STATUTE,
    title="Personuppgiftslag (1998:204)",
    short_name="PUL",
    status=DocumentStatus.REPEALED,
    issued_date=date(1998, 4, 29),
    in_force_date=date(1998, 10, 24),
    description="Upphävd: 2018-05-25",
)

BILL = LegalDocument(
    id="2017/18:105",
    type=DocumentType.BILL,
    title="Ny dataskyddslag",
)

DATASKYDDSLAGEN_PROVISIONS = [
    Provision(
        provision_ref="1:1",
        chapter="1",
        section="1",
        title="Lagens syfte",
        content="Denna lag kompletterar Europaparlamentets och rådets förordning (EU) 2016/679.",
    ),
    Provision(
        provision_ref="3:5",
        chapter="3",
        section="5",
        content="Känsliga personuppgifter får behandlas enligt artikel 9.2 h i EU:s dataskyddsförordning.",
    ),
    Provision(
        provision_ref="3:5 a",
        chapter="3",
        section="5 a",
        content="Personuppgifter som avses i 3 kap. 5 § får också behandlas av en myndighet.",
    ),
]


@pytest.fixture
def memory_store() -> InMemoryLegalStore:
    """In-memory store seeded with the sample corpus and a provision history."""
    store = InMemoryLegalStore()
    for document in (DATASKYDDSLAGEN, PERSONUPPGIFTSLAGEN, BILL):
        store.add_document(replace(document))
    store.add_provisions("2018:218", DATASKYDDSLAGEN_PROVISIONS)
    store.add_provision_version(_version("3:5", "Lydelse 2018", date(2018, 5, 25), date(2021, 1, 1)))
    store.add_provision_version(_version("3:5", "Lydelse 2021", date(2021, 1, 1), None))
    return store


@pytest.fixture
def sqlite_store(tmp_path) -> SQLiteLegalStore:
    """Empty SQLite store in a temporary directory."""
    store = SQLiteLegalStore(tmp_path / "lagrum.db")
    yield store
    store.close()


@pytest.fixture
def seeded_sqlite_store(sqlite_store) -> SQLiteLegalStore:
    """SQLite store with the sample corpus and a provision history."""
    for document in (DATASKYDDSLAGEN, PERSONUPPGIFTSLAGEN, BILL):
        sqlite_store.add_document(document)
    sqlite_store.add_provisions("2018:218", DATASKYDDSLAGEN_PROVISIONS)
    sqlite_store.add_provision_version(_version("3:5", "Lydelse 2018", date(2018, 5, 25), date(2021, 1, 1)))
    sqlite_store.add_provision_version(_version("3:5", "Lydelse 2021", date(2021, 1, 1), None))
    return sqlite_store


@pytest.fixture
def empty_memory_store() -> InMemoryLegalStore:
    return InMemoryLegalStore()


@pytest.fixture
def dataskyddslagen() -> LegalDocument:
    """A fresh copy of the 2018:218 document record."""
    return replace(DATASKYDDSLAGEN)
