"""
Legal Store - document/provision persistence for the citation engine
====================================================================

``LegalStore`` is the contract the validator, temporal resolver and
ingestion pipeline consume. ``SQLiteLegalStore`` implements it on SQLite:

- WAL mode, lazily opened connection, schema created on first use
- legal_provisions holds the current wording, one row per provision
- legal_provision_versions holds the append-only history
- provisions_fts (FTS5, unicode61) mirrors legal_provisions via triggers

Usage:
    from lagrum.services.legal_store import get_legal_store

    store = get_legal_store()
    if store.provision_exists("2018:218", "3:5"):
        ...
"""

from __future__ import annotations

import re
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import date
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional

from ..core.exceptions import StoreError
from ..models.legal import (
    CrossReference,
    CrossRefType,
    DocumentStatus,
    DocumentType,
    EUCommunity,
    EUDocumentType,
    EUReference,
    EUReferenceType,
    LegalDocument,
    Provision,
    ProvisionVersion,
)
from ..parsers.eu_reference_extractor import celex_number, eu_document_id
from ..utils.logging import get_logger
from .config_service import get_config_service

logger = get_logger(__name__)


class LegalStore(ABC):
    """Read/write contract over documents, provisions and references."""

    # ── Documents ──

    @abstractmethod
    def document_exists(self, document_id: str) -> bool: ...

    @abstractmethod
    def get_document(self, document_id: str) -> Optional[LegalDocument]: ...

    def get_document_status(self, document_id: str) -> Optional[DocumentStatus]:
        document = self.get_document(document_id)
        return document.status if document else None

    def get_document_title(self, document_id: str) -> Optional[str]:
        document = self.get_document(document_id)
        return document.title if document else None

    @abstractmethod
    def add_document(self, document: LegalDocument) -> None: ...

    @abstractmethod
    def set_document_status(self, document_id: str, status: DocumentStatus) -> None: ...

    # ── Provisions (current wording) ──

    @abstractmethod
    def provision_exists(self, document_id: str, provision_ref: str) -> bool: ...

    @abstractmethod
    def chapter_exists(self, document_id: str, chapter: str) -> bool: ...

    @abstractmethod
    def get_provision(self, document_id: str, provision_ref: str) -> Optional[Provision]: ...

    @abstractmethod
    def get_provisions(self, document_id: str) -> list[Provision]: ...

    @abstractmethod
    def add_provisions(self, document_id: str, provisions: Iterable[Provision]) -> int: ...

    @abstractmethod
    def remove_provisions(self, document_id: str, provision_refs: Iterable[str]) -> int: ...

    # ── Provision history ──

    @abstractmethod
    def get_provision_versions(self, document_id: str, provision_ref: str) -> list[ProvisionVersion]: ...

    @abstractmethod
    def add_provision_version(self, version: ProvisionVersion) -> int: ...

    @abstractmethod
    def close_open_version(self, document_id: str, provision_ref: str, valid_to: date) -> int: ...

    # ── References ──

    @abstractmethod
    def add_cross_references(self, references: Iterable[CrossReference]) -> int: ...

    @abstractmethod
    def get_cross_references(self, document_id: str, incoming: bool = False) -> list[CrossReference]: ...

    @abstractmethod
    def add_eu_references(
        self, document_id: str, provision_ref: Optional[str], references: Iterable[EUReference]
    ) -> int: ...

    @abstractmethod
    def get_eu_references(self, document_id: str) -> list[tuple[Optional[str], EUReference]]: ...

    @abstractmethod
    def clear_derived_references(self, document_id: str) -> None:
        """Drop references previously extracted from ``document_id``'s text."""

    # ── Search ──

    @abstractmethod
    def search_provisions(self, query: str, limit: int = 10) -> list[dict[str, Any]]: ...


# ═══════════════════════════════════════════════════════════════════
# SQLITE ADAPTER
# ═══════════════════════════════════════════════════════════════════

_SCHEMA = """
CREATE TABLE IF NOT EXISTS legal_documents (
  id TEXT PRIMARY KEY,
  type TEXT NOT NULL CHECK(type IN ('statute', 'bill', 'sou', 'ds', 'case_law')),
  title TEXT NOT NULL,
  title_en TEXT,
  short_name TEXT,
  status TEXT NOT NULL DEFAULT 'in_force'
    CHECK(status IN ('in_force', 'amended', 'repealed', 'not_yet_in_force')),
  issued_date TEXT,
  in_force_date TEXT,
  url TEXT,
  description TEXT,
  last_updated TEXT DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS legal_provisions (
  id INTEGER PRIMARY KEY,
  document_id TEXT NOT NULL REFERENCES legal_documents(id),
  provision_ref TEXT NOT NULL,
  chapter TEXT,
  section TEXT NOT NULL,
  title TEXT,
  content TEXT NOT NULL,
  UNIQUE(document_id, provision_ref)
);

CREATE INDEX IF NOT EXISTS idx_provisions_chapter ON legal_provisions(document_id, chapter);

CREATE VIRTUAL TABLE IF NOT EXISTS provisions_fts USING fts5(
  document_id UNINDEXED,
  provision_ref UNINDEXED,
  title,
  content,
  content='legal_provisions',
  content_rowid='id',
  tokenize='unicode61 remove_diacritics 2'
);

CREATE TRIGGER IF NOT EXISTS provisions_ai AFTER INSERT ON legal_provisions BEGIN
  INSERT INTO provisions_fts(rowid, document_id, provision_ref, title, content)
  VALUES (new.id, new.document_id, new.provision_ref, new.title, new.content);
END;

CREATE TRIGGER IF NOT EXISTS provisions_ad AFTER DELETE ON legal_provisions BEGIN
  INSERT INTO provisions_fts(provisions_fts, rowid, document_id, provision_ref, title, content)
  VALUES ('delete', old.id, old.document_id, old.provision_ref, old.title, old.content);
END;

CREATE TRIGGER IF NOT EXISTS provisions_au AFTER UPDATE ON legal_provisions BEGIN
  INSERT INTO provisions_fts(provisions_fts, rowid, document_id, provision_ref, title, content)
  VALUES ('delete', old.id, old.document_id, old.provision_ref, old.title, old.content);
  INSERT INTO provisions_fts(rowid, document_id, provision_ref, title, content)
  VALUES (new.id, new.document_id, new.provision_ref, new.title, new.content);
END;

CREATE TABLE IF NOT EXISTS legal_provision_versions (
  id INTEGER PRIMARY KEY,
  document_id TEXT NOT NULL REFERENCES legal_documents(id),
  provision_ref TEXT NOT NULL,
  chapter TEXT,
  section TEXT NOT NULL,
  title TEXT,
  content TEXT NOT NULL,
  valid_from TEXT,
  valid_to TEXT
);

CREATE INDEX IF NOT EXISTS idx_provision_versions_doc_ref
  ON legal_provision_versions(document_id, provision_ref);

CREATE TABLE IF NOT EXISTS cross_references (
  id INTEGER PRIMARY KEY,
  source_document_id TEXT NOT NULL,
  source_provision_ref TEXT,
  target_document_id TEXT NOT NULL,
  target_provision_ref TEXT,
  ref_type TEXT NOT NULL DEFAULT 'references'
    CHECK(ref_type IN ('references', 'amended_by', 'implements', 'see_also'))
);

CREATE INDEX IF NOT EXISTS idx_xref_source ON cross_references(source_document_id);
CREATE INDEX IF NOT EXISTS idx_xref_target ON cross_references(target_document_id);

CREATE TABLE IF NOT EXISTS eu_documents (
  id TEXT PRIMARY KEY,
  type TEXT NOT NULL CHECK(type IN ('directive', 'regulation')),
  year INTEGER NOT NULL,
  number INTEGER NOT NULL,
  community TEXT,
  celex_number TEXT
);

CREATE TABLE IF NOT EXISTS eu_references (
  id INTEGER PRIMARY KEY,
  document_id TEXT NOT NULL REFERENCES legal_documents(id),
  provision_ref TEXT,
  eu_document_id TEXT NOT NULL REFERENCES eu_documents(id),
  issuing_body TEXT,
  article TEXT,
  full_text TEXT NOT NULL,
  context TEXT NOT NULL,
  reference_type TEXT,
  implementation_keyword TEXT
);

CREATE INDEX IF NOT EXISTS idx_eu_refs_document ON eu_references(document_id);
CREATE INDEX IF NOT EXISTS idx_eu_refs_eu_document ON eu_references(eu_document_id);
"""

# FTS5 reserved words that must be stripped from user queries
_FTS5_RESERVED = frozenset({"AND", "OR", "NOT", "NEAR"})

# Characters that break FTS5 query syntax
_FTS5_STRIP_RE = re.compile(r'["\'\(\)\*\^:{}[\]~§]')


def _sanitize_fts_query(query: str) -> str:
    """
    Sanitize a query string for safe FTS5 MATCH usage.

    Strips FTS5 operators and special characters, then joins the quoted
    tokens with OR.
    """
    if not query or not query.strip():
        return ""

    cleaned = _FTS5_STRIP_RE.sub(" ", query)
    tokens = [t for t in cleaned.split() if t.upper() not in _FTS5_RESERVED]
    if not tokens:
        return ""
    return " OR ".join(f'"{t}"' for t in tokens)


def _to_iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def _from_iso(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


class SQLiteLegalStore(LegalStore):
    """SQLite + FTS5 implementation of ``LegalStore``."""

    def __init__(self, db_path: str | Path | None = None):
        self._db_path = str(db_path) if db_path else get_config_service().db_path
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    @property
    def db_path(self) -> str:
        return self._db_path

    def _get_conn(self) -> sqlite3.Connection:
        """Lazy-open the connection and create the schema on first use."""
        if self._conn is not None:
            return self._conn

        try:
            if self._db_path != ":memory:":
                Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self._db_path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript(_SCHEMA)
        except sqlite3.Error as e:
            raise StoreError(
                f"Failed to open legal store: {e}",
                service_name="legal_store",
                operation="connect",
                details={"db_path": self._db_path},
            ) from e

        self._conn = conn
        logger.info(f"Legal store connected: {self._db_path}")
        return conn

    @contextmanager
    def _cursor(self, operation: str, write: bool = False) -> Iterator[sqlite3.Connection]:
        """Serialise access and wrap sqlite errors in StoreError."""
        with self._lock:
            conn = self._get_conn()
            try:
                if write:
                    with conn:
                        yield conn
                else:
                    yield conn
            except sqlite3.Error as e:
                logger.error(f"Legal store {operation} failed: {e}")
                raise StoreError(
                    f"Legal store {operation} failed: {e}",
                    service_name="legal_store",
                    operation=operation,
                ) from e

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    # ── Documents ──

    def document_exists(self, document_id: str) -> bool:
        with self._cursor("document_exists") as conn:
            row = conn.execute("SELECT 1 FROM legal_documents WHERE id = ?", (document_id,)).fetchone()
        return row is not None

    def get_document(self, document_id: str) -> Optional[LegalDocument]:
        with self._cursor("get_document") as conn:
            row = conn.execute("SELECT * FROM legal_documents WHERE id = ?", (document_id,)).fetchone()
        if row is None:
            return None
        return LegalDocument(
            id=row["id"],
            type=DocumentType(row["type"]),
            title=row["title"],
            status=DocumentStatus(row["status"]),
            issued_date=_from_iso(row["issued_date"]),
            in_force_date=_from_iso(row["in_force_date"]),
            short_name=row["short_name"],
            title_en=row["title_en"],
            url=row["url"],
            description=row["description"],
        )

    def add_document(self, document: LegalDocument) -> None:
        with self._cursor("add_document", write=True) as conn:
            conn.execute(
                """
                INSERT INTO legal_documents
                  (id, type, title, title_en, short_name, status, issued_date, in_force_date, url, description)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                  title = excluded.title,
                  title_en = excluded.title_en,
                  short_name = excluded.short_name,
                  status = excluded.status,
                  issued_date = excluded.issued_date,
                  in_force_date = excluded.in_force_date,
                  url = excluded.url,
                  description = excluded.description,
                  last_updated = datetime('now')
                """,
                (
                    document.id,
                    document.type.value,
                    document.title,
                    document.title_en,
                    document.short_name,
                    document.status.value,
                    _to_iso(document.issued_date),
                    _to_iso(document.in_force_date),
                    document.url,
                    document.description,
                ),
            )

    def set_document_status(self, document_id: str, status: DocumentStatus) -> None:
        with self._cursor("set_document_status", write=True) as conn:
            conn.execute(
                "UPDATE legal_documents SET status = ?, last_updated = datetime('now') WHERE id = ?",
                (status.value, document_id),
            )

    # ── Provisions ──

    def provision_exists(self, document_id: str, provision_ref: str) -> bool:
        with self._cursor("provision_exists") as conn:
            row = conn.execute(
                "SELECT 1 FROM legal_provisions WHERE document_id = ? AND provision_ref = ?",
                (document_id, provision_ref),
            ).fetchone()
        return row is not None

    def chapter_exists(self, document_id: str, chapter: str) -> bool:
        with self._cursor("chapter_exists") as conn:
            row = conn.execute(
                "SELECT 1 FROM legal_provisions WHERE document_id = ? AND chapter = ? LIMIT 1",
                (document_id, chapter),
            ).fetchone()
        return row is not None

    @staticmethod
    def _row_to_provision(row: sqlite3.Row) -> Provision:
        return Provision(
            provision_ref=row["provision_ref"],
            chapter=row["chapter"],
            section=row["section"],
            title=row["title"],
            content=row["content"],
        )

    def get_provision(self, document_id: str, provision_ref: str) -> Optional[Provision]:
        with self._cursor("get_provision") as conn:
            row = conn.execute(
                "SELECT * FROM legal_provisions WHERE document_id = ? AND provision_ref = ?",
                (document_id, provision_ref),
            ).fetchone()
        return self._row_to_provision(row) if row else None

    def get_provisions(self, document_id: str) -> list[Provision]:
        with self._cursor("get_provisions") as conn:
            rows = conn.execute(
                "SELECT * FROM legal_provisions WHERE document_id = ? ORDER BY id",
                (document_id,),
            ).fetchall()
        return [self._row_to_provision(row) for row in rows]

    def add_provisions(self, document_id: str, provisions: Iterable[Provision]) -> int:
        """Upsert the current wording of each provision. Returns rows written."""
        rows = [
            (document_id, p.provision_ref, p.chapter, p.section, p.title, p.content)
            for p in provisions
        ]
        if not rows:
            return 0
        with self._cursor("add_provisions", write=True) as conn:
            conn.executemany(
                """
                INSERT INTO legal_provisions (document_id, provision_ref, chapter, section, title, content)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(document_id, provision_ref) DO UPDATE SET
                  chapter = excluded.chapter,
                  section = excluded.section,
                  title = excluded.title,
                  content = excluded.content
                """,
                rows,
            )
        return len(rows)

    def remove_provisions(self, document_id: str, provision_refs: Iterable[str]) -> int:
        """Drop provisions from the current table; their history is kept."""
        rows = [(document_id, ref) for ref in provision_refs]
        if not rows:
            return 0
        with self._cursor("remove_provisions", write=True) as conn:
            conn.executemany(
                "DELETE FROM legal_provisions WHERE document_id = ? AND provision_ref = ?",
                rows,
            )
        return len(rows)

    # ── History ──

    def get_provision_versions(self, document_id: str, provision_ref: str) -> list[ProvisionVersion]:
        """Full history, oldest first (null valid_from sorts first)."""
        with self._cursor("get_provision_versions") as conn:
            rows = conn.execute(
                """
                SELECT * FROM legal_provision_versions
                WHERE document_id = ? AND provision_ref = ?
                ORDER BY valid_from, id
                """,
                (document_id, provision_ref),
            ).fetchall()
        return [
            ProvisionVersion(
                id=row["id"],
                document_id=row["document_id"],
                provision_ref=row["provision_ref"],
                chapter=row["chapter"],
                section=row["section"],
                title=row["title"],
                content=row["content"],
                valid_from=_from_iso(row["valid_from"]),
                valid_to=_from_iso(row["valid_to"]),
            )
            for row in rows
        ]

    def add_provision_version(self, version: ProvisionVersion) -> int:
        with self._cursor("add_provision_version", write=True) as conn:
            cursor = conn.execute(
                """
                INSERT INTO legal_provision_versions
                  (document_id, provision_ref, chapter, section, title, content, valid_from, valid_to)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    version.document_id,
                    version.provision_ref,
                    version.chapter,
                    version.section,
                    version.title,
                    version.content,
                    _to_iso(version.valid_from),
                    _to_iso(version.valid_to),
                ),
            )
        return cursor.lastrowid

    def close_open_version(self, document_id: str, provision_ref: str, valid_to: date) -> int:
        """Set valid_to on the open-ended version, if any. Returns rows closed."""
        with self._cursor("close_open_version", write=True) as conn:
            cursor = conn.execute(
                """
                UPDATE legal_provision_versions SET valid_to = ?
                WHERE document_id = ? AND provision_ref = ? AND valid_to IS NULL
                """,
                (valid_to.isoformat(), document_id, provision_ref),
            )
        return cursor.rowcount

    # ── References ──

    def add_cross_references(self, references: Iterable[CrossReference]) -> int:
        rows = [
            (
                ref.source_document_id,
                ref.source_provision_ref,
                ref.target_document_id,
                ref.target_provision_ref,
                ref.ref_type.value,
            )
            for ref in references
        ]
        if not rows:
            return 0
        with self._cursor("add_cross_references", write=True) as conn:
            conn.executemany(
                """
                INSERT INTO cross_references
                  (source_document_id, source_provision_ref, target_document_id, target_provision_ref, ref_type)
                VALUES (?, ?, ?, ?, ?)
                """,
                rows,
            )
        return len(rows)

    def get_cross_references(self, document_id: str, incoming: bool = False) -> list[CrossReference]:
        column = "target_document_id" if incoming else "source_document_id"
        with self._cursor("get_cross_references") as conn:
            rows = conn.execute(
                f"SELECT * FROM cross_references WHERE {column} = ? ORDER BY id",
                (document_id,),
            ).fetchall()
        return [
            CrossReference(
                source_document_id=row["source_document_id"],
                source_provision_ref=row["source_provision_ref"],
                target_document_id=row["target_document_id"],
                target_provision_ref=row["target_provision_ref"],
                ref_type=CrossRefType(row["ref_type"]),
            )
            for row in rows
        ]

    def add_eu_references(
        self, document_id: str, provision_ref: Optional[str], references: Iterable[EUReference]
    ) -> int:
        references = list(references)
        if not references:
            return 0
        with self._cursor("add_eu_references", write=True) as conn:
            for ref in references:
                key = eu_document_id(ref)
                conn.execute(
                    """
                    INSERT OR IGNORE INTO eu_documents (id, type, year, number, community, celex_number)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        key,
                        ref.type.value,
                        ref.year,
                        ref.number,
                        ref.community.value if ref.community else None,
                        celex_number(ref),
                    ),
                )
                conn.execute(
                    """
                    INSERT INTO eu_references
                      (document_id, provision_ref, eu_document_id, issuing_body, article,
                       full_text, context, reference_type, implementation_keyword)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        document_id,
                        provision_ref,
                        key,
                        ref.issuing_body,
                        ref.article,
                        ref.full_text,
                        ref.context,
                        ref.reference_type.value if ref.reference_type else None,
                        ref.implementation_keyword,
                    ),
                )
        return len(references)

    def get_eu_references(self, document_id: str) -> list[tuple[Optional[str], EUReference]]:
        """(provision_ref, reference) pairs in insertion order."""
        with self._cursor("get_eu_references") as conn:
            rows = conn.execute(
                """
                SELECT r.*, d.type, d.year, d.number, d.community
                FROM eu_references r
                JOIN eu_documents d ON d.id = r.eu_document_id
                WHERE r.document_id = ?
                ORDER BY r.id
                """,
                (document_id,),
            ).fetchall()
        return [
            (
                row["provision_ref"],
                EUReference(
                    type=EUDocumentType(row["type"]),
                    id=f"{row['year']}/{row['number']}",
                    year=row["year"],
                    number=row["number"],
                    community=EUCommunity(row["community"]) if row["community"] else None,
                    issuing_body=row["issuing_body"],
                    article=row["article"],
                    full_text=row["full_text"],
                    context=row["context"],
                    reference_type=EUReferenceType(row["reference_type"]) if row["reference_type"] else None,
                    implementation_keyword=row["implementation_keyword"],
                ),
            )
            for row in rows
        ]

    def clear_derived_references(self, document_id: str) -> None:
        """Drop extracted edges so re-ingesting a document does not duplicate them."""
        with self._cursor("clear_derived_references", write=True) as conn:
            conn.execute(
                """
                DELETE FROM cross_references
                WHERE (source_document_id = ? AND ref_type = 'references')
                   OR (target_document_id = ? AND ref_type = 'amended_by')
                """,
                (document_id, document_id),
            )
            conn.execute("DELETE FROM eu_references WHERE document_id = ?", (document_id,))

    # ── Search ──

    def search_provisions(self, query: str, limit: int = 10) -> list[dict[str, Any]]:
        """
        Ranked full-text search over current provisions.

        Returns:
            Dicts with document_id, provision_ref, title, content, score
            (higher is better).
        """
        fts_query = _sanitize_fts_query(query)
        if not fts_query:
            return []

        # bm25() is negative; negate so higher is better
        with self._cursor("search_provisions") as conn:
            rows = conn.execute(
                """
                SELECT p.document_id, p.provision_ref, p.title, p.content,
                       -bm25(provisions_fts) AS score
                FROM provisions_fts
                JOIN legal_provisions p ON p.id = provisions_fts.rowid
                WHERE provisions_fts MATCH ?
                ORDER BY score DESC
                LIMIT ?
                """,
                (fts_query, limit),
            ).fetchall()

        results = [
            {
                "document_id": row["document_id"],
                "provision_ref": row["provision_ref"],
                "title": row["title"],
                "content": row["content"],
                "score": float(row["score"]),
            }
            for row in rows
        ]
        logger.debug(f"Provision search: '{query[:30]}' → {len(results)} results")
        return results


@lru_cache()
def get_legal_store() -> SQLiteLegalStore:
    """Get the cached store for the configured database path."""
    return SQLiteLegalStore()
