"""
Ingestion Service - raw statute text into the legal store
=========================================================

Pipeline per document:
    segment provisions -> extract cross-references, EU references and
    amendment notes per provision -> write everything to the store

Parsing is pure and runs in a thread pool for batches; every store write
happens on the calling thread.

Usage:
    from lagrum.services.ingestion_service import IngestionService

    service = IngestionService(store)
    stats = service.ingest(document, raw_text, valid_from=date(2021, 1, 1))
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional

from ..core.exceptions import IngestionError, LagrumError
from ..models.legal import CrossReference, EUReference, LegalDocument, Provision, ProvisionVersion
from ..parsers.amendment_parser import (
    ProvisionAmendments,
    build_amendment_edges,
    parse_statute_amendments,
)
from ..parsers.cross_ref_extractor import build_cross_references, extract_cross_references
from ..parsers.eu_reference_extractor import extract_eu_references
from ..parsers.provision_segmenter import segment_statute
from ..utils.logging import document_context, get_logger
from .config_service import get_config_service
from .legal_store import LegalStore

logger = get_logger(__name__)


@dataclass
class ParsedDocument:
    """Everything extracted from one document's text, not yet persisted."""

    document: LegalDocument
    provisions: list[Provision] = field(default_factory=list)
    cross_references: list[CrossReference] = field(default_factory=list)
    eu_references: dict[str, list[EUReference]] = field(default_factory=dict)
    amendments: list[ProvisionAmendments] = field(default_factory=list)


@dataclass
class IngestionStats:
    document_id: str
    provisions: int = 0
    versions_added: int = 0
    provisions_removed: int = 0
    cross_references: int = 0
    eu_references: int = 0
    amendments: int = 0


@dataclass
class IngestItem:
    document: LegalDocument
    text: str
    valid_from: Optional[date] = None


def parse_document(
    document: LegalDocument,
    text: str,
    heading_max_length: int = 80,
    context_window: int = 100,
) -> ParsedDocument:
    """Segment and extract one document. Pure; safe to run concurrently."""
    parsed = ParsedDocument(document=document)
    parsed.provisions = segment_statute(text, heading_max_length=heading_max_length)

    for provision in parsed.provisions:
        refs = extract_cross_references(provision.content)
        parsed.cross_references.extend(
            build_cross_references(document.id, provision.provision_ref, refs)
        )
        eu_refs = extract_eu_references(provision.content, context_window=context_window)
        if eu_refs:
            parsed.eu_references[provision.provision_ref] = eu_refs

    parsed.amendments = parse_statute_amendments(parsed.provisions)
    return parsed


class IngestionService:
    """Writes parsed documents to a ``LegalStore`` and maintains version history."""

    def __init__(self, store: LegalStore, workers: Optional[int] = None):
        config = get_config_service()
        self._store = store
        self._workers = workers or config.ingest_workers
        self._heading_max_length = config.heading_max_length
        self._context_window = config.eu_context_window

    def parse(self, document: LegalDocument, text: str) -> ParsedDocument:
        return parse_document(
            document,
            text,
            heading_max_length=self._heading_max_length,
            context_window=self._context_window,
        )

    def ingest(
        self, document: LegalDocument, text: str, valid_from: Optional[date] = None
    ) -> IngestionStats:
        """
        Parse and persist one document.

        ``valid_from`` dates the wording in ``text``. Changed provisions close
        their open version on that date (today when omitted) and a new version
        is appended; unchanged provisions keep their history untouched.

        Raises:
            IngestionError: parsing or writing failed
        """
        with document_context(document.id):
            try:
                parsed = self.parse(document, text)
            except Exception as e:
                raise IngestionError(
                    f"Failed to parse {document.id}: {e}",
                    service_name="ingestion",
                    operation="parse",
                    details={"document_id": document.id},
                ) from e
            return self.write(parsed, valid_from)

    def write(self, parsed: ParsedDocument, valid_from: Optional[date] = None) -> IngestionStats:
        """Persist an already parsed document."""
        document = parsed.document
        stats = IngestionStats(document_id=document.id)
        start = time.perf_counter()

        try:
            previous = {p.provision_ref: p for p in self._store.get_provisions(document.id)}

            self._store.add_document(document)
            stats.provisions = self._store.add_provisions(document.id, parsed.provisions)

            current_refs = {p.provision_ref for p in parsed.provisions}
            removed = [ref for ref in previous if ref not in current_refs]
            if removed:
                cutoff = valid_from or date.today()
                for ref in removed:
                    self._store.close_open_version(document.id, ref, cutoff)
                stats.provisions_removed = self._store.remove_provisions(document.id, removed)

            for provision in parsed.provisions:
                if self._record_version(document.id, provision, valid_from):
                    stats.versions_added += 1

            self._store.clear_derived_references(document.id)
            stats.cross_references = self._store.add_cross_references(parsed.cross_references)
            for provision_ref, refs in parsed.eu_references.items():
                stats.eu_references += self._store.add_eu_references(document.id, provision_ref, refs)

            amendment_edges = build_amendment_edges(document.id, parsed.amendments)
            stats.amendments = self._store.add_cross_references(amendment_edges)

        except LagrumError as e:
            raise IngestionError(
                f"Failed to write {document.id}: {e.message}",
                service_name="ingestion",
                operation="write",
                details={"document_id": document.id, "cause": e.to_dict()},
            ) from e

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            f"Ingested {document.id}: {stats.provisions} provisions, "
            f"{stats.versions_added} new versions, {stats.cross_references} cross-refs, "
            f"{stats.eu_references} EU refs, {stats.amendments} amendments in {elapsed_ms:.0f}ms"
        )
        return stats

    def _record_version(self, document_id: str, provision: Provision, valid_from: Optional[date]) -> bool:
        """Append a version when the wording changed. Returns True if one was added."""
        versions = self._store.get_provision_versions(document_id, provision.provision_ref)
        open_version = next((v for v in versions if v.valid_to is None), None)

        if open_version is not None:
            if open_version.content == provision.content and open_version.title == provision.title:
                return False
            valid_from = valid_from or date.today()
            self._store.close_open_version(document_id, provision.provision_ref, valid_from)
        elif versions and valid_from is None:
            # Reintroduced after being removed
            valid_from = date.today()

        self._store.add_provision_version(
            ProvisionVersion(
                document_id=document_id,
                provision_ref=provision.provision_ref,
                chapter=provision.chapter,
                section=provision.section,
                title=provision.title,
                content=provision.content,
                valid_from=valid_from,
            )
        )
        return True

    def ingest_many(self, items: Iterable[IngestItem]) -> list[IngestionStats]:
        """
        Ingest a batch. Parsing runs in a thread pool; writes stay on this thread.

        A document that fails is logged and skipped so the batch continues.
        """
        items = list(items)
        if not items:
            return []

        logger.info(f"Ingesting {len(items)} documents with {self._workers} workers")
        results: list[IngestionStats] = []

        with ThreadPoolExecutor(max_workers=self._workers) as pool:
            futures = [pool.submit(self.parse, item.document, item.text) for item in items]

            for item, future in zip(items, futures):
                with document_context(item.document.id):
                    try:
                        parsed = future.result()
                    except Exception as e:
                        logger.error(f"Skipping {item.document.id}: parse failed: {e}")
                        continue
                    try:
                        results.append(self.write(parsed, item.valid_from))
                    except IngestionError as e:
                        logger.error(f"Skipping {item.document.id}: {e.message}")

        logger.info(f"Batch done: {len(results)}/{len(items)} documents ingested")
        return results
