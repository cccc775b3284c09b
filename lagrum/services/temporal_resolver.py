"""
Temporal Resolver - "what did this provision say on date D"

Selects the provision version whose validity window covers the as-of date:
valid_from inclusive (null = since inception), valid_to exclusive
(null = still current). Without a date the current wording is returned.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Optional, Union

from ..core.exceptions import ValidationError
from ..models.legal import ProvisionVersion, ResolutionStatus, normalize_provision_ref
from ..utils.logging import get_logger
from .legal_store import LegalStore

logger = get_logger(__name__)

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

DateLike = Union[date, str]


@dataclass
class ProvisionResolution:
    """Outcome of resolving one provision, found or not."""

    document_id: str
    provision_ref: str
    status: ResolutionStatus
    as_of_date: Optional[date] = None
    content: Optional[str] = None
    title: Optional[str] = None
    chapter: Optional[str] = None
    section: Optional[str] = None
    valid_from: Optional[date] = None
    valid_to: Optional[date] = None
    version_id: Optional[int] = None
    earliest_valid_from: Optional[date] = None  # set when the date precedes the history

    @property
    def found(self) -> bool:
        return self.status in (ResolutionStatus.CURRENT, ResolutionStatus.HISTORICAL)


@dataclass
class ProvisionDiff:
    first: ProvisionResolution
    second: ProvisionResolution

    @property
    def changed(self) -> bool:
        if self.first.found != self.second.found:
            return True
        return self.first.content != self.second.content


def coerce_as_of_date(value: Optional[DateLike]) -> Optional[date]:
    """Accept a date or an ISO "YYYY-MM-DD" string; None passes through."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and _ISO_DATE_RE.match(value.strip()):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            pass
    raise ValidationError(
        f"Invalid date: {value!r}. Expected YYYY-MM-DD.",
        service_name="temporal_resolver",
        operation="coerce_as_of_date",
    )


def _version_rank(version: ProvisionVersion) -> tuple[bool, date, int]:
    # Null valid_from ranks below every real date
    return (version.valid_from is not None, version.valid_from or date.min, version.id or 0)


def select_version(versions: Iterable[ProvisionVersion], as_of: date) -> Optional[ProvisionVersion]:
    """
    Pick the version valid at ``as_of``.

    Among versions covering the date, the one with the latest non-null
    valid_from wins; remaining ties go to the highest sequence id.
    """
    candidates = [v for v in versions if v.covers(as_of)]
    if not candidates:
        return None
    return max(candidates, key=_version_rank)


class TemporalResolver:
    """Point-in-time provision lookup over a ``LegalStore``."""

    def __init__(self, store: LegalStore):
        if store is None:
            raise ValidationError("A legal store is required", service_name="temporal_resolver")
        self._store = store

    @staticmethod
    def _require(document_id: str, provision_ref: str) -> None:
        if not document_id:
            raise ValidationError("document_id is required", service_name="temporal_resolver", operation="resolve")
        if not provision_ref:
            raise ValidationError("provision_ref is required", service_name="temporal_resolver", operation="resolve")

    def resolve(
        self,
        document_id: str,
        provision_ref: str,
        as_of_date: Optional[DateLike] = None,
    ) -> ProvisionResolution:
        """
        Resolve a provision as of ``as_of_date`` (or its current wording).

        Raises:
            ValidationError: missing ids or an unparsable date
        """
        self._require(document_id, provision_ref)
        provision_ref = normalize_provision_ref(provision_ref)
        as_of = coerce_as_of_date(as_of_date)

        if as_of is None:
            return self._resolve_current(document_id, provision_ref)

        versions = self._store.get_provision_versions(document_id, provision_ref)
        selected = select_version(versions, as_of)

        if selected is None:
            if not versions:
                logger.debug(f"No history for {document_id} {provision_ref}")
                return ProvisionResolution(
                    document_id=document_id,
                    provision_ref=provision_ref,
                    status=ResolutionStatus.NEVER_EXISTED,
                    as_of_date=as_of,
                )
            known_starts = [v.valid_from for v in versions if v.valid_from is not None]
            earliest = min(known_starts) if known_starts else None
            return ProvisionResolution(
                document_id=document_id,
                provision_ref=provision_ref,
                status=ResolutionStatus.NOT_FOUND,
                as_of_date=as_of,
                earliest_valid_from=earliest if earliest and as_of < earliest else None,
            )

        return ProvisionResolution(
            document_id=document_id,
            provision_ref=provision_ref,
            status=ResolutionStatus.CURRENT if selected.is_current else ResolutionStatus.HISTORICAL,
            as_of_date=as_of,
            content=selected.content,
            title=selected.title,
            chapter=selected.chapter,
            section=selected.section,
            valid_from=selected.valid_from,
            valid_to=selected.valid_to,
            version_id=selected.id,
        )

    def _resolve_current(self, document_id: str, provision_ref: str) -> ProvisionResolution:
        provision = self._store.get_provision(document_id, provision_ref)
        if provision is not None:
            return ProvisionResolution(
                document_id=document_id,
                provision_ref=provision_ref,
                status=ResolutionStatus.CURRENT,
                content=provision.content,
                title=provision.title,
                chapter=provision.chapter,
                section=provision.section,
            )

        # Removed from the current text but with recorded history
        if self._store.get_provision_versions(document_id, provision_ref):
            return ProvisionResolution(
                document_id=document_id, provision_ref=provision_ref, status=ResolutionStatus.NOT_FOUND
            )
        return ProvisionResolution(
            document_id=document_id, provision_ref=provision_ref, status=ResolutionStatus.NEVER_EXISTED
        )

    def all_versions(self, document_id: str, provision_ref: str) -> list[ProvisionVersion]:
        """Full recorded history, oldest first."""
        self._require(document_id, provision_ref)
        provision_ref = normalize_provision_ref(provision_ref)
        versions = self._store.get_provision_versions(document_id, provision_ref)
        return sorted(versions, key=_version_rank)

    def diff(
        self,
        document_id: str,
        provision_ref: str,
        date1: DateLike,
        date2: DateLike,
    ) -> ProvisionDiff:
        """Resolve the provision at two dates and report whether the wording changed."""
        if date1 is None or date2 is None:
            raise ValidationError("Both dates are required", service_name="temporal_resolver", operation="diff")
        return ProvisionDiff(
            first=self.resolve(document_id, provision_ref, date1),
            second=self.resolve(document_id, provision_ref, date2),
        )
