"""
Custom Exceptions for the Lagrum citation engine
Separates caller bugs and store failures from data-quality outcomes.

Parse failures and "not found in corpus" results are values, not exceptions.
Only precondition violations and infrastructure failures are raised.
"""

from typing import Any, Dict, Optional


class LagrumError(Exception):
    """
    Base exception for all Lagrum errors.

    All custom exceptions should inherit from this.
    Carries structured context for debugging and monitoring.
    """

    def __init__(
        self,
        message: str,
        service_name: Optional[str] = None,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.service_name = service_name
        self.operation = operation
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to structured dict for logging/monitoring."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "service_name": self.service_name,
            "operation": self.operation,
            "details": self.details,
        }


# ═══════════════════════════════════════════════════════════════════
# CALLER ERRORS
# ═══════════════════════════════════════════════════════════════════


class ValidationError(LagrumError):
    """
    A required input is missing or malformed (missing document id,
    unparsable as-of date, unknown citation style, ...).

    Raised immediately: it indicates a caller bug, not bad source data.
    """

    pass


class ResourceNotFoundError(LagrumError):
    """
    A document required by an operation does not exist in the store.

    Only raised by operations that cannot return a meaningful value without
    the document (e.g. EU basis lookup for an unknown statute).
    """

    pass


# ═══════════════════════════════════════════════════════════════════
# CONFIGURATION ERRORS
# ═══════════════════════════════════════════════════════════════════


class ConfigurationError(LagrumError):
    """Invalid configuration or missing required settings."""

    pass


# ═══════════════════════════════════════════════════════════════════
# STORE / INGESTION ERRORS
# ═══════════════════════════════════════════════════════════════════


class StoreError(LagrumError):
    """The backing store failed (SQLite error, schema missing, ...)."""

    pass


class IngestionError(LagrumError):
    """
    Ingesting a single document failed (segmentation, extraction or write).

    Batch ingestion logs and skips the document so the run can continue.
    """

    pass
