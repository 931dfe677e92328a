"""Exception hierarchy for r2sql-shell."""

from __future__ import annotations


class R2SQLError(Exception):
    """Base exception for r2sql-shell."""


class ConfigurationError(R2SQLError):
    """Raised when session configuration cannot be resolved."""


class CatalogError(R2SQLError):
    """Raised when the Iceberg catalog rejects a request or cannot be reached."""


class QueryError(R2SQLError):
    """Raised when a query cannot be sent to the R2 SQL service."""


class ClipboardError(R2SQLError):
    """Raised when the system clipboard is unavailable."""
