"""
Error taxonomy shared by the store, the query layer and the migrator.

`main.py` maps the request-scoped errors to HTTP responses; `MigrationError`
is only raised at startup and aborts it.
"""

from __future__ import annotations


class CatalogError(RuntimeError):
    pass


class ValidationError(CatalogError):
    """Malformed request parameters or payload. No state was changed."""


class NotFoundError(CatalogError):
    pass


class MigrationError(CatalogError):
    pass


# Retryable by the caller; nothing retries internally.
class StoreUnavailableError(CatalogError):
    pass
