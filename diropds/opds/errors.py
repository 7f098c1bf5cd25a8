from __future__ import annotations

from typing import Optional


class CatalogError(RuntimeError):
    """Base class for failures raised while resolving a catalog request."""

    def __init__(self, message: str, *, path: Optional[str] = None) -> None:
        super().__init__(message)
        self.path = path


class MalformedRequestError(CatalogError):
    """Raised when a request path carries invalid percent-encoding."""


class NotFoundError(CatalogError):
    """Raised when a request path has no filesystem entry under the catalog root."""


class AccessError(CatalogError):
    """Raised when filesystem metadata for a path cannot be read."""


class SerializationError(CatalogError):
    """Raised when a feed cannot be encoded as XML."""
