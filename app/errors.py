"""Exception types raised by the catalog cache."""

from __future__ import annotations


class CatalogError(Exception):
    """Base class for catalog cache failures."""


class NetworkFailure(CatalogError):
    """Remote host unreachable, timed out, or answered with a non-2xx status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.endpoint = endpoint


class ParseFailure(CatalogError):
    """Response body was malformed or lacked an expected field."""


class NotFound(CatalogError, LookupError):
    """No record exists for the requested id."""

    def __init__(self, kind: str, key: object) -> None:
        super().__init__(f"{kind} {key} not found")
        self.kind = kind
        self.key = key
