"""Exceptions raised by the Treegar API client.

Every failure surfaces as a ``TreegarError``. Errors built from a response
carry the HTTP status and the envelope's ``errors`` list, so callers can show
field-level messages next to the inputs that caused them.
"""

from __future__ import annotations

from typing import Any, ClassVar


class TreegarError(Exception):
    """Base exception for Treegar API errors.

    Attributes:
        message: Envelope ``message`` or a fallback description.
        details: Raw response body or other context.
        status_code: HTTP status, when the error came from a response.
        errors: Entries of the envelope's ``errors`` list.
    """

    def __init__(
        self,
        message: str,
        details: Any = None,
        *,
        status_code: int | None = None,
        errors: list[Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details
        self.status_code = status_code
        self.errors = list(errors or [])

    @property
    def field_errors(self) -> dict[str, str]:
        """Envelope errors keyed by field.

        Entries may be ``{"field": ..., "message": ...}`` objects or bare
        strings; bare strings are collected under the empty key.
        """
        fields: dict[str, str] = {}
        for entry in self.errors:
            if isinstance(entry, dict):
                name = entry.get("field") or entry.get("propertyName") or entry.get("key") or ""
                text = entry.get("message") or entry.get("errorMessage") or ""
            else:
                name, text = "", str(entry)
            if not text:
                continue
            fields[name] = f"{fields[name]}; {text}" if name in fields else text
        return fields

    def __str__(self) -> str:
        prefix = f"[{self.status_code}] " if self.status_code else ""
        if self.errors:
            return f"{prefix}{self.message}: {self.errors}"
        return f"{prefix}{self.message}"


class TreegarHTTPError(TreegarError):
    """Non-2xx response. Subclasses claim the statuses they represent."""

    statuses: ClassVar[tuple[int, ...]] = ()

    @classmethod
    def for_status(
        cls,
        status: int,
        message: str,
        details: Any = None,
        errors: list[Any] | None = None,
    ) -> "TreegarHTTPError":
        """Build the most specific error for an HTTP status."""
        error_cls = TreegarServerError if status >= 500 else cls
        for sub in cls.__subclasses__():
            if status in sub.statuses:
                error_cls = sub
                break
        return error_cls(message, details, status_code=status, errors=errors)


class TreegarAuthError(TreegarHTTPError):
    """Token or PIN not accepted."""

    statuses = (401, 403)


class TreegarNotFoundError(TreegarHTTPError):
    statuses = (404,)


class TreegarValidationError(TreegarHTTPError):
    """Request body refused; see ``field_errors``."""

    statuses = (400, 422)


class TreegarRateLimitError(TreegarHTTPError):
    statuses = (429,)


class TreegarServerError(TreegarHTTPError):
    """5xx. Retried for idempotent calls only."""


class TreegarRejectedError(TreegarError):
    """2xx response whose envelope reported ``success: false``."""


class TreegarResponseError(TreegarError):
    """2xx response whose body could not be decoded or parsed."""


class TreegarNetworkError(TreegarError):
    """Transport failure or request timeout."""


class TreegarTimeoutError(TreegarError):
    """A polling helper gave up before the record settled."""
