"""Error taxonomy for verification and payout orchestration."""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class PayoutCoreError(Exception):
    """Base exception for orchestration errors."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class PayoutValidationError(PayoutCoreError):
    """Local validation failure. Raised before any network call."""

    def __init__(
        self,
        message: str,
        item_errors: Optional[Dict[str, Dict[str, str]]] = None,
        intent_errors: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.item_errors = item_errors or {}
        self.intent_errors = intent_errors or []

    def __str__(self) -> str:
        parts = list(self.intent_errors)
        for item_id, fields in self.item_errors.items():
            parts.extend(f"{item_id}.{field}: {msg}" for field, msg in fields.items())
        if parts:
            return f"{self.message}: {'; '.join(parts)}"
        return self.message


class ResolutionError(PayoutCoreError):
    """Account or customer-tag lookup failed or found nothing."""

    def __init__(
        self,
        message: str,
        details: Any = None,
        field_errors: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message, details)
        self.field_errors = field_errors or {}


class AuthorizationError(PayoutCoreError):
    """PIN rejected."""

    def __init__(self, message: str, attempt: int = 0, details: Any = None):
        super().__init__(message, details)
        self.attempt = attempt


class SubmissionError(PayoutCoreError):
    """Payout rejected after authorization.

    `field_errors` holds the backend's per-field messages, if it sent any.
    """

    def __init__(
        self,
        message: str,
        details: Any = None,
        field_errors: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message, details)
        self.field_errors = field_errors or {}
