"""Verification and document schemas for the Treegar API."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from pydantic import Field, field_validator

from .common import CamelModel
from .enums import DocumentStatus, VerificationStatus, VerificationType

logger = logging.getLogger(__name__)


class VerificationRecord(CamelModel):
    """Server-owned KYC verification record."""

    type: VerificationType = Field(..., description="Verification type")
    status: VerificationStatus = Field(
        default=VerificationStatus.NOT_STARTED, description="Verification status"
    )
    is_completed: bool = Field(default=False, description="Completion flag")
    result_payload: dict[str, Any] | None = Field(
        default=None, description="Provider result payload"
    )
    updated_at: datetime | None = Field(
        default=None, description="Last update timestamp"
    )

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> Any:
        # Unknown or missing statuses never count as verified
        if value is None or value == "":
            return VerificationStatus.NOT_STARTED
        if isinstance(value, str):
            try:
                return VerificationStatus(value)
            except ValueError:
                logger.warning(f"Unknown verification status {value!r}, treating as NotStarted")
                return VerificationStatus.NOT_STARTED
        return value

    @field_validator("is_completed", mode="before")
    @classmethod
    def _coerce_completed(cls, value: Any) -> Any:
        return bool(value) if value is not None else False

    @property
    def is_satisfied(self) -> bool:
        """Whether this record counts as a completed step."""
        return self.is_completed or self.status == VerificationStatus.VERIFIED


class DocumentRecord(CamelModel):
    """Business document requirement and its review status."""

    document_key: str = Field(..., description="Document key (e.g. 'cac_certificate')")
    required: bool = Field(default=False, description="Whether the document is mandatory")
    status: DocumentStatus = Field(
        default=DocumentStatus.NOT_UPLOADED, description="Review status"
    )

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> Any:
        if value is None or value == "":
            return DocumentStatus.NOT_UPLOADED
        return value

    @property
    def label(self) -> str:
        """Display label, e.g. 'CAC CERTIFICATE'."""
        return self.document_key.upper().replace("_", " ")


class KYCSubmissionRequest(CamelModel):
    """Submit a BVN or NIN for verification."""

    customer_id: str = Field(..., description="Customer ID")
    customer_code: str | None = Field(default=None, description="Customer code")
    bvn: str | None = Field(default=None, description="Bank Verification Number")
    nin: str | None = Field(default=None, description="National Identification Number")
