"""Customer profile schema for the Treegar API."""

from __future__ import annotations

from decimal import Decimal

from pydantic import ConfigDict, Field

from .common import CamelModel
from .enums import CustomerType
from .verification import DocumentRecord, VerificationRecord


class CustomerProfile(CamelModel):
    """Authenticated customer's profile, including balance and KYC snapshot."""

    model_config = ConfigDict(extra="allow")

    customer_id: str | None = Field(default=None, description="Customer ID")
    customer_code: str | None = Field(default=None, description="Customer code")
    customer_type: CustomerType | None = Field(default=None, description="Customer class")
    account_balance: Decimal | None = Field(default=None, description="Available balance")
    pin_set: bool = Field(default=False, description="Whether a transaction PIN is set")
    verifications: list[VerificationRecord] = Field(
        default_factory=list, description="Verification snapshot"
    )
    documents: list[DocumentRecord] = Field(
        default_factory=list, description="Document snapshot"
    )
