"""Payout, Tag Pay and PIN schemas for the Treegar API."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import AliasChoices, ConfigDict, Field, field_validator

from .common import CamelModel


def _numeric_amount(value: Any) -> Any:
    if isinstance(value, str):
        cleaned = value.replace(",", "").strip()
        try:
            return float(Decimal(cleaned))
        except InvalidOperation:
            return value
    if isinstance(value, Decimal):
        return float(value)
    return value


class PayoutItem(CamelModel):
    """One bank payout line."""

    bank_id: int = Field(..., description="Bank ID")
    amount: float = Field(..., gt=0, description="Amount in naira")
    narration: str = Field(..., min_length=1, description="Transfer narration")
    account_number: str = Field(..., description="Beneficiary account number")
    beneficiary_name: str = Field(..., description="Resolved account name")
    save_beneficiary: bool = Field(default=False, description="Save to beneficiaries")

    @field_validator("amount", mode="before")
    @classmethod
    def _coerce_amount(cls, value: Any) -> Any:
        return _numeric_amount(value)


class SinglePayoutRequest(PayoutItem):
    """Single bank payout."""

    pin: str | None = Field(default=None, repr=False, description="Transaction PIN")


class BulkPayoutRequest(CamelModel):
    """Bulk payout submitted as one backend operation."""

    group_key: str = Field(..., description="Bulk group key")
    items: list[PayoutItem] = Field(..., min_length=1, description="Payout lines")
    pin: str | None = Field(default=None, repr=False, description="Transaction PIN")


class TagPayRequest(CamelModel):
    """Peer-to-peer transfer addressed by customer tag."""

    amount: float = Field(..., gt=0, description="Amount in naira")
    narration: str = Field(..., min_length=1, description="Transfer narration")
    destination_tag_or_code: str = Field(..., description="Recipient tag or code")
    pin: str | None = Field(default=None, repr=False, description="Transaction PIN")

    @field_validator("amount", mode="before")
    @classmethod
    def _coerce_amount(cls, value: Any) -> Any:
        return _numeric_amount(value)


class VerifyPinRequest(CamelModel):
    """PIN verification request."""

    pin: str = Field(..., pattern=r"^\d{4}$", repr=False, description="4-digit PIN")


class PayoutResponse(CamelModel):
    """Payout acknowledgement."""

    model_config = ConfigDict(extra="allow")

    reference: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "reference", "transactionReference", "transactionRef", "groupKey"
        ),
        description="Backend transaction reference",
    )
    status: str | None = Field(default=None, description="Backend status")


class BulkGroupMember(CamelModel):
    """Saved member of a bulk group."""

    id: str | None = Field(default=None, description="Member ID")
    bank_id: int = Field(..., description="Bank ID")
    bank_name: str | None = Field(default=None, description="Bank name")
    account_number: str = Field(..., description="Account number")
    name: str = Field(..., description="Account holder name")

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        return str(value) if value is not None else None


class BulkGroup(CamelModel):
    """Named, saved set of bulk recipients."""

    group_key: str = Field(..., description="Group key")
    items: list[BulkGroupMember] = Field(default_factory=list, description="Members")
