"""Account and customer resolution schemas for the Treegar API."""

from __future__ import annotations

from pydantic import Field

from .common import CamelModel


class Bank(CamelModel):
    """Destination bank."""

    bank_id: int = Field(..., description="Bank ID")
    bank_name: str = Field(..., description="Bank display name")
    bank_code: str | None = Field(default=None, description="Bank sort/NIP code")


class ResolveAccountRequest(CamelModel):
    """Request to resolve a bank account number to its holder's name."""

    bank_id: int = Field(..., description="Bank ID")
    account_number: str = Field(..., description="NUBAN account number")


class ResolvedAccount(CamelModel):
    """Resolved beneficiary identity."""

    account_name: str = Field(default="", description="Account holder name")
    account_number: str | None = Field(default=None, description="Account number")
    bank_name: str | None = Field(default=None, description="Bank name")


class ResolveCustomerRequest(CamelModel):
    """Request to resolve a customer tag or code."""

    identifier: str = Field(..., description="Customer tag or code")


class ResolvedCustomer(CamelModel):
    """Resolved Tag Pay recipient."""

    name: str = Field(default="", description="Customer name")
    customer_tag: str | None = Field(default=None, description="Canonical customer tag")
