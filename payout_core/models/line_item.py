"""Transfer line items and their resolution state."""
import enum
import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Optional
from uuid import uuid4

from treegar_client.schemas import ResolvedCustomer


class ResolutionStatus(str, enum.Enum):
    """Resolution lifecycle of one line item."""
    UNRESOLVED = "UNRESOLVED"
    RESOLVING = "RESOLVING"
    RESOLVED = "RESOLVED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class ResolutionState:
    """
    Tagged resolution state: Unresolved | Resolving | Resolved(name) | Failed(reason).

    Replaced wholesale on every change, never mutated.
    """
    status: ResolutionStatus
    account_name: Optional[str] = None  # Only for RESOLVED
    error: Optional[str] = None  # Only for FAILED

    @classmethod
    def unresolved(cls) -> "ResolutionState":
        return cls(ResolutionStatus.UNRESOLVED)

    @classmethod
    def resolving(cls) -> "ResolutionState":
        return cls(ResolutionStatus.RESOLVING)

    @classmethod
    def resolved(cls, account_name: str) -> "ResolutionState":
        return cls(ResolutionStatus.RESOLVED, account_name=account_name)

    @classmethod
    def failed(cls, reason: str) -> "ResolutionState":
        return cls(ResolutionStatus.FAILED, error=reason)

    @property
    def is_resolved(self) -> bool:
        return self.status == ResolutionStatus.RESOLVED

    @property
    def is_pending(self) -> bool:
        return self.status == ResolutionStatus.RESOLVING


def parse_amount(value) -> Decimal:
    """Parse a display amount such as '1,234.50' into a Decimal. Invalid input is 0."""
    if value is None:
        return Decimal("0")
    if isinstance(value, (int, Decimal)):
        return Decimal(value)
    cleaned = re.sub(r"[^0-9.]", "", str(value))
    try:
        return Decimal(cleaned) if cleaned else Decimal("0")
    except InvalidOperation:
        return Decimal("0")


def format_amount_display(value) -> str:
    """Format typed amount text with thousands separators ('1234.5' -> '1,234.5')."""
    if value is None or value == "":
        return ""
    numeric = re.sub(r"[^0-9.]", "", str(value))
    whole, dot, fraction = numeric.partition(".")
    whole = re.sub(r"\B(?=(\d{3})+(?!\d))", ",", whole)
    return f"{whole}{dot}{fraction}"


@dataclass
class TransferLineItem:
    """One payout recipient. A single transfer has one, a bulk transfer N."""
    id: str = field(default_factory=lambda: uuid4().hex)
    bank_id: Optional[int] = None
    bank_name: str = ""
    account_number: str = ""
    beneficiary_name: str = ""  # Read-only once resolved
    display_amount: str = ""
    amount: Decimal = Decimal("0")
    narration: str = ""
    save_beneficiary: bool = False
    resolution: ResolutionState = field(default_factory=ResolutionState.unresolved)
    revision: int = 0  # Bumped on every bank/account edit

    def set_amount(self, text) -> None:
        self.display_amount = format_amount_display(text)
        self.amount = parse_amount(self.display_amount)


@dataclass
class TagPayDraft:
    """Tag Pay recipient form; resolved by customer tag instead of bank account."""
    id: str = field(default_factory=lambda: uuid4().hex)
    destination_tag: str = ""
    display_amount: str = ""
    amount: Decimal = Decimal("0")
    narration: str = ""
    resolution: ResolutionState = field(default_factory=ResolutionState.unresolved)
    customer: Optional[ResolvedCustomer] = None
    revision: int = 0

    def set_amount(self, text) -> None:
        self.display_amount = format_amount_display(text)
        self.amount = parse_amount(self.display_amount)
