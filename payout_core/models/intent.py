"""Transaction intent model and lifecycle."""
import copy
import enum
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional
from uuid import uuid4

from payout_core.models.line_item import TagPayDraft, TransferLineItem


class IntentKind(str, enum.Enum):
    """Which backend operation settles the intent."""
    SINGLE = "SINGLE"
    BULK = "BULK"
    TAG_PAY = "TAG_PAY"


class IntentStatus(str, enum.Enum):
    """Transaction intent lifecycle."""
    DRAFT = "DRAFT"
    PENDING_AUTHORIZATION = "PENDING_AUTHORIZATION"
    SUBMITTED = "SUBMITTED"
    SETTLED = "SETTLED"
    FAILED = "FAILED"


VALID_TRANSITIONS = {
    IntentStatus.DRAFT: [IntentStatus.PENDING_AUTHORIZATION, IntentStatus.SUBMITTED],
    IntentStatus.PENDING_AUTHORIZATION: [
        IntentStatus.SUBMITTED,
        IntentStatus.DRAFT,  # Gate closed before submitting
    ],
    IntentStatus.SUBMITTED: [
        IntentStatus.SETTLED,
        IntentStatus.FAILED,
        IntentStatus.PENDING_AUTHORIZATION,  # PIN rejected by the payout call
    ],
    IntentStatus.SETTLED: [],  # Terminal state
    IntentStatus.FAILED: [],  # Terminal state
}


@dataclass
class IntentSummary:
    """What the authorization screen shows."""
    title: str
    recipient: str
    amount: Decimal


@dataclass
class TransactionIntent:
    """
    Validated transfer payload awaiting authorization.

    Line items are copied on construction so later form edits cannot
    change what is being authorized.
    """
    kind: IntentKind
    items: List[TransferLineItem] = field(default_factory=list)
    tag_pay: Optional[TagPayDraft] = None
    group_key: Optional[str] = None
    id: str = field(default_factory=lambda: uuid4().hex)
    status: IntentStatus = IntentStatus.DRAFT
    reference: Optional[str] = None
    failure_reason: Optional[str] = None

    @classmethod
    def single(cls, item: TransferLineItem) -> "TransactionIntent":
        return cls(kind=IntentKind.SINGLE, items=[copy.deepcopy(item)])

    @classmethod
    def bulk(
        cls, items: List[TransferLineItem], group_key: Optional[str] = None
    ) -> "TransactionIntent":
        return cls(
            kind=IntentKind.BULK,
            items=[copy.deepcopy(item) for item in items],
            group_key=group_key,
        )

    @classmethod
    def for_tag_pay(cls, draft: TagPayDraft) -> "TransactionIntent":
        return cls(kind=IntentKind.TAG_PAY, tag_pay=copy.deepcopy(draft))

    @property
    def total_amount(self) -> Decimal:
        if self.kind == IntentKind.TAG_PAY:
            return self.tag_pay.amount if self.tag_pay else Decimal("0")
        return sum((item.amount for item in self.items), Decimal("0"))

    @property
    def is_terminal(self) -> bool:
        return not VALID_TRANSITIONS[self.status]

    def can_transition_to(self, new_status: IntentStatus) -> bool:
        return new_status in VALID_TRANSITIONS[self.status]

    def transition_to(self, new_status: IntentStatus) -> None:
        if not self.can_transition_to(new_status):
            raise ValueError(
                f"Invalid transition for intent {self.id}: {self.status.value} -> {new_status.value}"
            )
        self.status = new_status

    def summary(self) -> IntentSummary:
        """Title, recipient and total for the authorization screen."""
        if self.kind == IntentKind.TAG_PAY:
            draft = self.tag_pay or TagPayDraft()
            return IntentSummary("Tag Pay Transfer", draft.destination_tag, self.total_amount)
        if self.kind == IntentKind.BULK:
            return IntentSummary(
                "Bulk Transfer", f"{len(self.items)} recipients", self.total_amount
            )
        item = self.items[0] if self.items else TransferLineItem()
        return IntentSummary(
            "Bank Transfer", item.beneficiary_name or item.account_number, self.total_amount
        )
