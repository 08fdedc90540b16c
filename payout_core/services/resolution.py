"""Account and customer-tag resolution.

Line items resolve independently: each has its own debounce timer and its own
in-flight call. An edit to an item's bank or account number resets it to
Unresolved immediately and bumps its revision; a result that comes back for an
older revision is discarded, so a superseded call can never overwrite a newer
edit.
"""
import asyncio
import logging
from dataclasses import dataclass
from functools import partial
from typing import Dict, List, Optional, Sequence, Tuple

from payout_core.config import Settings, get_settings
from payout_core.errors import ResolutionError
from payout_core.models.line_item import (
    ResolutionState,
    ResolutionStatus,
    TagPayDraft,
    TransferLineItem,
)
from payout_core.services.scheduling import KeyedDebouncer
from treegar_client import TreegarClient, TreegarError
from treegar_client.schemas import Bank, BulkGroup, ResolvedAccount, ResolvedCustomer

logger = logging.getLogger(__name__)


def search_banks(banks: Sequence[Bank], term: str, limit: int = 10) -> List[Bank]:
    """Filter banks by name: exact match first, then prefix matches, then A-Z."""
    term = (term or "").strip().lower()
    matches = [bank for bank in banks if term in bank.bank_name.lower()]

    def rank(bank: Bank) -> Tuple[int, str]:
        name = bank.bank_name.lower()
        if name == term:
            return (0, name)
        if name.startswith(term):
            return (1, name)
        return (2, name)

    return sorted(matches, key=rank)[:limit]


@dataclass(frozen=True)
class ResolutionSnapshot:
    """Inputs a resolution call was started with."""
    key: str
    revision: int
    bank_id: Optional[int] = None
    account_number: str = ""
    tag: str = ""


class AccountResolutionEngine:
    """
    Owns the line items of a single or bulk transfer form and resolves each
    one's account name as its bank and account number are filled in.

    In bulk mode new recipients are saved as beneficiaries unless told otherwise.
    """

    def __init__(
        self,
        client: TreegarClient,
        settings: Optional[Settings] = None,
        bulk: bool = False,
    ):
        self.client = client
        self.settings = settings or get_settings()
        self.bulk = bulk
        self.group_key: Optional[str] = None
        self._items: Dict[str, TransferLineItem] = {}
        self._debouncer = KeyedDebouncer(
            self.settings.resolution_debounce_ms,
            cancel_in_flight=self.settings.cancel_superseded_requests,
        )

    @property
    def items(self) -> List[TransferLineItem]:
        return list(self._items.values())

    def get(self, item_id: str) -> TransferLineItem:
        try:
            return self._items[item_id]
        except KeyError:
            raise KeyError(f"Line item {item_id} not found")

    def is_pending(self, item_id: str) -> bool:
        """Whether the item's debounce timer is still counting down."""
        return self._debouncer.is_pending(item_id)

    @property
    def all_resolved(self) -> bool:
        return bool(self._items) and all(i.resolution.is_resolved for i in self._items.values())

    # ==================== Item management ====================

    def add_item(self, **fields) -> TransferLineItem:
        """Add a recipient. Fields default to an empty, unresolved item."""
        fields.setdefault("save_beneficiary", self.bulk)
        item = TransferLineItem(**fields)
        self._items[item.id] = item
        self._maybe_schedule(item)
        return item

    def remove_item(self, item_id: str) -> None:
        self._debouncer.cancel(item_id)
        self._items.pop(item_id, None)

    def load_bulk_group(self, group: BulkGroup) -> List[TransferLineItem]:
        """Replace the items with a saved group's members, already resolved."""
        for item_id in list(self._items):
            self.remove_item(item_id)

        self.bulk = True
        self.group_key = group.group_key
        for member in group.items:
            fields = {}
            if member.id:
                fields["id"] = member.id
            item = TransferLineItem(
                bank_id=member.bank_id,
                bank_name=member.bank_name or "",
                account_number=member.account_number,
                beneficiary_name=member.name,
                save_beneficiary=True,
                resolution=ResolutionState.resolved(member.name),
                **fields,
            )
            self._items[item.id] = item
        logger.info(f"Loaded bulk group {group.group_key} with {len(group.items)} members")
        return self.items

    # ==================== Edits ====================

    def set_account_number(self, item_id: str, account_number: str) -> TransferLineItem:
        return self._edit_inputs(self.get(item_id), account_number=(account_number or "").strip())

    def set_bank(self, item_id: str, bank_id: Optional[int], bank_name: str = "") -> TransferLineItem:
        item = self.get(item_id)
        item.bank_name = bank_name if bank_id is not None else ""
        return self._edit_inputs(item, bank_id=bank_id)

    def set_amount(self, item_id: str, amount) -> TransferLineItem:
        item = self.get(item_id)
        item.set_amount(amount)
        return item

    def set_narration(self, item_id: str, narration: str) -> TransferLineItem:
        item = self.get(item_id)
        item.narration = narration
        return item

    def set_save_beneficiary(self, item_id: str, save: bool) -> TransferLineItem:
        item = self.get(item_id)
        item.save_beneficiary = save
        return item

    def retry(self, item_id: str) -> TransferLineItem:
        """Re-run resolution for an item whose lookup failed."""
        item = self.get(item_id)
        if item.resolution.is_resolved or item.resolution.is_pending:
            return item
        self._supersede(item)
        self._maybe_schedule(item)
        return item

    def _edit_inputs(self, item: TransferLineItem, **changes) -> TransferLineItem:
        if all(getattr(item, name) == value for name, value in changes.items()):
            return item
        for name, value in changes.items():
            setattr(item, name, value)
        self._supersede(item)
        self._maybe_schedule(item)
        return item

    def _supersede(self, item: TransferLineItem) -> None:
        item.revision += 1
        self._debouncer.cancel(item.id)
        item.resolution = ResolutionState.unresolved()
        item.beneficiary_name = ""

    # ==================== Resolution ====================

    def qualifies(self, item: TransferLineItem) -> bool:
        return (
            len(item.account_number) == self.settings.account_number_length
            and item.bank_id is not None
            and item.resolution.status == ResolutionStatus.UNRESOLVED
        )

    def _maybe_schedule(self, item: TransferLineItem) -> None:
        if not self.qualifies(item):
            return
        snapshot = ResolutionSnapshot(
            key=item.id,
            revision=item.revision,
            bank_id=item.bank_id,
            account_number=item.account_number,
        )
        self._debouncer.schedule(item.id, partial(self._run, snapshot))

    def _is_current(self, snapshot: ResolutionSnapshot) -> bool:
        item = self._items.get(snapshot.key)
        return (
            item is not None
            and item.revision == snapshot.revision
            and item.bank_id == snapshot.bank_id
            and item.account_number == snapshot.account_number
        )

    async def resolve(self, bank_id: int, account_number: str) -> ResolutionState:
        """Resolve one account: Resolved(account name) or Failed(reason)."""
        try:
            account = await self._lookup(bank_id, account_number)
        except ResolutionError as e:
            logger.warning(f"Account resolution failed for bank {bank_id}: {e.message}")
            return ResolutionState.failed(e.field_errors.get("accountNumber") or e.message)
        return ResolutionState.resolved(account.account_name)

    async def _lookup(self, bank_id: int, account_number: str) -> ResolvedAccount:
        try:
            account = await self.client.resolve_account(bank_id, account_number)
        except TreegarError as e:
            raise ResolutionError(
                e.message or "Failed to resolve account", e.details, e.field_errors
            ) from e
        if not account.account_name:
            raise ResolutionError("Account not found")
        return account

    async def _run(self, snapshot: ResolutionSnapshot) -> None:
        if not self._is_current(snapshot):
            return
        item = self._items[snapshot.key]
        item.resolution = ResolutionState.resolving()

        try:
            outcome = await self.resolve(snapshot.bank_id, snapshot.account_number)
        except asyncio.CancelledError:
            if self._is_current(snapshot):
                item.resolution = ResolutionState.unresolved()
            raise
        except Exception:
            logger.exception(f"Unexpected error resolving item {snapshot.key}")
            outcome = ResolutionState.failed("Failed to resolve account")

        if not self._is_current(snapshot):
            logger.debug(f"Discarding stale resolution for item {snapshot.key}")
            return

        item.resolution = outcome
        item.beneficiary_name = outcome.account_name if outcome.is_resolved else ""

    async def wait_idle(self) -> None:
        """Wait for every pending timer and in-flight lookup to finish."""
        await self._debouncer.wait_idle()

    def close(self) -> None:
        self._debouncer.cancel_all()
        for item in self._items.values():
            if item.resolution.is_pending:
                item.resolution = ResolutionState.unresolved()


class CustomerTagResolver:
    """Resolves the Tag Pay recipient from a free-text customer tag or code."""

    def __init__(self, client: TreegarClient, settings: Optional[Settings] = None):
        self.client = client
        self.settings = settings or get_settings()
        self.draft = TagPayDraft()
        self._debouncer = KeyedDebouncer(
            self.settings.resolution_debounce_ms,
            cancel_in_flight=self.settings.cancel_superseded_requests,
        )

    def set_tag(self, tag: str) -> TagPayDraft:
        draft = self.draft
        if tag == draft.destination_tag:
            return draft

        draft.destination_tag = tag
        draft.revision += 1
        self._debouncer.cancel(draft.id)
        draft.resolution = ResolutionState.unresolved()
        draft.customer = None

        if len(tag.strip()) >= self.settings.customer_tag_min_length:
            snapshot = ResolutionSnapshot(key=draft.id, revision=draft.revision, tag=tag.strip())
            self._debouncer.schedule(draft.id, partial(self._run, snapshot))
        return draft

    def set_amount(self, amount) -> TagPayDraft:
        self.draft.set_amount(amount)
        return self.draft

    def set_narration(self, narration: str) -> TagPayDraft:
        self.draft.narration = narration
        return self.draft

    def reset(self) -> TagPayDraft:
        self._debouncer.cancel_all()
        self.draft = TagPayDraft()
        return self.draft

    def is_pending(self) -> bool:
        return self._debouncer.is_pending(self.draft.id)

    async def resolve(self, tag: str) -> Tuple[ResolutionState, Optional[ResolvedCustomer]]:
        """Resolve a tag: (Resolved(name), customer) or (Failed(reason), None)."""
        try:
            customer = await self.client.resolve_customer(tag)
        except TreegarError as e:
            logger.warning(f"Customer tag resolution failed: {e.message}")
            return ResolutionState.failed(e.message or "Failed to resolve customer tag"), None
        if not customer.name:
            return ResolutionState.failed("Customer tag not found"), None
        return ResolutionState.resolved(customer.name), customer

    def _is_current(self, snapshot: ResolutionSnapshot) -> bool:
        return (
            self.draft.id == snapshot.key
            and self.draft.revision == snapshot.revision
            and self.draft.destination_tag.strip() == snapshot.tag
        )

    async def _run(self, snapshot: ResolutionSnapshot) -> None:
        if not self._is_current(snapshot):
            return
        draft = self.draft
        draft.resolution = ResolutionState.resolving()

        try:
            outcome, customer = await self.resolve(snapshot.tag)
        except asyncio.CancelledError:
            if self._is_current(snapshot):
                draft.resolution = ResolutionState.unresolved()
            raise
        except Exception:
            logger.exception("Unexpected error resolving customer tag")
            outcome, customer = ResolutionState.failed("Failed to resolve customer tag"), None

        if not self._is_current(snapshot):
            logger.debug("Discarding stale customer tag resolution")
            return

        draft.resolution = outcome
        draft.customer = customer

    async def wait_idle(self) -> None:
        await self._debouncer.wait_idle()

    def close(self) -> None:
        self._debouncer.cancel_all()
        if self.draft.resolution.is_pending:
            self.draft.resolution = ResolutionState.unresolved()
