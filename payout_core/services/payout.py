"""Payout Orchestrator - validates and submits transaction intents.

Flow: local validation -> PIN verification (when a PIN is attached) ->
single / bulk / Tag Pay submission -> cache invalidation.

Validation failures never reach the network. Submissions are never retried
and never deduplicated: submitting the same intent twice sends two payouts.
"""
import logging
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union

from payout_core.config import Settings, get_settings
from payout_core.errors import AuthorizationError, PayoutValidationError, SubmissionError
from payout_core.models.intent import IntentKind, IntentStatus, TransactionIntent
from payout_core.models.line_item import TransferLineItem
from payout_core.services.cache import CacheKey, QueryCache
from treegar_client import TreegarAuthError, TreegarClient, TreegarError
from treegar_client.schemas import (
    BulkPayoutRequest,
    PayoutItem,
    PayoutResponse,
    SinglePayoutRequest,
    TagPayRequest,
)

logger = logging.getLogger(__name__)

PayoutRequest = Union[SinglePayoutRequest, BulkPayoutRequest, TagPayRequest]


@dataclass
class PayoutReceipt:
    """Successful submission."""
    intent_id: str
    kind: IntentKind
    reference: Optional[str]
    response: PayoutResponse


class PayoutOrchestrator:
    """Validates fully-resolved intents, submits them and refreshes read views."""

    def __init__(
        self,
        client: TreegarClient,
        cache: QueryCache,
        settings: Optional[Settings] = None,
    ):
        self.client = client
        self.cache = cache
        self.settings = settings or get_settings()

    # ==================== Validation ====================

    def _item_errors(self, item: TransferLineItem) -> Dict[str, str]:
        errors = {}
        if item.bank_id is None:
            errors["bank"] = "Bank required"
        if not item.account_number:
            errors["account_number"] = "Account number required"
        elif not item.resolution.is_resolved:
            errors["account_number"] = "Account must be resolved"
        if item.amount <= 0:
            errors["amount"] = "Amount must be greater than 0"
        if not item.narration.strip():
            errors["narration"] = "Narration is required"
        return errors

    def collect_errors(
        self, intent: TransactionIntent
    ) -> Tuple[Dict[str, Dict[str, str]], List[str]]:
        """Per-item field errors and intent-level errors; both empty when valid."""
        item_errors: Dict[str, Dict[str, str]] = {}
        intent_errors: List[str] = []

        if intent.kind == IntentKind.TAG_PAY:
            draft = intent.tag_pay
            if draft is None:
                return {}, ["Tag Pay details are missing"]
            errors = {}
            if not draft.destination_tag.strip():
                errors["destination_tag"] = "Customer tag is required"
            elif not draft.resolution.is_resolved or draft.customer is None:
                errors["destination_tag"] = "Please resolve customer tag first"
            if draft.amount <= 0:
                errors["amount"] = "Amount must be greater than 0"
            if not draft.narration.strip():
                errors["narration"] = "Narration is required"
            if errors:
                item_errors[draft.id] = errors
            return item_errors, intent_errors

        if not intent.items:
            intent_errors.append("Please add at least one recipient")
        elif intent.kind == IntentKind.SINGLE and len(intent.items) != 1:
            intent_errors.append("A single transfer must have exactly one recipient")

        for item in intent.items:
            errors = self._item_errors(item)
            if errors:
                item_errors[item.id] = errors
        return item_errors, intent_errors

    def validate(self, intent: TransactionIntent) -> None:
        """Raise PayoutValidationError unless every line item is ready to pay."""
        item_errors, intent_errors = self.collect_errors(intent)
        if item_errors or intent_errors:
            raise PayoutValidationError(
                "Transfer is not ready to submit",
                item_errors=item_errors,
                intent_errors=intent_errors,
            )

    # ==================== Requests ====================

    def _payout_item(self, item: TransferLineItem) -> PayoutItem:
        return PayoutItem(
            bank_id=item.bank_id,
            amount=item.amount,
            narration=item.narration.strip(),
            account_number=item.account_number,
            beneficiary_name=item.beneficiary_name or item.resolution.account_name,
            save_beneficiary=item.save_beneficiary,
        )

    def build_request(
        self, intent: TransactionIntent, pin: Optional[str] = None
    ) -> PayoutRequest:
        """Wire payload for the intent, amounts normalized to numbers."""
        if intent.kind == IntentKind.TAG_PAY:
            draft = intent.tag_pay
            return TagPayRequest(
                amount=draft.amount,
                narration=draft.narration.strip(),
                destination_tag_or_code=draft.destination_tag.strip(),
                pin=pin,
            )

        if intent.kind == IntentKind.BULK:
            if not intent.group_key:
                intent.group_key = (
                    f"{self.settings.bulk_group_key_prefix}-{int(time.time() * 1000)}"
                )
            return BulkPayoutRequest(
                group_key=intent.group_key,
                items=[self._payout_item(item) for item in intent.items],
                pin=pin,
            )

        item = self._payout_item(intent.items[0])
        return SinglePayoutRequest(**item.model_dump(), pin=pin)

    # ==================== Submission ====================

    async def verify_pin(self, pin: str, attempt: int = 0) -> None:
        """Check the PIN with the backend; AuthorizationError if rejected."""
        try:
            await self.client.verify_pin(pin)
        except TreegarError as e:
            logger.warning(f"PIN verification failed (attempt {attempt + 1}): {e.message}")
            raise AuthorizationError(
                e.message or "Invalid PIN", attempt=attempt, details=e.details
            ) from e

    async def _send(self, intent: TransactionIntent, request: PayoutRequest) -> PayoutResponse:
        if intent.kind == IntentKind.TAG_PAY:
            return await self.client.tag_pay(request)
        if intent.kind == IntentKind.BULK:
            return await self.client.bulk_payout(request)
        return await self.client.payout(request)

    def _advance(self, intent: TransactionIntent, status: IntentStatus) -> None:
        # A resubmitted intent keeps the lifecycle of its first submission
        if intent.can_transition_to(status):
            intent.transition_to(status)
        else:
            logger.debug(f"Intent {intent.id} stays {intent.status.value} (not -> {status.value})")

    async def submit(
        self, intent: TransactionIntent, pin: Optional[str] = None, attempt: int = 0
    ) -> PayoutReceipt:
        """
        Validate, authorize and submit an intent.

        Raises:
            PayoutValidationError: Intent not ready; nothing was sent.
            AuthorizationError: PIN rejected; the intent can be authorized again.
            SubmissionError: Payout rejected; the intent is FAILED.
        """
        self.validate(intent)

        verify_first = pin is not None and self.settings.verify_pin_before_payout
        if verify_first:
            await self.verify_pin(pin, attempt)

        request = self.build_request(intent, pin)
        self._advance(intent, IntentStatus.SUBMITTED)

        try:
            response = await self._send(intent, request)
        except TreegarAuthError as e:
            if pin is not None and not verify_first:
                # The payout call itself checked the PIN
                self._advance(intent, IntentStatus.PENDING_AUTHORIZATION)
                raise AuthorizationError(
                    e.message or "Invalid PIN", attempt=attempt, details=e.details
                ) from e
            self._fail(intent, e.message)
            raise SubmissionError(e.message, e.details, e.field_errors) from e
        except TreegarError as e:
            self._fail(intent, e.message)
            raise SubmissionError(
                e.message or "Transaction failed", e.details, e.field_errors
            ) from e
        except Exception as e:
            # Outcome unknown; the intent must not stay SUBMITTED
            logger.exception(f"Unexpected error submitting intent {intent.id}")
            self._fail(intent, "Transaction failed")
            raise SubmissionError("Transaction failed", repr(e)) from e

        self._advance(intent, IntentStatus.SETTLED)
        intent.reference = response.reference
        self.cache.invalidate(CacheKey.TRANSACTIONS, CacheKey.PROFILE)

        logger.info(
            f"Intent {intent.id} ({intent.kind.value}) settled, reference {response.reference}"
        )
        return PayoutReceipt(
            intent_id=intent.id,
            kind=intent.kind,
            reference=response.reference,
            response=response,
        )

    def _fail(self, intent: TransactionIntent, reason: str) -> None:
        self._advance(intent, IntentStatus.FAILED)
        intent.failure_reason = reason
        logger.warning(f"Intent {intent.id} ({intent.kind.value}) failed: {reason}")
