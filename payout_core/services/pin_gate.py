"""PIN authorization gate.

Collects the 4-digit transaction PIN for one pending intent and hands it to the
orchestrator. A rejected PIN clears the entry and leaves the gate open for
another attempt; the gate cannot be closed while a submission is in flight.
"""
import enum
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional

from payout_core.config import Settings, get_settings
from payout_core.errors import (
    AuthorizationError,
    PayoutCoreError,
    PayoutValidationError,
    SubmissionError,
)
from payout_core.models.intent import IntentStatus, TransactionIntent
from payout_core.services.payout import PayoutOrchestrator, PayoutReceipt

logger = logging.getLogger(__name__)


class GateState(str, enum.Enum):
    """Authorization gate lifecycle."""
    IDLE = "IDLE"
    COLLECTING = "COLLECTING"
    SUBMITTING = "SUBMITTING"
    SETTLED = "SETTLED"
    FAILED = "FAILED"


@dataclass
class PinChallenge:
    """PIN entry for one authorization attempt."""
    length: int = 4
    digits: List[str] = field(default_factory=list)
    attempt: int = 0
    focus: int = 0
    error: Optional[str] = None

    def __post_init__(self):
        if not self.digits:
            self.digits = [""] * self.length

    def __repr__(self) -> str:
        # Never expose the digits themselves
        entered = sum(1 for d in self.digits if d)
        return (
            f"PinChallenge(entered={entered}/{self.length}, attempt={self.attempt}, "
            f"focus={self.focus}, error={self.error!r})"
        )

    @property
    def pin(self) -> str:
        return "".join(self.digits)

    @property
    def is_complete(self) -> bool:
        return all(len(d) == 1 and d in "0123456789" for d in self.digits)

    def clear(self) -> None:
        self.digits = [""] * self.length
        self.focus = 0


class PinAuthorizationGate:
    """Authorizes one intent at a time with the customer's transaction PIN."""

    def __init__(self, orchestrator: PayoutOrchestrator, settings: Optional[Settings] = None):
        self.orchestrator = orchestrator
        self.settings = settings or get_settings()
        self.state = GateState.IDLE
        self.intent: Optional[TransactionIntent] = None
        self.challenge = PinChallenge(length=self.settings.pin_length)
        self.receipt: Optional[PayoutReceipt] = None

    @property
    def is_open(self) -> bool:
        return self.state in (GateState.COLLECTING, GateState.SUBMITTING)

    @property
    def can_close(self) -> bool:
        return self.state != GateState.SUBMITTING

    def open(self, intent: TransactionIntent) -> PinChallenge:
        """Validate the intent and start collecting its PIN."""
        if self.state == GateState.SUBMITTING:
            raise PayoutCoreError("A submission is already in flight")
        if self.is_open and self.intent is not None and self.intent is not intent:
            raise PayoutCoreError(
                f"Intent {self.intent.id} is already awaiting authorization"
            )

        self.orchestrator.validate(intent)
        if intent.status != IntentStatus.PENDING_AUTHORIZATION:
            intent.transition_to(IntentStatus.PENDING_AUTHORIZATION)

        # Reopening the pending intent keeps its attempt count
        attempt = self.challenge.attempt if self.intent is intent and self.is_open else 0
        self.intent = intent
        self.receipt = None
        self.challenge = PinChallenge(length=self.settings.pin_length, attempt=attempt)
        self.state = GateState.COLLECTING
        logger.info(f"Authorization opened for intent {intent.id} ({intent.kind.value})")
        return self.challenge

    # ==================== PIN entry ====================

    def _require_collecting(self) -> PinChallenge:
        if self.state != GateState.COLLECTING:
            raise PayoutCoreError(f"PIN entry not accepted while {self.state.value}")
        return self.challenge

    def input_digit(self, index: int, value: str) -> PinChallenge:
        """Enter one slot. Non-digits are ignored; a digit advances focus."""
        challenge = self._require_collecting()
        if not 0 <= index < challenge.length:
            return challenge
        if value and not re.fullmatch(r"[0-9]+", value):
            return challenge

        value = value[-1:] if value else ""
        challenge.digits[index] = value
        challenge.error = None
        if value and index < challenge.length - 1:
            challenge.focus = index + 1
        else:
            challenge.focus = index
        return challenge

    def backspace(self, index: int) -> PinChallenge:
        """Clear a slot; on an empty slot, step back and clear the previous one."""
        challenge = self._require_collecting()
        if not 0 <= index < challenge.length:
            return challenge
        challenge.error = None
        if challenge.digits[index]:
            challenge.digits[index] = ""
            challenge.focus = index
        elif index > 0:
            challenge.digits[index - 1] = ""
            challenge.focus = index - 1
        return challenge

    def paste(self, text: str, start_index: Optional[int] = None) -> PinChallenge:
        """Fill consecutive slots from `start_index` (default: the focused slot)."""
        challenge = self._require_collecting()
        text = (text or "").strip()
        if not re.fullmatch(rf"[0-9]{{1,{challenge.length}}}", text):
            return challenge

        start = challenge.focus if start_index is None else start_index
        start = max(0, min(start, challenge.length - 1))
        for offset, digit in enumerate(text):
            if start + offset >= challenge.length:
                break
            challenge.digits[start + offset] = digit

        challenge.error = None
        challenge.focus = min(start + len(text), challenge.length - 1)
        return challenge

    # ==================== Submission ====================

    async def submit(self) -> PayoutReceipt:
        """
        Submit the intent with the entered PIN.

        Raises:
            PayoutValidationError: PIN incomplete; nothing was sent.
            AuthorizationError: PIN rejected; entry cleared for another attempt.
            SubmissionError: Payout failed; the gate is FAILED.
        """
        challenge = self._require_collecting()
        if not challenge.is_complete:
            challenge.error = f"Please enter your {challenge.length}-digit PIN"
            raise PayoutValidationError("Incomplete PIN", intent_errors=[challenge.error])

        intent = self.intent
        self.state = GateState.SUBMITTING
        try:
            receipt = await self.orchestrator.submit(
                intent, pin=challenge.pin, attempt=challenge.attempt
            )
        except AuthorizationError as e:
            challenge.attempt += 1
            challenge.clear()
            challenge.error = e.message or "Invalid PIN"
            if intent.status != IntentStatus.PENDING_AUTHORIZATION:
                intent.transition_to(IntentStatus.PENDING_AUTHORIZATION)
            self.state = GateState.COLLECTING
            logger.warning(
                f"PIN rejected for intent {intent.id} (attempt {challenge.attempt})"
            )
            raise
        except SubmissionError as e:
            challenge.clear()
            challenge.error = e.message
            self.state = GateState.FAILED
            raise
        except PayoutValidationError as e:
            challenge.clear()
            challenge.error = str(e)
            self.state = GateState.COLLECTING
            raise
        except Exception as e:
            challenge.clear()
            challenge.error = "Transaction failed"
            if intent.can_transition_to(IntentStatus.FAILED):
                intent.transition_to(IntentStatus.FAILED)
                intent.failure_reason = challenge.error
            self.state = GateState.FAILED
            logger.exception(f"Submission of intent {intent.id} ended unexpectedly")
            raise SubmissionError("Transaction failed", repr(e)) from e

        challenge.clear()
        self.receipt = receipt
        self.state = GateState.SETTLED
        return receipt

    def close(self) -> bool:
        """Dismiss the gate. Refused (returns False) while submitting."""
        if not self.can_close:
            logger.debug("Close ignored while a submission is in flight")
            return False

        intent = self.intent
        if intent is not None and intent.status == IntentStatus.PENDING_AUTHORIZATION:
            intent.transition_to(IntentStatus.DRAFT)
        self.challenge = PinChallenge(length=self.settings.pin_length)
        self.intent = None
        self.state = GateState.IDLE
        return True
