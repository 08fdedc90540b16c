"""Tests for the PIN authorization gate."""
import asyncio
import logging
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from payout_core.errors import (
    AuthorizationError,
    PayoutCoreError,
    PayoutValidationError,
    SubmissionError,
)
from payout_core.models import IntentStatus, ResolutionState, TransactionIntent
from payout_core.services.cache import QueryCache
from payout_core.services.payout import PayoutOrchestrator
from payout_core.services.pin_gate import GateState, PinAuthorizationGate, PinChallenge
from treegar_client import TreegarClient, TreegarSettings
from treegar_client.exceptions import TreegarRejectedError
from treegar_client.schemas import PayoutResponse


@pytest.fixture
def gate(orchestrator, settings) -> PinAuthorizationGate:
    return PinAuthorizationGate(orchestrator, settings)


@pytest.fixture
def intent(make_item) -> TransactionIntent:
    return TransactionIntent.single(make_item())


def enter(gate: PinAuthorizationGate, pin: str) -> None:
    for index, digit in enumerate(pin):
        gate.input_digit(index, digit)


class TestOpen:
    """Opening the gate for an intent."""

    def test_open_moves_intent_to_pending(self, gate, intent):
        """Test opening requests authorization."""
        challenge = gate.open(intent)

        assert gate.state == GateState.COLLECTING
        assert intent.status == IntentStatus.PENDING_AUTHORIZATION
        assert challenge.digits == ["", "", "", ""]
        assert challenge.attempt == 0
        assert challenge.focus == 0

    def test_open_rejects_invalid_intent(self, gate, make_item):
        """Test an unresolved intent never reaches PIN entry."""
        intent = TransactionIntent.single(make_item(resolution=ResolutionState.unresolved()))

        with pytest.raises(PayoutValidationError):
            gate.open(intent)

        assert gate.state == GateState.IDLE
        assert intent.status == IntentStatus.DRAFT

    def test_only_one_pending_intent(self, gate, intent, make_item):
        """Test a second intent cannot be opened while one awaits authorization."""
        gate.open(intent)
        other = TransactionIntent.single(make_item("BOLA ADE"))

        with pytest.raises(PayoutCoreError, match="already awaiting authorization"):
            gate.open(other)

        assert other.status == IntentStatus.DRAFT


class TestPinEntry:
    """Digit-level input handling."""

    def test_digits_advance_focus(self, gate, intent):
        """Test each digit moves focus to the next slot."""
        gate.open(intent)

        gate.input_digit(0, "1")
        challenge = gate.input_digit(1, "2")

        assert challenge.digits == ["1", "2", "", ""]
        assert challenge.focus == 2

    def test_last_slot_keeps_focus(self, gate, intent):
        """Test focus stays on the last slot."""
        gate.open(intent)
        enter(gate, "1234")

        assert gate.challenge.focus == 3
        assert gate.challenge.is_complete

    @pytest.mark.parametrize("value", ["a", "-", " ", "٣"])
    def test_non_digits_rejected(self, gate, intent, value):
        """Test non-digit input is never stored."""
        gate.open(intent)

        challenge = gate.input_digit(0, value)

        assert challenge.digits == ["", "", "", ""]
        assert challenge.focus == 0

    def test_backspace_on_filled_slot_clears_it(self, gate, intent):
        """Test backspace clears the current slot."""
        gate.open(intent)
        enter(gate, "12")

        challenge = gate.backspace(1)

        assert challenge.digits == ["1", "", "", ""]
        assert challenge.focus == 1

    def test_backspace_on_empty_slot_clears_previous(self, gate, intent):
        """Test backspace on an empty slot moves back and clears that slot."""
        gate.open(intent)
        enter(gate, "123")

        challenge = gate.backspace(3)

        assert challenge.digits == ["1", "2", "", ""]
        assert challenge.focus == 2

    def test_backspace_on_first_empty_slot(self, gate, intent):
        """Test backspace on an empty first slot does nothing."""
        gate.open(intent)

        challenge = gate.backspace(0)

        assert challenge.digits == ["", "", "", ""]
        assert challenge.focus == 0

    def test_paste_three_digits_from_slot_one(self, gate, intent):
        """Test pasting fills forward from the given slot and focuses the last."""
        gate.open(intent)

        challenge = gate.paste("789", start_index=1)

        assert challenge.digits == ["", "7", "8", "9"]
        assert challenge.focus == 3

    def test_paste_full_pin_from_focus(self, gate, intent):
        """Test a four digit paste from slot 0 fills every slot."""
        gate.open(intent)

        challenge = gate.paste("4321")

        assert challenge.pin == "4321"
        assert challenge.focus == 3

    def test_paste_short_moves_to_next_slot(self, gate, intent):
        """Test a short paste focuses the slot after it."""
        gate.open(intent)

        challenge = gate.paste("12", start_index=0)

        assert challenge.digits == ["1", "2", "", ""]
        assert challenge.focus == 2

    @pytest.mark.parametrize("text", ["12a4", "12345", "", "abcd"])
    def test_invalid_paste_ignored(self, gate, intent, text):
        """Test pastes that are not 1-4 digits change nothing."""
        gate.open(intent)

        challenge = gate.paste(text)

        assert challenge.digits == ["", "", "", ""]

    def test_pin_not_in_repr(self, gate, intent):
        """Test the challenge repr never shows digits."""
        gate.open(intent)
        enter(gate, "9876")

        assert "9876" not in repr(gate.challenge)
        assert "entered=4/4" in repr(gate.challenge)

    def test_input_before_open_rejected(self, gate):
        """Test PIN entry needs an open gate."""
        with pytest.raises(PayoutCoreError):
            gate.input_digit(0, "1")


class TestSubmit:
    """Submitting through the gate."""

    @pytest.mark.asyncio
    async def test_incomplete_pin_not_submitted(self, gate, intent, client):
        """Test fewer than four digits never enters Submitting."""
        gate.open(intent)
        enter(gate, "123")

        with pytest.raises(PayoutValidationError):
            await gate.submit()

        assert gate.state == GateState.COLLECTING
        assert gate.challenge.error == "Please enter your 4-digit PIN"
        client.verify_pin.assert_not_awaited()
        client.payout.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_success(self, gate, intent, client):
        """Test a correct PIN settles the intent and clears the digits."""
        gate.open(intent)
        enter(gate, "1234")

        receipt = await gate.submit()

        assert receipt.reference == "TRX-001"
        assert gate.state == GateState.SETTLED
        assert intent.status == IntentStatus.SETTLED
        assert gate.challenge.digits == ["", "", "", ""]
        client.verify_pin.assert_awaited_once_with("1234")

    @pytest.mark.asyncio
    async def test_rejected_pin_clears_and_refocuses(self, gate, intent, client):
        """Test a rejected PIN clears all slots, bumps the attempt and shows the error."""
        client.verify_pin.side_effect = TreegarRejectedError("Invalid PIN")
        gate.open(intent)
        enter(gate, "1234")

        with pytest.raises(AuthorizationError):
            await gate.submit()

        challenge = gate.challenge
        assert challenge.digits == ["", "", "", ""]
        assert challenge.focus == 0
        assert challenge.attempt == 1
        assert challenge.error == "Invalid PIN"
        assert gate.state == GateState.COLLECTING
        assert intent.status == IntentStatus.PENDING_AUTHORIZATION
        client.payout.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_error_cleared_on_edit(self, gate, intent, client):
        """Test the previous attempt's error stays until the user types again."""
        client.verify_pin.side_effect = TreegarRejectedError("Invalid PIN")
        gate.open(intent)
        enter(gate, "1234")
        with pytest.raises(AuthorizationError):
            await gate.submit()
        assert gate.challenge.error == "Invalid PIN"

        gate.input_digit(0, "5")

        assert gate.challenge.error is None

    @pytest.mark.asyncio
    async def test_backspace_clears_error(self, gate, intent, client):
        """Test backspace counts as an edit and hides the previous error."""
        gate.open(intent)
        enter(gate, "12")
        with pytest.raises(PayoutValidationError):
            await gate.submit()
        assert gate.challenge.error is not None

        gate.backspace(1)

        assert gate.challenge.error is None

    @pytest.mark.asyncio
    async def test_reopen_keeps_attempt_count(self, gate, intent, client):
        """Test reopening the pending intent does not reset its attempts."""
        client.verify_pin.side_effect = TreegarRejectedError("Invalid PIN")
        gate.open(intent)
        enter(gate, "1234")
        with pytest.raises(AuthorizationError):
            await gate.submit()

        challenge = gate.open(intent)

        assert challenge.attempt == 1
        assert challenge.digits == ["", "", "", ""]

    @pytest.mark.asyncio
    async def test_retry_after_rejection(self, gate, intent, client):
        """Test a second attempt after a rejection can succeed."""
        client.verify_pin.side_effect = [TreegarRejectedError("Invalid PIN"), True]
        gate.open(intent)
        enter(gate, "1111")
        with pytest.raises(AuthorizationError):
            await gate.submit()

        enter(gate, "1234")
        receipt = await gate.submit()

        assert receipt.reference == "TRX-001"
        assert client.verify_pin.await_count == 2
        assert client.payout.await_count == 1

    @pytest.mark.asyncio
    async def test_submission_failure_is_terminal(self, gate, intent, client):
        """Test a failed payout moves the gate to FAILED."""
        client.payout.side_effect = TreegarRejectedError("Insufficient balance")
        gate.open(intent)
        enter(gate, "1234")

        with pytest.raises(SubmissionError):
            await gate.submit()

        assert gate.state == GateState.FAILED
        assert intent.status == IntentStatus.FAILED
        assert gate.challenge.digits == ["", "", "", ""]
        with pytest.raises(PayoutCoreError):
            await gate.submit()

    @pytest.mark.asyncio
    async def test_unexpected_error_does_not_strand_gate(self, gate, intent, client, make_item):
        """Test an unmapped payout error fails the gate so it can be closed."""
        client.payout.side_effect = ValueError("Expecting value: line 1 column 1")
        gate.open(intent)
        enter(gate, "1234")

        with pytest.raises(SubmissionError):
            await gate.submit()

        assert gate.state == GateState.FAILED
        assert gate.can_close is True
        assert gate.challenge.digits == ["", "", "", ""]
        assert intent.status == IntentStatus.FAILED
        assert gate.close() is True

        gate.open(TransactionIntent.single(make_item()))
        assert gate.state == GateState.COLLECTING

    @pytest.mark.asyncio
    async def test_gate_fails_on_error_outside_orchestrator(self, gate, intent):
        """Test any exception from submission leaves the gate closable."""
        gate.orchestrator.submit = AsyncMock(side_effect=RuntimeError("boom"))
        gate.open(intent)
        enter(gate, "1234")

        with pytest.raises(SubmissionError, match="Transaction failed"):
            await gate.submit()

        assert gate.state == GateState.FAILED
        assert gate.challenge.digits == ["", "", "", ""]
        assert gate.challenge.error == "Transaction failed"
        assert gate.close() is True

    @pytest.mark.asyncio
    async def test_undecodable_payout_response(self, settings, make_item):
        """Test a 2xx payout reply that is not JSON fails the gate cleanly."""
        api_settings = TreegarSettings(
            access_token="test-token",
            base_url="https://api.test.treegar.com/api",
            retry_attempts=1,
        )
        async with TreegarClient(api_settings) as api:
            orchestrator = PayoutOrchestrator(api, QueryCache.for_client(api, settings), settings)
            gate = PinAuthorizationGate(orchestrator, settings)
            intent = TransactionIntent.single(make_item())

            with patch.object(api._client, "request", new_callable=AsyncMock) as mock_request:
                mock_request.side_effect = [
                    httpx.Response(
                        200,
                        json={"success": True, "message": "ok", "data": None},
                        request=httpx.Request("POST", "/"),
                    ),
                    httpx.Response(
                        200, text="<html>Gateway</html>", request=httpx.Request("POST", "/")
                    ),
                ]
                gate.open(intent)
                gate.paste("1234")

                with pytest.raises(SubmissionError):
                    await gate.submit()

        assert gate.state == GateState.FAILED
        assert gate.can_close is True
        assert intent.status == IntentStatus.FAILED
        assert mock_request.call_count == 2

    @pytest.mark.asyncio
    async def test_cannot_close_while_submitting(self, gate, intent, client):
        """Test the gate refuses to close during an in-flight submission."""
        release = asyncio.Event()

        async def slow_payout(request):
            await release.wait()
            return PayoutResponse(reference="TRX-SLOW")

        client.payout.side_effect = slow_payout
        gate.open(intent)
        enter(gate, "1234")

        task = asyncio.create_task(gate.submit())
        while gate.state != GateState.SUBMITTING or not client.payout.call_count:
            await asyncio.sleep(0.001)

        assert gate.can_close is False
        assert gate.close() is False
        assert gate.state == GateState.SUBMITTING

        release.set()
        receipt = await task

        assert receipt.reference == "TRX-SLOW"
        assert gate.can_close is True

    def test_close_while_collecting_clears_pin(self, gate, intent):
        """Test closing discards the PIN and returns the intent to Draft."""
        gate.open(intent)
        enter(gate, "12")

        assert gate.close() is True

        assert gate.state == GateState.IDLE
        assert gate.challenge.digits == ["", "", "", ""]
        assert gate.intent is None
        assert intent.status == IntentStatus.DRAFT

    @pytest.mark.asyncio
    async def test_pin_never_logged(self, gate, intent, client, caplog):
        """Test PIN digits do not appear in log output."""
        client.verify_pin.side_effect = TreegarRejectedError("Invalid PIN")
        gate.open(intent)
        enter(gate, "8642")

        with caplog.at_level(logging.DEBUG):
            with pytest.raises(AuthorizationError):
                await gate.submit()

        assert "8642" not in caplog.text


def test_challenge_defaults():
    """Test a new challenge has four empty slots."""
    challenge = PinChallenge()

    assert challenge.digits == ["", "", "", ""]
    assert challenge.pin == ""
    assert not challenge.is_complete
