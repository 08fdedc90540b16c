"""Pytest configuration and fixtures."""
from datetime import datetime, timezone
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from payout_core.config import Settings, get_settings
from payout_core.models import ResolutionState, TransferLineItem
from payout_core.services.cache import QueryCache
from payout_core.services.payout import PayoutOrchestrator
from treegar_client.schemas import (
    CustomerProfile,
    PayoutResponse,
    ResolvedAccount,
    ResolvedCustomer,
    VerificationRecord,
)


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Keep environment-dependent settings from leaking between tests."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Core settings with millisecond-scale timers."""
    return Settings(
        resolution_debounce_ms=20,
        verification_refresh_delay_ms=20,
        cancel_superseded_requests=True,
        cache_ttl_seconds=300,
    )


@pytest.fixture
def client() -> MagicMock:
    """Treegar client double with happy-path responses."""
    client = MagicMock()
    client.list_banks = AsyncMock(return_value=[])
    client.resolve_account = AsyncMock(
        return_value=ResolvedAccount(account_name="ADA OBI", account_number="0123456789")
    )
    client.resolve_customer = AsyncMock(
        return_value=ResolvedCustomer(name="Ada Obi", customer_tag="adaobi")
    )
    client.payout = AsyncMock(return_value=PayoutResponse(reference="TRX-001"))
    client.bulk_payout = AsyncMock(return_value=PayoutResponse(reference="BULK-REF"))
    client.tag_pay = AsyncMock(return_value=PayoutResponse(reference="TAG-001"))
    client.verify_pin = AsyncMock(return_value=True)
    client.list_transactions = AsyncMock(return_value={"items": [], "total": 0})
    client.get_profile = AsyncMock(
        return_value=CustomerProfile(customer_id="c-1", account_balance=5000)
    )
    client.get_verification_records = AsyncMock(return_value=[])
    client.get_document_records = AsyncMock(return_value=[])
    client.submit_individual_kyc = AsyncMock(return_value={"status": "Pending"})
    client.submit_business_kyc = AsyncMock(return_value={"status": "Pending"})
    client.upload_document = AsyncMock(return_value={"status": "Pending"})
    return client


@pytest.fixture
def cache(client, settings) -> QueryCache:
    return QueryCache.for_client(client, settings)


@pytest.fixture
def orchestrator(client, cache, settings) -> PayoutOrchestrator:
    return PayoutOrchestrator(client, cache, settings)


@pytest.fixture
def make_record():
    """Factory for verification records."""

    def _make(
        type_: str,
        status: str = "Verified",
        is_completed: bool = False,
        updated_at: Optional[datetime] = None,
    ) -> VerificationRecord:
        return VerificationRecord(
            type=type_, status=status, is_completed=is_completed, updated_at=updated_at
        )

    return _make


@pytest.fixture
def ts():
    """Factory for timezone-aware timestamps on a fixed day."""

    def _ts(hour: int) -> datetime:
        return datetime(2024, 5, 1, hour, tzinfo=timezone.utc)

    return _ts


@pytest.fixture
def make_item():
    """Factory for fully resolved, payable line items."""

    def _make(name: str = "ADA OBI", amount: str = "1,000", **overrides) -> TransferLineItem:
        fields = dict(
            bank_id=12,
            bank_name="Access Bank",
            account_number="0123456789",
            beneficiary_name=name,
            narration="Rent",
            resolution=ResolutionState.resolved(name),
        )
        fields.update(overrides)
        item = TransferLineItem(**fields)
        item.set_amount(amount)
        return item

    return _make
