"""Polling helpers for the Treegar API."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from .exceptions import TreegarTimeoutError
from .schemas import (
    DocumentRecord,
    DocumentStatus,
    VerificationRecord,
    VerificationStatus,
    VerificationType,
)

if TYPE_CHECKING:
    from .client import TreegarClient


async def await_verification_complete(
    client: "TreegarClient",
    customer_id: str,
    verification_type: VerificationType,
    poll_interval_ms: int = 2000,
    timeout_ms: int = 120000,
) -> VerificationRecord:
    """Wait for a verification record to settle after submission.

    Polls until the record is completed, verified or failed.

    Args:
        client: Treegar client instance.
        customer_id: Customer ID.
        verification_type: Verification to watch.
        poll_interval_ms: Polling interval in milliseconds.
        timeout_ms: Timeout in milliseconds.

    Returns:
        The settled record.

    Raises:
        TreegarTimeoutError: If the record doesn't settle within timeout.
    """
    poll_interval = poll_interval_ms / 1000
    timeout = timeout_ms / 1000
    elapsed = 0.0

    while elapsed < timeout:
        records = await client.get_verification_records(customer_id)
        record = next((r for r in records if r.type == verification_type), None)

        if record is not None and (
            record.is_satisfied or record.status == VerificationStatus.FAILED
        ):
            return record

        await asyncio.sleep(poll_interval)
        elapsed += poll_interval

    raise TreegarTimeoutError(
        f"{verification_type.value} verification for {customer_id} "
        f"did not complete within {timeout_ms}ms"
    )


async def await_document_reviewed(
    client: "TreegarClient",
    customer_id: str,
    document_key: str,
    poll_interval_ms: int = 2000,
    timeout_ms: int = 120000,
) -> DocumentRecord:
    """Wait for an uploaded document to leave the upload/pending states.

    Args:
        client: Treegar client instance.
        customer_id: Customer ID.
        document_key: Document requirement key.
        poll_interval_ms: Polling interval in milliseconds.
        timeout_ms: Timeout in milliseconds.

    Returns:
        The reviewed document record.

    Raises:
        TreegarTimeoutError: If the document isn't reviewed within timeout.
    """
    poll_interval = poll_interval_ms / 1000
    timeout = timeout_ms / 1000
    elapsed = 0.0

    while elapsed < timeout:
        documents = await client.get_document_records(customer_id)
        document = next((d for d in documents if d.document_key == document_key), None)

        if document is not None and document.status in (
            DocumentStatus.APPROVED,
            DocumentStatus.REJECTED,
        ):
            return document

        await asyncio.sleep(poll_interval)
        elapsed += poll_interval

    raise TreegarTimeoutError(
        f"Document {document_key} for {customer_id} was not reviewed within {timeout_ms}ms"
    )
