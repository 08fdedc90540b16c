"""Treegar banking API client."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .auth import TreegarAuth
from .config import TreegarSettings
from .exceptions import (
    TreegarHTTPError,
    TreegarNetworkError,
    TreegarRejectedError,
    TreegarResponseError,
    TreegarServerError,
)
from .schemas import (
    ApiEnvelope,
    Bank,
    BulkPayoutRequest,
    CustomerProfile,
    DocumentRecord,
    KYCSubmissionRequest,
    PayoutResponse,
    ResolveAccountRequest,
    ResolveCustomerRequest,
    ResolvedAccount,
    ResolvedCustomer,
    SinglePayoutRequest,
    TagPayRequest,
    VerificationRecord,
    VerifyPinRequest,
)

logger = logging.getLogger(__name__)


class TreegarClient:
    """Async client for the Treegar customer API.

    Usage:
        async with TreegarClient(settings) as client:
            account = await client.resolve_account(12, "0123456789")
    """

    def __init__(self, settings: TreegarSettings | None = None):
        """Initialize client.

        Args:
            settings: Treegar settings. If not provided, loads from environment.
        """
        self.settings = settings or TreegarSettings()
        self.auth = TreegarAuth(self.settings.access_token)
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "TreegarClient":
        """Enter async context."""
        self._client = httpx.AsyncClient(
            base_url=self.settings.base_url,
            timeout=httpx.Timeout(self.settings.timeout_seconds),
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get HTTP client, ensuring it's initialized."""
        if self._client is None:
            raise RuntimeError(
                "Client not initialized. Use 'async with TreegarClient() as client:'"
            )
        return self._client

    def _build_endpoint(
        self, path: str, params: dict[str, Any] | None = None
    ) -> str:
        """Build endpoint path with query parameters.

        Args:
            path: API path (e.g., '/customer/transfers/transactions').
            params: Optional query parameters.

        Returns:
            Endpoint with query string if params provided.
        """
        if not params:
            return path
        # Filter out empty values
        filtered = {k: v for k, v in params.items() if v is not None and v != ""}
        if not filtered:
            return path
        return f"{path}?{urlencode(filtered)}"

    def _handle_error(self, response: httpx.Response) -> None:
        """Raise the error matching a non-2xx response.

        The envelope's ``message`` becomes the error message and its
        ``errors`` list is kept on the exception for field-level display.

        Args:
            response: HTTP response to check.

        Raises:
            TreegarHTTPError: The subclass registered for the status code.
        """
        if response.is_success:
            return

        try:
            details = response.json()
        except ValueError:
            details = response.text

        status = response.status_code
        message = f"HTTP {status}"
        errors = None
        if isinstance(details, dict):
            if details.get("message"):
                message = str(details["message"])
            errors = details.get("errors")

        raise TreegarHTTPError.for_status(
            status, message, details, errors if isinstance(errors, list) else None
        )

    def _decode(self, response: httpx.Response) -> Any:
        """Decode a 2xx body. An empty body decodes to None."""
        if not response.content.strip():
            return None
        try:
            return response.json()
        except ValueError as e:
            raise TreegarResponseError(
                "Response body is not valid JSON",
                response.text[:200],
                status_code=response.status_code,
            ) from e

    def _unwrap(self, payload: Any, status_code: int | None = None) -> Any:
        """Return the envelope's data, or raise if the backend reported failure."""
        if not isinstance(payload, dict) or "success" not in payload:
            return payload

        try:
            envelope = ApiEnvelope[Any].model_validate(payload)
        except ValidationError as e:
            raise TreegarResponseError(
                "Malformed response envelope", e.errors(), status_code=status_code
            ) from e
        if not envelope.success:
            raise TreegarRejectedError(
                envelope.message or "Request was rejected",
                payload,
                status_code=status_code,
                errors=envelope.errors,
            )
        return envelope.data

    def _create_retry_decorator(self):
        """Create retry decorator with current settings."""
        return retry(
            retry=retry_if_exception_type(
                (TreegarServerError, TreegarNetworkError)
            ),
            stop=stop_after_attempt(self.settings.retry_attempts),
            wait=wait_exponential(
                min=self.settings.retry_min_wait_seconds,
                max=self.settings.retry_max_wait_seconds,
            ),
            reraise=True,
        )

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
        form: dict[str, Any] | None = None,
        timeout: float | None = None,
        retryable: bool = True,
    ) -> Any:
        """Make authenticated request to the API.

        Args:
            method: HTTP method.
            path: API path.
            params: Query parameters.
            body: JSON request body.
            files: Multipart files.
            form: Multipart form fields.
            timeout: Per-request timeout override in seconds.
            retryable: Whether transport/server failures may be retried.

        Returns:
            Unwrapped response data.
        """
        endpoint = self._build_endpoint(path, params)
        headers = self.auth.get_headers(json_body=body is not None)
        extra: dict[str, Any] = {}
        if timeout is not None:
            extra["timeout"] = httpx.Timeout(timeout)

        async def _do_request():
            try:
                response = await self.client.request(
                    method=method,
                    url=endpoint,
                    headers=headers,
                    json=body if body is not None else None,
                    files=files,
                    data=form,
                    **extra,
                )
            except httpx.TimeoutException as e:
                raise TreegarNetworkError(f"Timeout: {e}")
            except httpx.TransportError as e:
                raise TreegarNetworkError(f"Network error: {e}")

            self._handle_error(response)
            return self._unwrap(self._decode(response), response.status_code)

        if retryable:
            _do_request = self._create_retry_decorator()(_do_request)
        return await _do_request()

    def _parse(self, model, data: Any):
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise TreegarResponseError(f"Malformed {model.__name__} payload", e.errors()) from e

    # ==================== Transfers API ====================

    async def list_banks(self) -> list[Bank]:
        """List destination banks.

        Returns:
            Banks supported for payout.
        """
        data = await self._request("GET", "/customer/transfers/banks")
        return [self._parse(Bank, item) for item in data or []]

    async def resolve_account(self, bank_id: int, account_number: str) -> ResolvedAccount:
        """Resolve a bank account number to its holder's name.

        Args:
            bank_id: Bank ID.
            account_number: 10-digit account number.

        Returns:
            Resolved account identity.
        """
        request = ResolveAccountRequest(bank_id=bank_id, account_number=account_number)
        data = await self._request(
            "POST", "/customer/transfers/resolve-account", body=request.to_wire()
        )
        return self._parse(ResolvedAccount, data)

    async def resolve_customer(self, identifier: str) -> ResolvedCustomer:
        """Resolve a customer tag or code for Tag Pay.

        Args:
            identifier: Customer tag or code.

        Returns:
            Resolved customer identity.
        """
        request = ResolveCustomerRequest(identifier=identifier)
        data = await self._request(
            "POST", "/customer/transfers/resolve-customer", body=request.to_wire()
        )
        return self._parse(ResolvedCustomer, data)

    async def payout(self, request: SinglePayoutRequest) -> PayoutResponse:
        """Submit a single bank payout. Never retried.

        Args:
            request: Payout details, PIN attached.

        Returns:
            Payout acknowledgement.
        """
        data = await self._request(
            "POST", "/customer/transfers/payout", body=request.to_wire(), retryable=False
        )
        return self._parse(PayoutResponse, data or {})

    async def bulk_payout(self, request: BulkPayoutRequest) -> PayoutResponse:
        """Submit a bulk payout as one operation. Never retried.

        Args:
            request: Group key and payout lines, PIN attached.

        Returns:
            Payout acknowledgement.
        """
        data = await self._request(
            "POST",
            "/customer/transfers/payout/bulk",
            body=request.to_wire(),
            retryable=False,
        )
        return self._parse(PayoutResponse, data or {})

    async def tag_pay(self, request: TagPayRequest) -> PayoutResponse:
        """Submit a Tag Pay transfer. Never retried.

        Args:
            request: Tag Pay details, PIN attached.

        Returns:
            Payout acknowledgement.
        """
        data = await self._request(
            "POST", "/customer/transfers/tag-pay", body=request.to_wire(), retryable=False
        )
        return self._parse(PayoutResponse, data or {})

    async def list_transactions(self, **filters: Any) -> Any:
        """List recent transactions.

        Args:
            **filters: Query filters (page, pageSize, status, etc.).

        Returns:
            Raw transaction page as returned by the backend.
        """
        return await self._request(
            "GET", "/customer/transfers/transactions", params=filters
        )

    # ==================== Auth / PIN API ====================

    async def verify_pin(self, pin: str) -> bool:
        """Verify the customer's transaction PIN. Never retried.

        Args:
            pin: 4-digit PIN.

        Returns:
            True when accepted.

        Raises:
            TreegarRejectedError: If the backend rejected the PIN.
        """
        request = VerifyPinRequest(pin=pin)
        await self._request(
            "POST", "/customer/auth/pin/verify", body=request.to_wire(), retryable=False
        )
        return True

    async def get_profile(self) -> CustomerProfile:
        """Get the authenticated customer's profile (balance, KYC snapshot)."""
        data = await self._request("GET", "/customer/auth/profile")
        return self._parse(CustomerProfile, data or {})

    # ==================== Verification API ====================

    async def get_verification_records(self, customer_id: str) -> list[VerificationRecord]:
        """Get the customer's verification records.

        Records of unknown types are skipped rather than failing the whole list.

        Args:
            customer_id: Customer ID.

        Returns:
            Verification records.
        """
        data = await self._request("GET", f"/customer/verifications/{customer_id}")
        records = []
        for item in data or []:
            try:
                records.append(VerificationRecord.model_validate(item))
            except ValidationError:
                logger.warning(f"Skipping unrecognised verification record: {item!r}")
        return records

    async def get_document_records(self, customer_id: str) -> list[DocumentRecord]:
        """Get the customer's business document records.

        Args:
            customer_id: Customer ID.

        Returns:
            Document records.
        """
        data = await self._request("GET", f"/customer/documents/{customer_id}")
        return [self._parse(DocumentRecord, item) for item in data or []]

    async def submit_individual_kyc(self, request: KYCSubmissionRequest) -> Any:
        """Submit a BVN or NIN for an Individual customer."""
        return await self._request(
            "POST", "/onboarding/individual/kyc", body=request.to_wire(), retryable=False
        )

    async def submit_business_kyc(self, request: KYCSubmissionRequest) -> Any:
        """Submit a BVN or NIN for a Business customer."""
        return await self._request(
            "POST", "/onboarding/business/kyc", body=request.to_wire(), retryable=False
        )

    async def upload_document(
        self,
        customer_id: str,
        document_key: str,
        filename: str,
        content: bytes,
        content_type: str = "application/pdf",
    ) -> Any:
        """Upload a business document.

        Args:
            customer_id: Customer ID.
            document_key: Document requirement key.
            filename: Original file name.
            content: File bytes.
            content_type: MIME type.

        Returns:
            Upload acknowledgement.
        """
        return await self._request(
            "POST",
            f"/customer/documents/{customer_id}",
            files={"file": (filename, content, content_type)},
            form={"documentKey": document_key, "FileName": filename},
            timeout=self.settings.upload_timeout_seconds,
            retryable=False,
        )
