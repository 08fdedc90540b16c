"""Treegar client - async Python client for the Treegar customer banking API."""

from .auth import TreegarAuth
from .client import TreegarClient
from .config import TreegarSettings
from .exceptions import (
    TreegarAuthError,
    TreegarError,
    TreegarHTTPError,
    TreegarNetworkError,
    TreegarNotFoundError,
    TreegarRateLimitError,
    TreegarRejectedError,
    TreegarResponseError,
    TreegarServerError,
    TreegarTimeoutError,
    TreegarValidationError,
)
from .helpers import await_document_reviewed, await_verification_complete
from .schemas import (
    Bank,
    BulkGroup,
    BulkGroupMember,
    BulkPayoutRequest,
    CustomerProfile,
    CustomerType,
    DocumentRecord,
    DocumentStatus,
    KYCSubmissionRequest,
    PayoutItem,
    PayoutResponse,
    ResolvedAccount,
    ResolvedCustomer,
    SinglePayoutRequest,
    TagPayRequest,
    VerificationRecord,
    VerificationStatus,
    VerificationType,
)

__version__ = "0.1.0"

__all__ = [
    # Main classes
    "TreegarClient",
    "TreegarAuth",
    "TreegarSettings",
    # Exceptions
    "TreegarError",
    "TreegarHTTPError",
    "TreegarAuthError",
    "TreegarNotFoundError",
    "TreegarValidationError",
    "TreegarRateLimitError",
    "TreegarServerError",
    "TreegarNetworkError",
    "TreegarTimeoutError",
    "TreegarRejectedError",
    "TreegarResponseError",
    # Helpers
    "await_verification_complete",
    "await_document_reviewed",
    # Enums
    "CustomerType",
    "VerificationType",
    "VerificationStatus",
    "DocumentStatus",
    # Resolution schemas
    "Bank",
    "ResolvedAccount",
    "ResolvedCustomer",
    # Payout schemas
    "PayoutItem",
    "SinglePayoutRequest",
    "BulkPayoutRequest",
    "TagPayRequest",
    "PayoutResponse",
    "BulkGroup",
    "BulkGroupMember",
    # Verification schemas
    "VerificationRecord",
    "DocumentRecord",
    "KYCSubmissionRequest",
    "CustomerProfile",
]
