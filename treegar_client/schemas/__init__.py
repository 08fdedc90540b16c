"""Treegar API schemas."""

from .common import ApiEnvelope, CamelModel
from .enums import CustomerType, DocumentStatus, VerificationStatus, VerificationType
from .payouts import (
    BulkGroup,
    BulkGroupMember,
    BulkPayoutRequest,
    PayoutItem,
    PayoutResponse,
    SinglePayoutRequest,
    TagPayRequest,
    VerifyPinRequest,
)
from .profile import CustomerProfile
from .resolution import (
    Bank,
    ResolveAccountRequest,
    ResolveCustomerRequest,
    ResolvedAccount,
    ResolvedCustomer,
)
from .verification import DocumentRecord, KYCSubmissionRequest, VerificationRecord

__all__ = [
    # Enums
    "CustomerType",
    "VerificationType",
    "VerificationStatus",
    "DocumentStatus",
    # Common
    "CamelModel",
    "ApiEnvelope",
    # Resolution
    "Bank",
    "ResolveAccountRequest",
    "ResolvedAccount",
    "ResolveCustomerRequest",
    "ResolvedCustomer",
    # Payouts
    "PayoutItem",
    "SinglePayoutRequest",
    "BulkPayoutRequest",
    "TagPayRequest",
    "VerifyPinRequest",
    "PayoutResponse",
    "BulkGroup",
    "BulkGroupMember",
    # Verification
    "VerificationRecord",
    "DocumentRecord",
    "KYCSubmissionRequest",
    # Profile
    "CustomerProfile",
]
