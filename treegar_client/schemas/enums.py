"""Enumerations for the Treegar API."""

from __future__ import annotations

import re
from enum import Enum


def _normalize(value: str) -> str:
    return re.sub(r"[\s_\-]", "", value).lower()


class _LenientEnum(str, Enum):
    """String enum that also accepts differently cased/separated spellings."""

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            wanted = _normalize(value)
            for member in cls:
                if _normalize(member.value) == wanted:
                    return member
        return None


class CustomerType(_LenientEnum):
    """Customer class; selects the verification journey."""

    INDIVIDUAL = "Individual"
    BUSINESS = "Business"

    @classmethod
    def _missing_(cls, value):
        # The profile endpoint reports "Business Customer"/"Individual Customer"
        if isinstance(value, str):
            value = re.sub(r"\s*customer$", "", value.strip(), flags=re.IGNORECASE)
        return super()._missing_(value)


class VerificationType(_LenientEnum):
    """KYC check type."""

    BVN = "bvn"
    NIN = "nin"
    LIVENESS = "liveness"
    RC_NUMBER = "rc_number"


class VerificationStatus(_LenientEnum):
    """Verification record status."""

    NOT_STARTED = "NotStarted"
    PENDING = "Pending"
    VERIFIED = "Verified"
    FAILED = "Failed"


class DocumentStatus(_LenientEnum):
    """Business document review status."""

    NOT_UPLOADED = "NotUploaded"
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
