"""Orchestration core models."""
from payout_core.models.intent import (
    VALID_TRANSITIONS,
    IntentKind,
    IntentStatus,
    IntentSummary,
    TransactionIntent,
)
from payout_core.models.line_item import (
    ResolutionState,
    ResolutionStatus,
    TagPayDraft,
    TransferLineItem,
    format_amount_display,
    parse_amount,
)

__all__ = [
    "TransferLineItem",
    "TagPayDraft",
    "ResolutionState",
    "ResolutionStatus",
    "parse_amount",
    "format_amount_display",
    "TransactionIntent",
    "IntentKind",
    "IntentStatus",
    "IntentSummary",
    "VALID_TRANSITIONS",
]
