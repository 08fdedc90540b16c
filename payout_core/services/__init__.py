from payout_core.services.cache import CacheKey, QueryCache
from payout_core.services.payout import PayoutOrchestrator, PayoutReceipt
from payout_core.services.pin_gate import GateState, PinAuthorizationGate, PinChallenge
from payout_core.services.resolution import (
    AccountResolutionEngine,
    CustomerTagResolver,
    search_banks,
)
from payout_core.services.scheduling import KeyedDebouncer
from payout_core.services.verification import (
    VerificationBlockedError,
    VerificationStep,
    VerificationTracker,
    derive_active_step,
    document_access,
)

__all__ = [
    "AccountResolutionEngine",
    "CacheKey",
    "CustomerTagResolver",
    "GateState",
    "KeyedDebouncer",
    "PayoutOrchestrator",
    "PayoutReceipt",
    "PinAuthorizationGate",
    "PinChallenge",
    "QueryCache",
    "VerificationBlockedError",
    "VerificationStep",
    "VerificationTracker",
    "derive_active_step",
    "document_access",
    "search_banks",
]
