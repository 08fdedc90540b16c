"""KYC verification journey.

The active step is a pure function of the current verification records and
the customer class:

    Individual: BVN -> NIN -> Liveness
    Business:   BVN -> NIN -> Documents

Liveness is not part of the Business journey. A Business customer with a
verified liveness record still lands on Documents, and document upload itself
is only unlocked once both BVN and NIN are verified.

VerificationTracker is the stateful consumer: it holds the latest record
snapshot, re-derives the step on every refresh and schedules the delayed
refresh that follows a successful verification or upload.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from payout_core.config import Settings, get_settings
from payout_core.errors import PayoutCoreError, PayoutValidationError
from payout_core.services.scheduling import KeyedDebouncer
from treegar_client import TreegarClient
from treegar_client.schemas import (
    CustomerType,
    DocumentRecord,
    DocumentStatus,
    KYCSubmissionRequest,
    VerificationRecord,
    VerificationStatus,
    VerificationType,
)

logger = logging.getLogger(__name__)


class VerificationStep(str, enum.Enum):
    """Step of the KYC journey shown to the customer."""
    BVN = "bvn"
    NIN = "nin"
    LIVENESS = "liveness"
    DOCUMENTS = "documents"


JOURNEYS: Dict[CustomerType, Tuple[VerificationStep, ...]] = {
    CustomerType.INDIVIDUAL: (
        VerificationStep.BVN,
        VerificationStep.NIN,
        VerificationStep.LIVENESS,
    ),
    CustomerType.BUSINESS: (
        VerificationStep.BVN,
        VerificationStep.NIN,
        VerificationStep.DOCUMENTS,
    ),
}


class VerificationBlockedError(PayoutCoreError):
    """Action attempted before the verifications it depends on are complete."""

    pass


def latest_records(
    records: Iterable[VerificationRecord],
) -> Dict[VerificationType, VerificationRecord]:
    """Collapse the snapshot to one record per type.

    Duplicates from re-fetched or out-of-order responses resolve to the most
    recently updated record; without timestamps the later entry wins.
    """
    latest: Dict[VerificationType, VerificationRecord] = {}
    for record in records:
        current = latest.get(record.type)
        if (
            current is not None
            and current.updated_at is not None
            and record.updated_at is not None
            and record.updated_at < current.updated_at
        ):
            continue
        latest[record.type] = record
    return latest


def is_completed(
    records: Iterable[VerificationRecord], verification_type: VerificationType
) -> bool:
    record = latest_records(records).get(verification_type)
    return record is not None and record.is_satisfied


def derive_active_step(
    records: Iterable[VerificationRecord], customer_type: CustomerType
) -> VerificationStep:
    """Compute the active step; the first unmet requirement wins."""
    customer_type = CustomerType(customer_type)
    latest = latest_records(records)

    def completed(verification_type: VerificationType) -> bool:
        record = latest.get(verification_type)
        return record is not None and record.is_satisfied

    if not completed(VerificationType.BVN):
        return VerificationStep.BVN
    if not completed(VerificationType.NIN):
        return VerificationStep.NIN

    # Business customers never do liveness, whatever its record says
    if customer_type == CustomerType.BUSINESS:
        return VerificationStep.DOCUMENTS
    return VerificationStep.LIVENESS


@dataclass(frozen=True)
class DocumentAccess:
    """Whether the Documents step may show the upload form."""
    bvn_verified: bool
    nin_verified: bool

    @property
    def allowed(self) -> bool:
        return self.bvn_verified and self.nin_verified

    @property
    def reason(self) -> Optional[str]:
        if self.allowed:
            return None
        return "Complete BVN and NIN verification to access document upload"


def document_access(records: Iterable[VerificationRecord]) -> DocumentAccess:
    latest = latest_records(records)

    def verified(verification_type: VerificationType) -> bool:
        record = latest.get(verification_type)
        return record is not None and (
            record.status == VerificationStatus.VERIFIED or record.is_completed
        )

    return DocumentAccess(
        bvn_verified=verified(VerificationType.BVN),
        nin_verified=verified(VerificationType.NIN),
    )


def missing_payout_verifications(
    records: Iterable[VerificationRecord],
) -> List[VerificationType]:
    """Verifications that must be completed before money can be sent."""
    latest = latest_records(records)
    return [
        verification_type
        for verification_type in (VerificationType.BVN, VerificationType.NIN)
        if not (latest.get(verification_type) and latest[verification_type].is_satisfied)
    ]


def is_journey_complete(
    records: Iterable[VerificationRecord],
    documents: Iterable[DocumentRecord],
    customer_type: CustomerType,
) -> bool:
    """Individual: liveness done. Business: BVN, NIN and every required document approved."""
    records = list(records)
    customer_type = CustomerType(customer_type)
    if customer_type == CustomerType.INDIVIDUAL:
        return (
            derive_active_step(records, customer_type) == VerificationStep.LIVENESS
            and is_completed(records, VerificationType.LIVENESS)
        )
    if derive_active_step(records, customer_type) != VerificationStep.DOCUMENTS:
        return False
    return all(doc.status == DocumentStatus.APPROVED for doc in documents if doc.required)


class VerificationTracker:
    """Holds one customer's record snapshot and keeps the active step in sync."""

    REFRESH_KEY = "verification-refresh"

    def __init__(
        self,
        client: TreegarClient,
        customer_id: str,
        customer_type: CustomerType,
        customer_code: Optional[str] = None,
        settings: Optional[Settings] = None,
    ):
        self.client = client
        self.customer_id = customer_id
        self.customer_type = CustomerType(customer_type)
        self.customer_code = customer_code
        self.settings = settings or get_settings()
        self.records: Tuple[VerificationRecord, ...] = ()
        self.documents: Tuple[DocumentRecord, ...] = ()
        self.active_step = derive_active_step(self.records, self.customer_type)
        self.displayed_step = self.active_step
        self._debouncer = KeyedDebouncer(self.settings.verification_refresh_delay_ms)

    @property
    def journey(self) -> Tuple[VerificationStep, ...]:
        return JOURNEYS[self.customer_type]

    @property
    def document_access(self) -> DocumentAccess:
        return document_access(self.records)

    @property
    def is_complete(self) -> bool:
        return is_journey_complete(self.records, self.documents, self.customer_type)

    def update(
        self,
        records: Sequence[VerificationRecord],
        documents: Optional[Sequence[DocumentRecord]] = None,
    ) -> VerificationStep:
        """Replace the snapshot and re-derive the active step."""
        self.records = tuple(records)
        if documents is not None:
            self.documents = tuple(documents)
        return self.reconcile(self.active_step)

    def reconcile(self, cached_step: Optional[VerificationStep]) -> VerificationStep:
        """Return the freshly derived step, overriding a disagreeing cached one."""
        derived = derive_active_step(self.records, self.customer_type)
        if cached_step is not None and cached_step != derived:
            journey = self.journey
            if cached_step in journey and journey.index(derived) < journey.index(cached_step):
                logger.warning(
                    f"Customer {self.customer_id}: active step moved back "
                    f"{cached_step.value} -> {derived.value}"
                )
            else:
                logger.info(
                    f"Customer {self.customer_id}: active step "
                    f"{cached_step.value} -> {derived.value}"
                )
        self.active_step = derived
        self.displayed_step = derived
        return derived

    def request_step(self, step: VerificationStep) -> VerificationStep:
        """Ask to show `step`. Only steps up to the active one are reachable."""
        step = VerificationStep(step)
        journey = self.journey
        if step in journey and journey.index(step) <= journey.index(self.active_step):
            self.displayed_step = step
        else:
            logger.debug(
                f"Customer {self.customer_id}: step {step.value} not reachable, "
                f"staying on {self.active_step.value}"
            )
            self.displayed_step = self.active_step
        return self.displayed_step

    async def refresh(self) -> VerificationStep:
        """Fetch the latest records (and documents, for Business) and re-derive."""
        records = await self.client.get_verification_records(self.customer_id)
        documents = None
        if self.customer_type == CustomerType.BUSINESS:
            documents = await self.client.get_document_records(self.customer_id)
        return self.update(records, documents)

    def schedule_refresh(self) -> None:
        """Refresh after the backend has had time to propagate a change."""
        self._debouncer.schedule(self.REFRESH_KEY, self._refresh_quietly)

    async def _refresh_quietly(self) -> None:
        try:
            await self.refresh()
        except Exception as e:
            # Snapshot stays as-is; the next refresh catches up
            logger.warning(f"Verification refresh for {self.customer_id} failed: {e}")

    async def wait_idle(self) -> None:
        await self._debouncer.wait_idle()

    def close(self) -> None:
        self._debouncer.cancel_all()

    def validate_number(self, verification_type: VerificationType, value: str) -> str:
        """Check a BVN/NIN locally. Returns the cleaned value."""
        verification_type = VerificationType(verification_type)
        if verification_type not in (VerificationType.BVN, VerificationType.NIN):
            raise PayoutValidationError(
                f"{verification_type.value} cannot be submitted as a number"
            )
        value = (value or "").strip()
        length = self.settings.verification_number_length
        label = verification_type.value.upper()
        if not value.isdigit():
            raise PayoutValidationError(
                "Invalid verification number",
                intent_errors=[f"{label} must contain only numbers"],
            )
        if len(value) != length:
            raise PayoutValidationError(
                "Invalid verification number",
                intent_errors=[f"{label} must be exactly {length} digits"],
            )
        return value

    async def submit_verification(
        self, verification_type: VerificationType, value: str
    ) -> Any:
        """Submit a BVN or NIN and schedule the follow-up refresh."""
        verification_type = VerificationType(verification_type)
        value = self.validate_number(verification_type, value)

        request = KYCSubmissionRequest(
            customer_id=self.customer_id,
            customer_code=self.customer_code,
            **{verification_type.value: value},
        )
        if self.customer_type == CustomerType.BUSINESS:
            result = await self.client.submit_business_kyc(request)
        else:
            result = await self.client.submit_individual_kyc(request)

        logger.info(f"Customer {self.customer_id}: {verification_type.value} submitted")
        self.schedule_refresh()
        return result

    async def upload_document(
        self,
        document_key: str,
        filename: str,
        content: bytes,
        content_type: str = "application/pdf",
    ) -> Any:
        """Upload a business document once BVN and NIN are verified."""
        access = self.document_access
        if not access.allowed:
            raise VerificationBlockedError(access.reason)
        if not document_key or not content:
            raise PayoutValidationError(
                "Incomplete upload",
                intent_errors=["Please select both document type and file"],
            )

        result = await self.client.upload_document(
            self.customer_id, document_key, filename, content, content_type
        )
        logger.info(f"Customer {self.customer_id}: document {document_key} uploaded")
        self.schedule_refresh()
        return result
