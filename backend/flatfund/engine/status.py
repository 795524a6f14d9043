"""Collection status summary: who has paid what for one collection.

Every flat of the apartment gets one status from its submissions against
the collection:

    pending       no submission with an amount
    under_review  something is awaiting review and approvals don't cover it yet
    partial       approved amount > 0 but below the expected amount
    paid          approved amount covers the expected amount
    overpaid      approved amount exceeds expected by more than the tolerance
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from flatfund.config import AMOUNT_TOLERANCE, PENDING_REVIEW_STATUSES
from flatfund.engine.errors import ReferenceNotFound
from flatfund.engine.models import Collection, Flat, PaymentSubmission, decimal_to_json
from flatfund.engine.rates import expected_amount_for_flat
from flatfund.engine.store import SubmissionStore

logger = logging.getLogger(__name__)

FLAT_STATUSES = ["paid", "under_review", "partial", "overpaid", "pending"]

_ZERO = Decimal("0")


@dataclass
class FlatStatus:
    flat_id: str
    flat_number: str
    block_name: str
    status: str
    expected_amount: Decimal
    approved_amount: Decimal = _ZERO
    pending_amount: Decimal = _ZERO
    last_payment_date: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "flat_id": self.flat_id,
            "flat_number": self.flat_number,
            "block_name": self.block_name,
            "status": self.status,
            "expected_amount": decimal_to_json(self.expected_amount),
            "approved_amount": decimal_to_json(self.approved_amount),
            "pending_amount": decimal_to_json(self.pending_amount),
            "last_payment_date": self.last_payment_date,
        }


@dataclass
class CollectionStatus:
    collection_id: str
    collection_name: str
    flats: list[FlatStatus] = field(default_factory=list)

    @property
    def counts(self) -> dict[str, int]:
        counts = {s: 0 for s in FLAT_STATUSES}
        for f in self.flats:
            counts[f.status] += 1
        return counts

    @property
    def total_collected(self) -> Decimal:
        return sum((f.approved_amount for f in self.flats), _ZERO)

    @property
    def total_expected(self) -> Decimal:
        return sum((f.expected_amount for f in self.flats), _ZERO)

    def to_dict(self) -> dict:
        return {
            "collection_id": self.collection_id,
            "collection_name": self.collection_name,
            "counts": self.counts,
            "total_collected": decimal_to_json(self.total_collected),
            "total_expected": decimal_to_json(self.total_expected),
            "flats": [f.to_dict() for f in self.flats],
        }


def classify_flat(expected: Decimal, approved: Decimal, pending_review: Decimal,
                  tolerance: Decimal = AMOUNT_TOLERANCE) -> str:
    """Status for one flat given its approved and under-review totals."""
    if approved >= expected - tolerance and (approved > 0 or expected <= 0):
        return "overpaid" if approved > expected + tolerance else "paid"
    if pending_review > 0:
        return "under_review"
    if approved > 0:
        return "partial"
    return "pending"


def flat_status(collection: Collection, flat: Flat, block_name: str,
                submissions: list[PaymentSubmission]) -> FlatStatus:
    expected = expected_amount_for_flat(collection, flat)
    relevant = [
        s for s in submissions
        if s.flat_id == flat.id and s.expected_collection_id == collection.id and s.payment_amount is not None
    ]
    if not relevant:
        return FlatStatus(flat.id, flat.flat_number, block_name, "pending", expected)

    approved = sum((s.payment_amount for s in relevant if s.status == "Approved"), _ZERO)
    pending = sum((s.payment_amount for s in relevant if s.status in PENDING_REVIEW_STATUSES), _ZERO)
    dated = [s.payment_date for s in relevant if s.payment_date]
    return FlatStatus(
        flat_id=flat.id,
        flat_number=flat.flat_number,
        block_name=block_name,
        status=classify_flat(expected, approved, pending),
        expected_amount=expected,
        approved_amount=approved,
        pending_amount=pending,
        last_payment_date=max(dated).isoformat() if dated else None,
    )


def summarize_collection(store: SubmissionStore, collection_id: str) -> CollectionStatus:
    """Build the per-flat status table for one collection."""
    collection = store.get_collection(collection_id)
    if collection is None:
        raise ReferenceNotFound(f"Collection {collection_id} not found")

    submissions = store.list_submissions(collection_id=collection_id)
    summary = CollectionStatus(collection_id=collection.id, collection_name=collection.name)
    for block, flat in store.list_flats(collection.apartment_id):
        summary.flats.append(flat_status(collection, flat, block.block_name, submissions))

    logger.info(f"Collection {collection.name}: {summary.counts}")
    return summary
