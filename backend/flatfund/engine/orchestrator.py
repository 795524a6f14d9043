"""Submission orchestrator: runs one payment-proof submission attempt.

Pipeline stages (each stops the attempt on failure):
  0. Request validation & reference lookup (apartment / block / flat / collection)
  1. Identity reconciliation   → EMAIL_MISMATCH | MOBILE_MISMATCH | INVALID_DECISION
  2. Duplicate guard           → DUPLICATE  (store unreachable: warn and continue)
  3. Amount calculation        → CONFIGURATION_ERROR
  4. Persist submission        → SUBMIT_FAILED

The computed amount (base + late fine) is only a default: a payment amount
supplied by the caller replaces it without any bound.  The figure the
engine computed is kept on the submission next to the amount charged.

Identity writes made in stage 1 are durable even if stage 4 fails; no
other state is written before stage 4.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from flatfund.config import OCCUPANT_TYPES, TRACE_ENABLED
from flatfund.engine.duplicates import DuplicateGuard
from flatfund.engine.errors import (
    ConfigurationError,
    DuplicateSubmission,
    FlatFundError,
    IdentityConflict,
    PersistenceFailure,
    ReferenceNotFound,
    StoreUnavailable,
)
from flatfund.engine.fines import DueAmount, compute_due_amount
from flatfund.engine.identity import (
    EMAIL_MISMATCH,
    MOBILE_MISMATCH,
    IdentityClaim,
    IdentityReconciler,
    MobileDecision,
)
from flatfund.engine.mobile import normalize_mobile_number, validate_mobile_number
from flatfund.engine.models import (
    Apartment,
    Block,
    Collection,
    Flat,
    PaymentSubmission,
    to_decimal,
)
from flatfund.engine.periods import DateLike, fiscal_quarter, parse_date
from flatfund.engine.store import SubmissionStore

logger = logging.getLogger(__name__)

# Outcome statuses
ACCEPTED = "ACCEPTED"
DUPLICATE = "DUPLICATE"
CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
SUBMIT_FAILED = "SUBMIT_FAILED"
INVALID_REQUEST = "INVALID_REQUEST"
INVALID_DECISION = "INVALID_DECISION"
NOT_FOUND = "NOT_FOUND"

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _trace(msg: str):
    if TRACE_ENABLED:
        logger.debug(f"[TRACE] {msg}")


@dataclass
class SubmissionRequest:
    apartment_id: str
    block_id: str
    flat_id: str
    expected_collection_id: str
    email: str
    occupant_type: str
    contact_number: Optional[str] = None
    name: Optional[str] = None
    payment_amount: Any = None          # optional human override of the computed amount
    payment_date: DateLike = None
    whatsapp_opt_in: bool = True
    fraud_score: Optional[float] = None


@dataclass
class SubmissionOutcome:
    status: str
    message: Optional[str] = None
    submission_id: Optional[str] = None
    submission: Optional[dict] = None
    due: Optional[dict] = None
    amount_overridden: bool = False
    conflict: Optional[dict] = None
    errors: dict[str, str] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    @property
    def accepted(self) -> bool:
        return self.status == ACCEPTED

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "message": self.message,
            "submission_id": self.submission_id,
            "submission": self.submission,
            "due": self.due,
            "amount_overridden": self.amount_overridden,
            "conflict": self.conflict,
            "errors": self.errors,
            "warnings": self.warnings,
        }


@dataclass
class _References:
    apartment: Apartment
    block: Block
    flat: Flat
    collection: Collection


class SubmissionOrchestrator:
    """Sequences identity → duplicate → amount → persist for one attempt."""

    def __init__(
        self,
        store: SubmissionStore,
        reconciler: IdentityReconciler | None = None,
        duplicate_guard: DuplicateGuard | None = None,
    ):
        self.store = store
        self.reconciler = reconciler or IdentityReconciler(store)
        self.duplicate_guard = duplicate_guard or DuplicateGuard(store)

    # ═══════════════════════════════════════════
    # Reference lookup
    # ═══════════════════════════════════════════

    def _load_references(self, apartment_id: str, block_id: str, flat_id: str, collection_id: str) -> _References:
        apartment = self.store.get_apartment(apartment_id)
        if apartment is None:
            raise ReferenceNotFound(f"Apartment {apartment_id} not found")
        block = self.store.get_block(block_id)
        if block is None or block.apartment_id != apartment.id:
            raise ReferenceNotFound(f"Block {block_id} not found in apartment {apartment_id}")
        flat = self.store.get_flat(flat_id)
        if flat is None or flat.block_id != block.id:
            raise ReferenceNotFound(f"Flat {flat_id} not found in block {block_id}")
        collection = self.store.get_collection(collection_id)
        if collection is None or collection.apartment_id != apartment.id:
            raise ReferenceNotFound(f"Collection {collection_id} not found for apartment {apartment_id}")
        return _References(apartment, block, flat, collection)

    def quote(self, flat_id: str, collection_id: str, payment_date: DateLike = None, today: DateLike = None) -> DueAmount:
        """Amount owed for one flat and collection (stage 3 on its own).

        Raises ReferenceNotFound / ConfigurationError.
        """
        flat = self.store.get_flat(flat_id)
        if flat is None:
            raise ReferenceNotFound(f"Flat {flat_id} not found")
        block = self.store.get_block(flat.block_id)
        collection = self.store.get_collection(collection_id)
        if collection is None:
            raise ReferenceNotFound(f"Collection {collection_id} not found")
        apartment = self.store.get_apartment(collection.apartment_id)
        if apartment is None or block is None or block.apartment_id != apartment.id:
            raise ReferenceNotFound(f"Flat {flat_id} does not belong to the apartment of collection {collection_id}")
        return compute_due_amount(apartment, collection, flat, payment_date=payment_date, today=today)

    # ═══════════════════════════════════════════
    # Validation
    # ═══════════════════════════════════════════

    def _validate(self, request: SubmissionRequest) -> dict[str, str]:
        errors: dict[str, str] = {}
        for name in ("apartment_id", "block_id", "flat_id", "expected_collection_id"):
            if not str(getattr(request, name) or "").strip():
                errors[name] = f"{name} is required"

        email = (request.email or "").strip()
        if not email:
            errors["email"] = "Email is required"
        elif not _EMAIL_RE.match(email):
            errors["email"] = "Please enter a valid email address"

        if request.occupant_type not in OCCUPANT_TYPES:
            errors["occupant_type"] = f"Occupant type must be one of {', '.join(OCCUPANT_TYPES)}"

        if request.contact_number and request.contact_number.strip():
            n = normalize_mobile_number(request.contact_number)
            valid, error = validate_mobile_number(n.local_number, n.country_code)
            if not valid:
                errors["contact_number"] = error or "Invalid mobile number"

        if request.payment_amount not in (None, ""):
            try:
                amount = to_decimal(request.payment_amount, "payment_amount")
            except ConfigurationError as exc:
                errors["payment_amount"] = exc.message
            else:
                if amount is not None and amount <= 0:
                    errors["payment_amount"] = "Payment amount must be greater than zero"

        try:
            parse_date(request.payment_date)
        except ValueError:
            errors["payment_date"] = "Payment date must be a valid date (YYYY-MM-DD)"
        return errors

    # ═══════════════════════════════════════════
    # Submission
    # ═══════════════════════════════════════════

    def submit(
        self,
        request: SubmissionRequest,
        decision_token: str | None = None,
        decision: MobileDecision | str | None = None,
        today: DateLike = None,
    ) -> SubmissionOutcome:
        """Run one submission attempt and report how it ended."""
        errors = self._validate(request)
        if errors:
            return SubmissionOutcome(status=INVALID_REQUEST, message="Please correct the highlighted fields", errors=errors)

        submitted_at = datetime.now()
        payment_date = parse_date(request.payment_date)

        # ── Stage 0: reference data ──
        try:
            refs = self._load_references(
                request.apartment_id, request.block_id, request.flat_id, request.expected_collection_id,
            )
        except ReferenceNotFound as exc:
            return SubmissionOutcome(status=NOT_FOUND, message=exc.message)
        except StoreUnavailable as exc:
            logger.error(f"Reference lookup failed for flat {request.flat_id}: {exc}")
            return SubmissionOutcome(status=SUBMIT_FAILED, message="Service temporarily unavailable. Please try again.")

        if not refs.collection.is_active:
            return SubmissionOutcome(
                status=INVALID_REQUEST,
                message=f"Collection '{refs.collection.name}' is not open for payments",
                errors={"expected_collection_id": "Collection is not active"},
            )

        # ── Stage 1: identity ──
        claim = IdentityClaim(
            apartment_id=request.apartment_id,
            block_id=request.block_id,
            flat_id=request.flat_id,
            email=request.email,
            occupant_type=request.occupant_type,
            mobile=request.contact_number,
            name=(request.name or "").strip() or None,
            whatsapp_opt_in=request.whatsapp_opt_in,
        )
        try:
            identity = self.reconciler.reconcile(claim, decision_token=decision_token, decision=decision)
        except IdentityConflict as exc:
            return SubmissionOutcome(status=INVALID_DECISION, message=exc.message, conflict=exc.to_dict())
        except StoreUnavailable as exc:
            # Identity is never assumed; only duplicate checks fail open
            logger.error(f"Identity check unavailable for flat {request.flat_id}: {exc}")
            return SubmissionOutcome(
                status=SUBMIT_FAILED,
                message="Could not verify the flat's registered contact. Please try again shortly.",
            )

        if identity.status == EMAIL_MISMATCH:
            return SubmissionOutcome(status=EMAIL_MISMATCH, message=identity.message)
        if identity.status == MOBILE_MISMATCH:
            return SubmissionOutcome(status=MOBILE_MISMATCH, message=identity.message, conflict=identity.mismatch)
        _trace(f"SUBMIT flat={request.flat_id} identity={identity.status}")

        # ── Stage 2: duplicate guard ──
        warnings: list[str] = []
        dup = self.duplicate_guard.check(
            request.block_id, request.flat_id, request.expected_collection_id,
            payment_date=payment_date, submitted_at=submitted_at,
        )
        if dup.is_duplicate:
            existing = dup.existing or {}
            return SubmissionOutcome(
                status=DUPLICATE,
                message=(
                    f"A payment for '{existing.get('collection_name') or refs.collection.name}' "
                    f"has already been submitted for this flat"
                ),
                conflict=existing,
            )
        if dup.lookup_failed:
            # Fail-open policy: lookup unavailable, proceed but surface the warning
            warnings.append(dup.warning or "Duplicate check was skipped")

        # ── Stage 3: amount ──
        try:
            due = compute_due_amount(
                refs.apartment, refs.collection, refs.flat,
                payment_date=payment_date, today=today or submitted_at,
            )
        except ConfigurationError as exc:
            logger.warning(f"Cannot compute amount for flat {refs.flat.id} / collection {refs.collection.id}: {exc.message}")
            return SubmissionOutcome(
                status=CONFIGURATION_ERROR,
                message=exc.message,
                errors={exc.field: exc.message},
                warnings=warnings,
            )

        override = to_decimal(request.payment_amount, "payment_amount") if request.payment_amount not in (None, "") else None
        amount: Decimal = override if override is not None else due.total
        overridden = override is not None and override != due.total
        if overridden:
            logger.info(
                f"Flat {refs.flat.id}: amount {override} entered instead of computed {due.total}"
            )

        # ── Stage 4: persist ──
        submission = PaymentSubmission(
            apartment_id=request.apartment_id,
            block_id=request.block_id,
            flat_id=request.flat_id,
            expected_collection_id=request.expected_collection_id,
            email=request.email.strip(),
            payment_amount=amount,
            occupant_type=request.occupant_type,
            payment_date=payment_date,
            contact_number=identity.contact_number,
            name=claim.name,
            payment_type=refs.collection.payment_type,
            payment_quarter=fiscal_quarter(payment_date, submitted_at),
            computed_amount=due.total,
            fraud_score=request.fraud_score,
            created_at=submitted_at.isoformat(),
        )
        try:
            submission_id = self.store.insert_submission(submission)
        except DuplicateSubmission as exc:
            # Store-level uniqueness caught a race the guard could not see
            return SubmissionOutcome(status=DUPLICATE, message=exc.message, conflict=exc.existing, warnings=warnings)
        except (StoreUnavailable, PersistenceFailure, OSError) as exc:
            logger.error(f"Failed to save submission for flat {request.flat_id}: {exc}")
            return SubmissionOutcome(
                status=SUBMIT_FAILED,
                message="Failed to submit payment proof. Please try again.",
                due=due.to_dict(),
                warnings=warnings,
            )

        logger.info(
            f"Accepted submission {submission_id}: flat {request.flat_id}, "
            f"collection {request.expected_collection_id}, amount {amount}"
        )
        return SubmissionOutcome(
            status=ACCEPTED,
            message="Payment proof submitted successfully",
            submission_id=submission_id,
            submission=submission.to_dict(),
            due=due.to_dict(),
            amount_overridden=overridden,
            warnings=warnings,
        )


def outcome_for_error(exc: FlatFundError) -> SubmissionOutcome:
    """Map a stray engine error to an outcome (used by the API layer)."""
    if isinstance(exc, ConfigurationError):
        return SubmissionOutcome(status=CONFIGURATION_ERROR, message=exc.message, errors={exc.field: exc.message})
    if isinstance(exc, ReferenceNotFound):
        return SubmissionOutcome(status=NOT_FOUND, message=exc.message)
    return SubmissionOutcome(status=SUBMIT_FAILED, message=exc.message)


