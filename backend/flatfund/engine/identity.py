"""Flat identity reconciliation.

Each flat is bound to one contact email (and optionally a mobile) the first
time a payment is submitted for it.  Later submissions are checked against
that binding:

    no mapping                 → CREATED   (mapping stored with this email)
    mapping, same email        → PROCEED
    mapping, different email   → EMAIL_MISMATCH   (terminal; nothing written)

Mobile numbers are compared after normalization.  When the flat already
has a different mobile on file the reconciler does not pick a side: it
returns MOBILE_MISMATCH with both numbers masked and a single-use decision
token.  The caller re-runs with that token and one of two choices:

    permanent → overwrite the stored mobile
    one-time  → keep the stored mobile, use the new one for this submission only

A token is bound to the flat and the claimed number, expires after
``DECISION_TOKEN_TTL_SECONDS`` and is consumed by the first re-run for that
flat and number; a re-run with a different number is refused and leaves the
token in place.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from flatfund.config import DECISION_TOKEN_TTL_SECONDS, TRACE_ENABLED
from flatfund.engine.errors import IdentityConflict
from flatfund.engine.mobile import mask_mobile, mobiles_match, normalize_mobile_number
from flatfund.engine.store import SubmissionStore

logger = logging.getLogger(__name__)

CREATED = "CREATED"
PROCEED = "PROCEED"
EMAIL_MISMATCH = "EMAIL_MISMATCH"
MOBILE_MISMATCH = "MOBILE_MISMATCH"


def _trace(msg: str):
    if TRACE_ENABLED:
        logger.debug(f"[TRACE] {msg}")


class MobileDecision(str, Enum):
    PERMANENT = "permanent"
    ONE_TIME = "one-time"

    @classmethod
    def parse(cls, value) -> "MobileDecision":
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower().replace("_", "-")
        for member in cls:
            if member.value == text:
                return member
        raise IdentityConflict(
            "INVALID_DECISION",
            f"Unknown mobile decision {value!r} (expected 'permanent' or 'one-time')",
        )


@dataclass
class IdentityClaim:
    """Who the submitter says they are."""
    apartment_id: str
    block_id: str
    flat_id: str
    email: str
    occupant_type: str
    mobile: Optional[str] = None
    name: Optional[str] = None
    whatsapp_opt_in: bool = True


@dataclass
class MobileDecisionToken:
    token: str
    apartment_id: str
    flat_id: str
    claimed_mobile: str       # normalized full number
    stored_mobile: str
    expires_at: float
    consumed: bool = False


@dataclass
class IdentityOutcome:
    status: str
    contact_number: Optional[str] = None
    message: Optional[str] = None
    mismatch: Optional[dict] = None
    mobile_decision: Optional[str] = None
    created: bool = False

    @property
    def ok(self) -> bool:
        return self.status in (CREATED, PROCEED)

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "contact_number": self.contact_number,
            "message": self.message,
            "mismatch": self.mismatch,
            "mobile_decision": self.mobile_decision,
            "created": self.created,
        }


class IdentityReconciler:
    """Validates / creates the flat → contact binding for one submission attempt."""

    def __init__(self, store: SubmissionStore, token_ttl: int = DECISION_TOKEN_TTL_SECONDS):
        self.store = store
        self.token_ttl = token_ttl
        self._tokens: dict[str, MobileDecisionToken] = {}
        self._lock = threading.Lock()

    # ── decision tokens ──

    def _issue_token(self, claim: IdentityClaim, claimed_full: str, stored_full: str) -> MobileDecisionToken:
        now = time.monotonic()
        token = MobileDecisionToken(
            token=uuid.uuid4().hex,
            apartment_id=claim.apartment_id,
            flat_id=claim.flat_id,
            claimed_mobile=claimed_full,
            stored_mobile=stored_full,
            expires_at=now + self.token_ttl,
        )
        with self._lock:
            # Drop expired tokens while we hold the lock
            self._tokens = {k: t for k, t in self._tokens.items() if t.expires_at > now and not t.consumed}
            self._tokens[token.token] = token
        return token

    def _consume_token(self, token_id: str, claim: IdentityClaim, claimed_full: str) -> MobileDecisionToken:
        with self._lock:
            token = self._tokens.get(token_id)
            if token is None or token.consumed:
                raise IdentityConflict("INVALID_DECISION", "Mobile decision has expired or was already used. Please submit again.")
            if token.expires_at <= time.monotonic():
                self._tokens.pop(token_id, None)
                raise IdentityConflict("INVALID_DECISION", "Mobile decision has expired. Please submit again.")
            # A mismatched re-run leaves the token for the submission it was issued to
            if (token.apartment_id, token.flat_id, token.claimed_mobile) != (claim.apartment_id, claim.flat_id, claimed_full):
                raise IdentityConflict("INVALID_DECISION", "Mobile decision does not match this submission.")
            self._tokens.pop(token_id, None)
            token.consumed = True
        return token

    # ── reconciliation ──

    def reconcile(
        self,
        claim: IdentityClaim,
        decision_token: str | None = None,
        decision: MobileDecision | str | None = None,
    ) -> IdentityOutcome:
        """Run the identity state machine for one submission attempt.

        ``StoreUnavailable`` propagates: identity is never assumed.
        """
        email = (claim.email or "").strip().lower()
        result = self.store.reconcile_identity(
            claim.apartment_id, claim.block_id, claim.flat_id, email, claim.occupant_type,
        )
        if not result or not result.get("success"):
            logger.warning(f"Email mismatch for flat {claim.flat_id} (apartment {claim.apartment_id})")
            return IdentityOutcome(
                status=EMAIL_MISMATCH,
                message=(result or {}).get("message")
                or "This flat is mapped to another email address. Please contact your management committee.",
            )

        created = bool(result.get("created"))
        status = CREATED if created else PROCEED
        _trace(f"IDENTITY flat={claim.flat_id} email ok, created={created}")

        claimed = normalize_mobile_number(claim.mobile) if claim.mobile and claim.mobile.strip() else None
        if claimed is None or not claimed.full_number:
            # No contact number entered: only the opt-in (and name) are recorded
            self.store.update_contact_info(
                claim.apartment_id, claim.flat_id,
                name=claim.name, whatsapp_opt_in=claim.whatsapp_opt_in,
            )
            return IdentityOutcome(status=status, created=created)

        contact = self.store.get_contact_info(claim.apartment_id, claim.flat_id) or {}
        stored_raw = contact.get("mobile")

        if not stored_raw or mobiles_match(stored_raw, claimed.full_number):
            # First write (or same number): store unconditionally
            self.store.update_contact_info(
                claim.apartment_id, claim.flat_id,
                mobile=claimed.full_number, name=claim.name, whatsapp_opt_in=claim.whatsapp_opt_in,
            )
            return IdentityOutcome(status=status, contact_number=claimed.full_number, created=created)

        stored_full = normalize_mobile_number(stored_raw).full_number

        if decision_token is None:
            token = self._issue_token(claim, claimed.full_number, stored_full)
            logger.info(f"Mobile mismatch for flat {claim.flat_id}: awaiting user decision")
            return IdentityOutcome(
                status=MOBILE_MISMATCH,
                message="The mobile number entered differs from the one on record for this flat.",
                mismatch={
                    "stored": mask_mobile(stored_full),
                    "entered": mask_mobile(claimed.full_number),
                    "decision_token": token.token,
                    "choices": [d.value for d in MobileDecision],
                },
                created=created,
            )

        choice = MobileDecision.parse(decision)
        self._consume_token(decision_token, claim, claimed.full_number)

        if choice is MobileDecision.PERMANENT:
            self.store.update_contact_info(
                claim.apartment_id, claim.flat_id,
                mobile=claimed.full_number, name=claim.name, whatsapp_opt_in=claim.whatsapp_opt_in,
            )
            logger.info(f"Flat {claim.flat_id}: stored mobile replaced by user decision")
        else:
            # Keep the stored mobile; only the opt-in preference is updated
            self.store.update_contact_info(
                claim.apartment_id, claim.flat_id, whatsapp_opt_in=claim.whatsapp_opt_in,
            )
            logger.info(f"Flat {claim.flat_id}: one-time mobile used for this submission only")

        return IdentityOutcome(
            status=status,
            contact_number=claimed.full_number,
            mobile_decision=choice.value,
            created=created,
        )
