"""Duplicate submission guard.

A duplicate is any earlier submission with the same
``(block_id, flat_id, expected_collection_id)`` tuple.  Payment date and
amount play no part, so a flat can pay "Maintenance" and "Contingency Fund"
independently but cannot submit twice against the same collection.

When the store cannot be reached the guard FAILS OPEN: it reports
``is_duplicate=False`` with ``lookup_failed=True`` and a warning the caller
must show.
"""

from __future__ import annotations

import logging

from flatfund.config import TRACE_ENABLED
from flatfund.engine.errors import StoreUnavailable
from flatfund.engine.models import DuplicateCheckResult
from flatfund.engine.periods import DateLike, fiscal_quarter, parse_date
from flatfund.engine.store import SubmissionStore

logger = logging.getLogger(__name__)

FAIL_OPEN_WARNING = (
    "Duplicate check is not available right now. "
    "Please make sure you are not submitting a payment twice for the same collection."
)


def _trace(msg: str):
    if TRACE_ENABLED:
        logger.debug(f"[TRACE] {msg}")


class DuplicateGuard:
    """Checks the (block, flat, collection) tuple against stored submissions."""

    def __init__(self, store: SubmissionStore):
        self.store = store

    def check(
        self,
        block_id: str | None,
        flat_id: str | None,
        collection_id: str | None,
        payment_date: DateLike = None,
        submitted_at: DateLike = None,
    ) -> DuplicateCheckResult:
        if not (block_id and flat_id and collection_id):
            # Nothing to key on, so it cannot collide with anything
            return DuplicateCheckResult(is_duplicate=False)

        date_arg = parse_date(payment_date)
        try:
            response = self.store.check_duplicate(
                block_id, flat_id, collection_id,
                date_arg.isoformat() if date_arg else None,
            )
        except StoreUnavailable as exc:
            return self._fail_open(block_id, flat_id, collection_id, exc)

        if not response or not response.get("is_duplicate"):
            _trace(f"DUPLICATE block={block_id} flat={flat_id} collection={collection_id} -> clear")
            return DuplicateCheckResult(is_duplicate=False)

        existing = dict(response.get("existing") or {})
        if not existing.get("payment_quarter"):
            existing["payment_quarter"] = fiscal_quarter(
                existing.get("payment_date"), existing.get("created_at") or submitted_at,
            )
        logger.info(
            f"Duplicate submission for flat {flat_id} / collection {collection_id} "
            f"(existing {existing.get('id')}, {existing.get('payment_quarter')})"
        )
        return DuplicateCheckResult(is_duplicate=True, existing=existing)

    def _fail_open(self, block_id: str, flat_id: str, collection_id: str, exc: Exception) -> DuplicateCheckResult:
        """Named policy branch: store unreachable → allow, but say so."""
        logger.warning(
            f"Duplicate check unavailable for block={block_id} flat={flat_id} "
            f"collection={collection_id}: {exc} — failing open"
        )
        return DuplicateCheckResult(
            is_duplicate=False,
            lookup_failed=True,
            warning=FAIL_OPEN_WARNING,
        )
