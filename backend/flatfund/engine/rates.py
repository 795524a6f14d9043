"""Base amount resolution under the apartment's collection mode.

    Mode A: every flat pays ``collection.amount_due``
    Mode B: ``collection.rate_per_sqft × flat.built_up_area``
    Mode C: ``collection.flat_type_rates[flat.flat_type]``

A resolution with ``amount=None`` means "cannot compute" and always names
the missing field.  It is never the same thing as zero.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from flatfund.config import TRACE_ENABLED
from flatfund.engine.errors import ConfigurationError
from flatfund.engine.models import Apartment, Collection, Flat

logger = logging.getLogger(__name__)


def _trace(msg: str):
    if TRACE_ENABLED:
        logger.debug(f"[TRACE] {msg}")


@dataclass(frozen=True)
class RateResolution:
    amount: Optional[Decimal]
    mode: str
    missing_field: Optional[str] = None
    reason: Optional[str] = None

    @property
    def resolved(self) -> bool:
        return self.amount is not None

    def to_dict(self) -> dict:
        return {
            "amount": float(self.amount) if self.amount is not None else None,
            "mode": self.mode,
            "missing_field": self.missing_field,
            "reason": self.reason,
        }


def _unresolved(mode: str, missing_field: str, reason: str) -> RateResolution:
    _trace(f"RATE mode={mode} unresolved: {missing_field} ({reason})")
    return RateResolution(amount=None, mode=mode, missing_field=missing_field, reason=reason)


def resolve_base_amount(apartment: Apartment, collection: Collection, flat: Flat) -> RateResolution:
    """Compute the base amount due for ``flat`` under ``collection``."""
    mode = (apartment.collection_mode or "").upper()

    if mode == "A":
        amount = collection.amount_due if collection.amount_due is not None else Decimal("0")
        _trace(f"RATE mode=A collection={collection.id} flat={flat.id} amount={amount}")
        return RateResolution(amount=amount, mode=mode)

    if mode == "B":
        if not collection.rate_per_sqft:
            return _unresolved(
                mode, "rate_per_sqft",
                f"Collection '{collection.name}' has no rate per sq.ft configured",
            )
        if not flat.built_up_area:
            return _unresolved(
                mode, "built_up_area",
                f"Flat {flat.flat_number} has no built-up area on record",
            )
        amount = collection.rate_per_sqft * flat.built_up_area
        _trace(
            f"RATE mode=B collection={collection.id} flat={flat.id} "
            f"{collection.rate_per_sqft} x {flat.built_up_area} = {amount}"
        )
        return RateResolution(amount=amount, mode=mode)

    if mode == "C":
        if not collection.flat_type_rates:
            return _unresolved(
                mode, "flat_type_rates",
                f"Collection '{collection.name}' has no flat-type rates configured",
            )
        if not flat.flat_type:
            return _unresolved(
                mode, "flat_type",
                f"Flat {flat.flat_number} has no flat type on record",
            )
        rate = collection.flat_type_rates.get(flat.flat_type)
        if rate is None:
            return _unresolved(
                mode, "flat_type_rates",
                f"Collection '{collection.name}' has no rate for flat type {flat.flat_type}",
            )
        _trace(f"RATE mode=C collection={collection.id} flat={flat.id} type={flat.flat_type} amount={rate}")
        return RateResolution(amount=rate, mode=mode)

    return _unresolved(
        mode, "collection_mode",
        f"Apartment {apartment.id} has invalid collection mode {apartment.collection_mode!r}",
    )


def require_base_amount(apartment: Apartment, collection: Collection, flat: Flat) -> Decimal:
    """Like ``resolve_base_amount`` but raises ConfigurationError when unresolved."""
    resolution = resolve_base_amount(apartment, collection, flat)
    if resolution.amount is None:
        raise ConfigurationError(resolution.missing_field or "collection", resolution.reason or "")
    return resolution.amount


def expected_amount_for_flat(collection: Collection, flat: Flat) -> Decimal:
    """Mode-agnostic estimate used by the collection status summary.

    Uses whatever rate data the collection carries: flat-type rate first,
    then area rate, then the flat amount.  Missing data falls through to
    ``amount_due`` (or 0), because a dashboard total must always add up.
    """
    if collection.flat_type_rates and flat.flat_type:
        rate = collection.flat_type_rates.get(flat.flat_type)
        if rate is not None:
            return rate
    if collection.rate_per_sqft and flat.built_up_area:
        return collection.rate_per_sqft * flat.built_up_area
    return collection.amount_due or Decimal("0")
