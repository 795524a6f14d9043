"""Domain records for apartments, flats, collections, contacts and submissions.

Records are plain dataclasses.  Each one has ``from_dict`` (ingestion, with
validation) and ``to_dict`` (JSON-safe, used by the store and the API).
Collection rate data is validated here, at ingestion time, so the rate
resolver can trust what it reads.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, fields
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from flatfund.config import (
    COLLECTION_MODES,
    FLAT_TYPES,
    PAYMENT_FREQUENCIES,
)
from flatfund.engine.errors import ConfigurationError
from flatfund.engine.periods import parse_date

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════
# VALUE HELPERS
# ═══════════════════════════════════════════════════

def to_decimal(value: Any, field_name: str = "amount") -> Optional[Decimal]:
    """Coerce a JSON number / numeric string to Decimal.

    ``None`` and blank strings return None.  Booleans and non-numeric text
    raise ConfigurationError naming ``field_name``.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ConfigurationError(field_name, f"{field_name} must be numeric, got {value!r}")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            return None
    try:
        # str() first so floats like 0.1 keep their printed value
        result = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ConfigurationError(field_name, f"{field_name} must be numeric, got {value!r}")
    if not result.is_finite():
        raise ConfigurationError(field_name, f"{field_name} must be a finite number")
    return result


def decimal_to_json(value: Optional[Decimal]) -> Optional[float | int]:
    """Serialize a Decimal as a JSON number (int when integral)."""
    if value is None:
        return None
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def _date_to_json(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def parse_flat_type_rates(raw: Any) -> Optional[dict[str, Decimal]]:
    """Validate a flat-type → rate mapping.

    Keys must be known flat types and every value must be numeric and
    strictly positive.  Absent / empty input returns None.
    """
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ConfigurationError("flat_type_rates", "flat_type_rates must be a mapping of flat type to rate")
    if not raw:
        return None

    rates: dict[str, Decimal] = {}
    for flat_type, rate in raw.items():
        key = str(flat_type).strip()
        if key not in FLAT_TYPES:
            raise ConfigurationError(
                f"flat_type_rates[{key}]",
                f"Unknown flat type '{key}' (expected one of {', '.join(FLAT_TYPES)})",
            )
        amount = to_decimal(rate, f"flat_type_rates[{key}]")
        if amount is None or amount <= 0:
            raise ConfigurationError(
                f"flat_type_rates[{key}]",
                f"Rate for {key} must be a positive number, got {rate!r}",
            )
        rates[key] = amount
    return rates


# ═══════════════════════════════════════════════════
# REFERENCE DATA
# ═══════════════════════════════════════════════════

@dataclass
class Apartment:
    """A housing society; its collection mode fixes the billing policy."""
    id: str
    name: str
    collection_mode: str          # A | B | C
    status: str = "active"

    @classmethod
    def from_dict(cls, data: dict) -> "Apartment":
        mode = str(data.get("collection_mode", "")).strip().upper()
        if mode not in COLLECTION_MODES:
            raise ConfigurationError(
                "collection_mode",
                f"Apartment {data.get('id')}: collection_mode must be one of "
                f"{', '.join(COLLECTION_MODES)}, got {data.get('collection_mode')!r}",
            )
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            collection_mode=mode,
            status=data.get("status", "active"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "collection_mode": self.collection_mode,
            "status": self.status,
        }


@dataclass
class Block:
    """A building / block / phase inside an apartment."""
    id: str
    apartment_id: str
    block_name: str

    @classmethod
    def from_dict(cls, data: dict) -> "Block":
        return cls(
            id=str(data["id"]),
            apartment_id=str(data["apartment_id"]),
            block_name=data.get("block_name", ""),
        )

    def to_dict(self) -> dict:
        return {"id": self.id, "apartment_id": self.apartment_id, "block_name": self.block_name}


@dataclass
class Flat:
    id: str
    block_id: str
    flat_number: str
    built_up_area: Optional[Decimal] = None   # sq.ft, required for mode B
    flat_type: Optional[str] = None           # required for mode C

    @classmethod
    def from_dict(cls, data: dict) -> "Flat":
        area = to_decimal(data.get("built_up_area"), "built_up_area")
        if area is not None and area < 0:
            raise ConfigurationError("built_up_area", f"Flat {data.get('id')}: built_up_area cannot be negative")
        flat_type = data.get("flat_type")
        return cls(
            id=str(data["id"]),
            block_id=str(data["block_id"]),
            flat_number=str(data.get("flat_number", "")),
            built_up_area=area,
            flat_type=str(flat_type).strip() if flat_type else None,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "block_id": self.block_id,
            "flat_number": self.flat_number,
            "built_up_area": decimal_to_json(self.built_up_area),
            "flat_type": self.flat_type,
        }


@dataclass
class Collection:
    """An expected collection (billing cycle) with its rate configuration.

    Only one of ``amount_due`` / ``rate_per_sqft`` / ``flat_type_rates`` is
    authoritative, selected by the owning apartment's collection mode.
    """
    id: str
    apartment_id: str
    name: str
    due_date: date
    payment_type: str = "maintenance"
    frequency: str = "quarterly"
    amount_due: Optional[Decimal] = None
    rate_per_sqft: Optional[Decimal] = None
    flat_type_rates: Optional[dict[str, Decimal]] = None
    daily_fine: Decimal = Decimal("0")
    is_active: bool = True
    financial_year: Optional[str] = None
    quarter: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Collection":
        cid = str(data["id"])
        due_date = parse_date(data.get("due_date"))
        if due_date is None:
            raise ConfigurationError("due_date", f"Collection {cid}: due_date is required")

        daily_fine = to_decimal(data.get("daily_fine"), "daily_fine") or Decimal("0")
        if daily_fine < 0:
            raise ConfigurationError("daily_fine", f"Collection {cid}: daily_fine cannot be negative")

        frequency = data.get("frequency") or data.get("payment_frequency") or "quarterly"
        if frequency not in PAYMENT_FREQUENCIES:
            raise ConfigurationError("frequency", f"Collection {cid}: unknown frequency {frequency!r}")

        amount_due = to_decimal(data.get("amount_due"), "amount_due")
        rate_per_sqft = to_decimal(data.get("rate_per_sqft"), "rate_per_sqft")
        for name, value in (("amount_due", amount_due), ("rate_per_sqft", rate_per_sqft)):
            if value is not None and value < 0:
                raise ConfigurationError(name, f"Collection {cid}: {name} cannot be negative")

        is_active = data.get("is_active", True)
        if is_active is None:
            is_active = True
        if not isinstance(is_active, bool):
            raise ConfigurationError("is_active", f"Collection {cid}: is_active must be true or false, got {is_active!r}")

        return cls(
            id=cid,
            apartment_id=str(data["apartment_id"]),
            name=data.get("name") or data.get("collection_name", ""),
            due_date=due_date,
            payment_type=data.get("payment_type", "maintenance"),
            frequency=frequency,
            amount_due=amount_due,
            rate_per_sqft=rate_per_sqft,
            flat_type_rates=parse_flat_type_rates(data.get("flat_type_rates")),
            daily_fine=daily_fine,
            is_active=is_active,
            financial_year=data.get("financial_year"),
            quarter=data.get("quarter"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "apartment_id": self.apartment_id,
            "name": self.name,
            "payment_type": self.payment_type,
            "frequency": self.frequency,
            "amount_due": decimal_to_json(self.amount_due),
            "rate_per_sqft": decimal_to_json(self.rate_per_sqft),
            "flat_type_rates": (
                {k: decimal_to_json(v) for k, v in self.flat_type_rates.items()}
                if self.flat_type_rates else None
            ),
            "due_date": _date_to_json(self.due_date),
            "daily_fine": decimal_to_json(self.daily_fine),
            "is_active": self.is_active,
            "financial_year": self.financial_year,
            "quarter": self.quarter,
        }


# ═══════════════════════════════════════════════════
# CONTACT & SUBMISSION RECORDS
# ═══════════════════════════════════════════════════

@dataclass
class IdentityMapping:
    """Authoritative flat → contact binding.  Email is the stable key."""
    apartment_id: str
    block_id: str
    flat_id: str
    email: str
    mobile: Optional[str] = None
    name: Optional[str] = None
    occupant_type: Optional[str] = None
    whatsapp_opt_in: bool = True

    @classmethod
    def from_dict(cls, data: dict) -> "IdentityMapping":
        known = {f.name for f in fields(cls)}
        extra = set(data) - known
        if extra:
            logger.warning(f"Identity mapping for flat {data.get('flat_id')}: ignoring unknown fields {sorted(extra)}")
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> dict:
        return {
            "apartment_id": self.apartment_id,
            "block_id": self.block_id,
            "flat_id": self.flat_id,
            "email": self.email,
            "mobile": self.mobile,
            "name": self.name,
            "occupant_type": self.occupant_type,
            "whatsapp_opt_in": self.whatsapp_opt_in,
        }


@dataclass
class PaymentSubmission:
    """An accepted payment-proof submission.  Never mutated by the engine."""
    apartment_id: str
    block_id: str
    flat_id: str
    expected_collection_id: str
    email: str
    payment_amount: Decimal
    occupant_type: str
    payment_date: Optional[date] = None
    contact_number: Optional[str] = None
    name: Optional[str] = None
    payment_type: Optional[str] = None
    payment_quarter: Optional[str] = None
    computed_amount: Optional[Decimal] = None
    status: str = "Received"
    fraud_score: Optional[float] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())

    @classmethod
    def from_dict(cls, data: dict) -> "PaymentSubmission":
        return cls(
            id=str(data.get("id") or uuid.uuid4().hex[:12]),
            apartment_id=str(data["apartment_id"]),
            block_id=str(data["block_id"]),
            flat_id=str(data["flat_id"]),
            expected_collection_id=str(data.get("expected_collection_id") or ""),
            email=data.get("email", ""),
            payment_amount=to_decimal(data.get("payment_amount"), "payment_amount") or Decimal("0"),
            occupant_type=data.get("occupant_type", ""),
            payment_date=parse_date(data.get("payment_date")),
            contact_number=data.get("contact_number"),
            name=data.get("name"),
            payment_type=data.get("payment_type"),
            payment_quarter=data.get("payment_quarter"),
            computed_amount=to_decimal(data.get("computed_amount"), "computed_amount"),
            status=data.get("status", "Received"),
            fraud_score=data.get("fraud_score"),
            created_at=data.get("created_at") or datetime.now().isoformat(),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "apartment_id": self.apartment_id,
            "block_id": self.block_id,
            "flat_id": self.flat_id,
            "expected_collection_id": self.expected_collection_id,
            "email": self.email,
            "contact_number": self.contact_number,
            "name": self.name,
            "payment_amount": decimal_to_json(self.payment_amount),
            "computed_amount": decimal_to_json(self.computed_amount),
            "payment_date": _date_to_json(self.payment_date),
            "payment_type": self.payment_type,
            "payment_quarter": self.payment_quarter,
            "occupant_type": self.occupant_type,
            "status": self.status,
            "fraud_score": self.fraud_score,
            "created_at": self.created_at,
        }


@dataclass
class DuplicateCheckResult:
    """Transient outcome of a duplicate lookup."""
    is_duplicate: bool
    existing: Optional[dict] = None
    lookup_failed: bool = False
    warning: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "is_duplicate": self.is_duplicate,
            "existing": self.existing,
            "lookup_failed": self.lookup_failed,
            "warning": self.warning,
        }
