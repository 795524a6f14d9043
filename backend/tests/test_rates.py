"""Tests for base-amount resolution under collection modes A / B / C."""

from decimal import Decimal

import pytest

from flatfund.engine.errors import ConfigurationError
from flatfund.engine.models import Apartment, Collection, Flat
from flatfund.engine.rates import expected_amount_for_flat, require_base_amount, resolve_base_amount


# ═══════════════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════════════

def _apartment(mode: str) -> Apartment:
    return Apartment.from_dict({"id": f"apt-{mode.lower()}", "name": "Test", "collection_mode": mode})


def _collection(**kwargs) -> Collection:
    data = {"id": "col-1", "apartment_id": "apt-1", "name": "Maintenance Q1", "due_date": "2024-04-10"}
    data.update(kwargs)
    return Collection.from_dict(data)


def _flat(**kwargs) -> Flat:
    data = {"id": "flat-1", "block_id": "blk-1", "flat_number": "101"}
    data.update(kwargs)
    return Flat.from_dict(data)


# ═══════════════════════════════════════════════════
# Mode A
# ═══════════════════════════════════════════════════

class TestModeA:

    @pytest.mark.parametrize("flat_kwargs", [
        {},
        {"built_up_area": 1200},
        {"flat_type": "3BHK"},
        {"built_up_area": 650, "flat_type": "1BHK"},
    ])
    def test_same_amount_regardless_of_flat(self, flat_kwargs):
        r = resolve_base_amount(_apartment("A"), _collection(amount_due=1500), _flat(**flat_kwargs))
        assert r.amount == Decimal("1500")
        assert r.resolved

    def test_missing_amount_is_zero(self):
        r = resolve_base_amount(_apartment("A"), _collection(), _flat())
        assert r.amount == Decimal("0")
        assert r.missing_field is None


# ═══════════════════════════════════════════════════
# Mode B
# ═══════════════════════════════════════════════════

class TestModeB:

    def test_rate_times_area(self):
        r = resolve_base_amount(_apartment("B"), _collection(rate_per_sqft=5), _flat(built_up_area=1000))
        assert r.amount == Decimal("5000")

    def test_fractional_rate_is_exact(self):
        r = resolve_base_amount(_apartment("B"), _collection(rate_per_sqft="2.35"), _flat(built_up_area=1150))
        assert r.amount == Decimal("2702.50")

    def test_missing_rate(self):
        r = resolve_base_amount(_apartment("B"), _collection(), _flat(built_up_area=1000))
        assert r.amount is None
        assert r.missing_field == "rate_per_sqft"

    def test_missing_area(self):
        r = resolve_base_amount(_apartment("B"), _collection(rate_per_sqft=5), _flat())
        assert r.amount is None
        assert r.missing_field == "built_up_area"

    def test_unresolved_is_not_zero(self):
        r = resolve_base_amount(_apartment("B"), _collection(rate_per_sqft=5), _flat())
        assert r.amount != Decimal("0")
        assert not r.resolved


# ═══════════════════════════════════════════════════
# Mode C
# ═══════════════════════════════════════════════════

class TestModeC:

    RATES = {"2BHK": 2500, "3BHK": "3500.50"}

    def test_mapped_rate(self):
        r = resolve_base_amount(_apartment("C"), _collection(flat_type_rates=self.RATES), _flat(flat_type="3BHK"))
        assert r.amount == Decimal("3500.50")

    def test_type_without_rate(self):
        r = resolve_base_amount(_apartment("C"), _collection(flat_type_rates=self.RATES), _flat(flat_type="Penthouse"))
        assert r.amount is None
        assert r.missing_field == "flat_type_rates"
        assert "Penthouse" in r.reason

    def test_flat_without_type(self):
        r = resolve_base_amount(_apartment("C"), _collection(flat_type_rates=self.RATES), _flat())
        assert r.missing_field == "flat_type"

    def test_collection_without_rates(self):
        r = resolve_base_amount(_apartment("C"), _collection(), _flat(flat_type="2BHK"))
        assert r.missing_field == "flat_type_rates"


# ═══════════════════════════════════════════════════
# Misc
# ═══════════════════════════════════════════════════

class TestResolutionMisc:

    def test_unknown_mode(self):
        apartment = Apartment(id="apt-x", name="X", collection_mode="Z")
        r = resolve_base_amount(apartment, _collection(amount_due=1000), _flat())
        assert r.missing_field == "collection_mode"

    def test_require_raises_with_field(self):
        with pytest.raises(ConfigurationError) as exc_info:
            require_base_amount(_apartment("B"), _collection(rate_per_sqft=5), _flat())
        assert exc_info.value.field == "built_up_area"

    def test_to_dict(self):
        d = resolve_base_amount(_apartment("A"), _collection(amount_due=1000), _flat()).to_dict()
        assert d == {"amount": 1000.0, "mode": "A", "missing_field": None, "reason": None}


class TestExpectedAmountForFlat:

    def test_type_rate_first(self):
        c = _collection(flat_type_rates={"2BHK": 2500}, rate_per_sqft=5, amount_due=1000)
        assert expected_amount_for_flat(c, _flat(flat_type="2BHK", built_up_area=1000)) == Decimal("2500")

    def test_area_rate_second(self):
        c = _collection(flat_type_rates={"2BHK": 2500}, rate_per_sqft=5, amount_due=1000)
        assert expected_amount_for_flat(c, _flat(flat_type="3BHK", built_up_area=1000)) == Decimal("5000")

    def test_amount_due_last(self):
        c = _collection(rate_per_sqft=5, amount_due=1000)
        assert expected_amount_for_flat(c, _flat()) == Decimal("1000")

    def test_nothing_configured(self):
        assert expected_amount_for_flat(_collection(), _flat()) == Decimal("0")
