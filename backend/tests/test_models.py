"""Tests for record ingestion and validation."""

import logging
from datetime import date
from decimal import Decimal

import pytest

from flatfund.engine.errors import ConfigurationError
from flatfund.engine.models import (
    Apartment,
    Collection,
    Flat,
    IdentityMapping,
    PaymentSubmission,
    decimal_to_json,
    parse_flat_type_rates,
    to_decimal,
)


def _collection_data(**kwargs):
    data = {"id": "col-1", "apartment_id": "apt-1", "name": "Maintenance Q1", "due_date": "2024-04-10"}
    data.update(kwargs)
    return data


# ═══════════════════════════════════════════════════
# Value helpers
# ═══════════════════════════════════════════════════

class TestToDecimal:

    def test_numbers_and_strings(self):
        assert to_decimal(1500) == Decimal("1500")
        assert to_decimal("1,500.50") == Decimal("1500.50")
        assert to_decimal(0.1) == Decimal("0.1")

    def test_blank_is_none(self):
        assert to_decimal(None) is None
        assert to_decimal("  ") is None

    @pytest.mark.parametrize("value", [True, "abc", "NaN", "Infinity", [1]])
    def test_rejects_non_numeric(self, value):
        with pytest.raises(ConfigurationError) as exc_info:
            to_decimal(value, "amount_due")
        assert exc_info.value.field == "amount_due"

    def test_decimal_to_json(self):
        assert decimal_to_json(Decimal("1500.00")) == 1500
        assert isinstance(decimal_to_json(Decimal("1500.00")), int)
        assert decimal_to_json(Decimal("2.5")) == 2.5
        assert decimal_to_json(None) is None


class TestParseFlatTypeRates:

    def test_valid_mapping(self):
        rates = parse_flat_type_rates({"2BHK": "2500", "3BHK": 3500})
        assert rates == {"2BHK": Decimal("2500"), "3BHK": Decimal("3500")}

    def test_empty_is_none(self):
        assert parse_flat_type_rates({}) is None
        assert parse_flat_type_rates(None) is None

    @pytest.mark.parametrize("value", [-1, 0, "abc", None])
    def test_rejects_bad_rate(self, value):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_flat_type_rates({"2BHK": value})
        assert exc_info.value.field == "flat_type_rates[2BHK]"

    def test_rejects_unknown_type(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_flat_type_rates({"Villa": 9000})
        assert exc_info.value.field == "flat_type_rates[Villa]"

    def test_rejects_non_mapping(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_flat_type_rates([2500, 3500])
        assert exc_info.value.field == "flat_type_rates"


# ═══════════════════════════════════════════════════
# Reference records
# ═══════════════════════════════════════════════════

class TestApartment:

    def test_mode_is_uppercased(self):
        assert Apartment.from_dict({"id": "a", "name": "A", "collection_mode": "b"}).collection_mode == "B"

    def test_unknown_mode_rejected(self):
        with pytest.raises(ConfigurationError) as exc_info:
            Apartment.from_dict({"id": "a", "name": "A", "collection_mode": "D"})
        assert exc_info.value.field == "collection_mode"


class TestFlat:

    def test_negative_area_rejected(self):
        with pytest.raises(ConfigurationError):
            Flat.from_dict({"id": "f", "block_id": "b", "flat_number": "1", "built_up_area": -10})

    def test_optional_fields(self):
        flat = Flat.from_dict({"id": "f", "block_id": "b", "flat_number": 101})
        assert flat.flat_number == "101"
        assert flat.built_up_area is None
        assert flat.flat_type is None


class TestCollection:

    def test_parses_rates_and_dates(self):
        c = Collection.from_dict(_collection_data(flat_type_rates={"2BHK": 2500}, daily_fine="25"))
        assert c.due_date == date(2024, 4, 10)
        assert c.daily_fine == Decimal("25")
        assert c.flat_type_rates == {"2BHK": Decimal("2500")}

    def test_due_date_required(self):
        data = _collection_data()
        del data["due_date"]
        with pytest.raises(ConfigurationError) as exc_info:
            Collection.from_dict(data)
        assert exc_info.value.field == "due_date"

    def test_negative_fine_rejected(self):
        with pytest.raises(ConfigurationError) as exc_info:
            Collection.from_dict(_collection_data(daily_fine=-1))
        assert exc_info.value.field == "daily_fine"

    def test_negative_rate_rejected(self):
        with pytest.raises(ConfigurationError) as exc_info:
            Collection.from_dict(_collection_data(rate_per_sqft=-2))
        assert exc_info.value.field == "rate_per_sqft"

    def test_unknown_frequency_rejected(self):
        with pytest.raises(ConfigurationError):
            Collection.from_dict(_collection_data(frequency="weekly"))

    def test_is_active_defaults_true(self):
        assert Collection.from_dict(_collection_data()).is_active is True
        assert Collection.from_dict(_collection_data(is_active=False)).is_active is False

    @pytest.mark.parametrize("value", ["false", "no", 0, 1])
    def test_is_active_must_be_boolean(self, value):
        with pytest.raises(ConfigurationError) as exc_info:
            Collection.from_dict(_collection_data(is_active=value))
        assert exc_info.value.field == "is_active"

    def test_aliases(self):
        data = _collection_data(payment_frequency="monthly", collection_name="Lift AMC")
        del data["name"]
        c = Collection.from_dict(data)
        assert c.frequency == "monthly"
        assert c.name == "Lift AMC"

    def test_to_dict_is_json_safe(self):
        d = Collection.from_dict(_collection_data(flat_type_rates={"2BHK": "2500.50"})).to_dict()
        assert d["due_date"] == "2024-04-10"
        assert d["flat_type_rates"] == {"2BHK": 2500.5}


# ═══════════════════════════════════════════════════
# Contact / submission records
# ═══════════════════════════════════════════════════

class TestIdentityMapping:

    def test_unknown_fields_ignored_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING):
            m = IdentityMapping.from_dict({
                "apartment_id": "a", "block_id": "b", "flat_id": "f",
                "email": "x@example.com", "legacy_flag": 1,
            })
        assert m.email == "x@example.com"
        assert "legacy_flag" in caplog.text


class TestPaymentSubmission:

    def test_defaults(self):
        s = PaymentSubmission(
            apartment_id="a", block_id="b", flat_id="f", expected_collection_id="c",
            email="x@example.com", payment_amount=Decimal("1000"), occupant_type="Owner",
        )
        assert s.status == "Received"
        assert len(s.id) == 12
        assert s.created_at

    def test_from_dict_parses_amounts(self):
        s = PaymentSubmission.from_dict({
            "id": "sub-1", "apartment_id": "a", "block_id": "b", "flat_id": "f",
            "expected_collection_id": "c", "payment_amount": "1,100", "computed_amount": 1100,
            "payment_date": "12-04-2024", "status": "Approved",
        })
        assert s.payment_amount == Decimal("1100")
        assert s.payment_date == date(2024, 4, 12)
        assert s.to_dict()["payment_amount"] == 1100
