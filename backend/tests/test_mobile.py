"""Tests for mobile number normalization, validation and masking."""

import pytest

from flatfund.engine.mobile import (
    format_mobile_for_display,
    format_mobile_for_storage,
    mask_mobile,
    mobiles_match,
    normalize_mobile_number,
    validate_mobile_number,
)


# ═══════════════════════════════════════════════════
# normalize_mobile_number
# ═══════════════════════════════════════════════════

class TestNormalizeMobileNumber:

    def test_already_normalized_is_idempotent(self):
        n = normalize_mobile_number("+919876543210")
        assert n.full_number == "+919876543210"
        assert n.country_code == "+91"
        assert n.local_number == "9876543210"
        assert n.was_normalized is False

    def test_bare_ten_digits_defaults_to_india(self):
        n = normalize_mobile_number("9876543210")
        assert n.full_number == "+919876543210"
        assert n.was_normalized is False

    @pytest.mark.parametrize("raw", [
        "98765 43210",
        "+91-98765-43210",
        "+91 (98765) 43210",
        "919876543210",
        "(0091) 9876543210",
        "09876543210",
    ])
    def test_formatting_variants_collapse(self, raw):
        n = normalize_mobile_number(raw)
        assert n.full_number == "+919876543210"
        assert n.was_normalized is True
        assert n.original_value == raw

    def test_normalizing_twice_gives_same_value(self):
        first = normalize_mobile_number("98765-43210")
        second = normalize_mobile_number(first.full_number)
        assert second.full_number == first.full_number
        assert second.was_normalized is False

    def test_uae_number(self):
        n = normalize_mobile_number("+971 50 123 4567")
        assert n.country_code == "+971"
        assert n.local_number == "501234567"

    def test_us_number(self):
        n = normalize_mobile_number("+1 (415) 555-2671")
        assert n.country_code == "+1"
        assert n.local_number == "4155552671"

    def test_singapore_number(self):
        n = normalize_mobile_number("+65 9123 4567")
        assert n.country_code == "+65"
        assert n.local_number == "91234567"

    def test_partial_entry(self):
        n = normalize_mobile_number("12345")
        assert n.local_number == "12345"
        assert n.full_number == "+9112345"
        assert n.was_normalized is False

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_blank(self, raw):
        n = normalize_mobile_number(raw)
        assert n.full_number == ""
        assert n.local_number == ""
        assert n.country_code == "+91"

    def test_to_dict(self):
        d = normalize_mobile_number("98765 43210").to_dict()
        assert d["full_number"] == "+919876543210"
        assert d["was_normalized"] is True


# ═══════════════════════════════════════════════════
# validate_mobile_number
# ═══════════════════════════════════════════════════

class TestValidateMobileNumber:

    def test_valid_indian(self):
        assert validate_mobile_number("9876543210", "+91") == (True, None)

    def test_indian_wrong_leading_digit(self):
        valid, error = validate_mobile_number("1234567890", "+91")
        assert valid is False
        assert "Indian" in error

    def test_indian_wrong_length(self):
        valid, error = validate_mobile_number("98765", "+91")
        assert valid is False
        assert "10 digits" in error

    def test_required(self):
        assert validate_mobile_number("", "+91") == (False, "Mobile number is required")
        assert validate_mobile_number(None)[0] is False

    def test_foreign_length_bounds(self):
        assert validate_mobile_number("501234567", "+971")[0] is True
        assert validate_mobile_number("1234567", "+971")[0] is False
        assert validate_mobile_number("1" * 16, "+44")[0] is False


# ═══════════════════════════════════════════════════
# Display helpers
# ═══════════════════════════════════════════════════

class TestDisplayHelpers:

    def test_mask_shows_last_four(self):
        assert mask_mobile("+919876543210") == "******3210"
        assert mask_mobile("98765 43210") == "******3210"

    def test_mask_short_or_empty(self):
        assert mask_mobile(None) == "******"
        assert mask_mobile("12") == "******"

    def test_display_format(self):
        assert format_mobile_for_display("9876543210") == "+91 9876543210"
        assert format_mobile_for_display("") == ""

    def test_storage_format_strips_separators(self):
        assert format_mobile_for_storage("+91", "98765-43210") == "+919876543210"

    def test_mobiles_match_ignores_formatting(self):
        assert mobiles_match("98765 43210", "+919876543210")
        assert not mobiles_match("9876543210", "9876543211")
