"""Tests for fiscal period helpers."""

from datetime import date, datetime

import pytest

from flatfund.engine.periods import fiscal_quarter, fiscal_year_label, parse_date, quarter_number


class TestParseDate:

    @pytest.mark.parametrize("raw", [
        "2024-04-10",
        "10-04-2024",
        "10/04/2024",
        "10.04.2024",
        "2024/04/10",
        "2024-04-10T23:59:59",
        "2024-04-10 00:30:00+05:30",
    ])
    def test_formats(self, raw):
        assert parse_date(raw) == date(2024, 4, 10)

    def test_date_and_datetime_objects(self):
        assert parse_date(date(2024, 4, 10)) == date(2024, 4, 10)
        assert parse_date(datetime(2024, 4, 10, 23, 59)) == date(2024, 4, 10)

    @pytest.mark.parametrize("raw", [None, "", "  "])
    def test_blank_is_none(self, raw):
        assert parse_date(raw) is None

    @pytest.mark.parametrize("raw", ["not a date", "2024-13-01", 20240410])
    def test_invalid_raises(self, raw):
        with pytest.raises(ValueError):
            parse_date(raw)


class TestQuarterNumber:

    @pytest.mark.parametrize("month,expected", [
        (4, 1), (5, 1), (6, 1),
        (7, 2), (8, 2), (9, 2),
        (10, 3), (11, 3), (12, 3),
        (1, 4), (2, 4), (3, 4),
    ])
    def test_april_starts_q1(self, month, expected):
        assert quarter_number(month) == expected


class TestFiscalQuarter:

    def test_first_day_of_fiscal_year(self):
        assert fiscal_quarter("2024-04-01") == "Q1-2024"

    def test_year_label_is_calendar_year(self):
        # Last day of FY 2023-24 is labelled with its own calendar year
        assert fiscal_quarter("2024-03-31") == "Q4-2024"

    def test_december(self):
        assert fiscal_quarter("2024-12-31") == "Q3-2024"

    def test_time_of_day_ignored(self):
        assert fiscal_quarter(datetime(2024, 6, 30, 23, 59, 59)) == "Q1-2024"
        assert fiscal_quarter("2024-07-01T00:00:00") == "Q2-2024"

    def test_falls_back_to_submitted_at(self):
        assert fiscal_quarter(None, "2024-08-15T10:00:00") == "Q2-2024"

    def test_falls_back_to_now(self):
        today = datetime.now().date()
        assert fiscal_quarter(None) == f"Q{quarter_number(today.month)}-{today.year}"


class TestFiscalYearLabel:

    def test_april_opens_new_year(self):
        assert fiscal_year_label("2024-04-01") == "2024-25"

    def test_march_closes_previous_year(self):
        assert fiscal_year_label("2024-03-31") == "2023-24"

    def test_requires_date(self):
        with pytest.raises(ValueError):
            fiscal_year_label(None)
