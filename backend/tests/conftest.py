"""Shared fixtures for the FlatFund payment engine test suite."""

from decimal import Decimal

import pytest

from flatfund.engine.models import PaymentSubmission
from flatfund.engine.orchestrator import SubmissionOrchestrator, SubmissionRequest
from flatfund.engine.store import JsonFileStore


# ═══════════════════════════════════════════════════
# Reference data: one apartment per collection mode
# ═══════════════════════════════════════════════════

@pytest.fixture
def reference_data():
    """Apartments in modes A, B and C with blocks, flats and collections.

    flat-b2 has no built-up area and flat-c2 is a Penthouse with no rate,
    so both are unbillable under their apartment's mode.
    """
    return {
        "apartments": [
            {"id": "apt-a", "name": "Alpha Residency", "collection_mode": "A"},
            {"id": "apt-b", "name": "Banyan Towers", "collection_mode": "B"},
            {"id": "apt-c", "name": "Cedar Court", "collection_mode": "C"},
        ],
        "blocks": [
            {"id": "blk-a", "apartment_id": "apt-a", "block_name": "A"},
            {"id": "blk-a2", "apartment_id": "apt-a", "block_name": "B"},
            {"id": "blk-b", "apartment_id": "apt-b", "block_name": "A"},
            {"id": "blk-c", "apartment_id": "apt-c", "block_name": "A"},
        ],
        "flats": [
            {"id": "flat-a1", "block_id": "blk-a", "flat_number": "101", "built_up_area": 900, "flat_type": "2BHK"},
            {"id": "flat-a2", "block_id": "blk-a", "flat_number": "102"},
            {"id": "flat-a3", "block_id": "blk-a2", "flat_number": "201"},
            {"id": "flat-b1", "block_id": "blk-b", "flat_number": "101", "built_up_area": 1000, "flat_type": "2BHK"},
            {"id": "flat-b2", "block_id": "blk-b", "flat_number": "102", "flat_type": "3BHK"},
            {"id": "flat-c1", "block_id": "blk-c", "flat_number": "101", "flat_type": "2BHK"},
            {"id": "flat-c2", "block_id": "blk-c", "flat_number": "102", "flat_type": "Penthouse"},
        ],
        "collections": [
            {
                "id": "col-a", "apartment_id": "apt-a", "name": "Maintenance Q1",
                "amount_due": 1000, "due_date": "2024-04-10", "daily_fine": 50,
            },
            {
                "id": "col-a-fund", "apartment_id": "apt-a", "name": "Contingency Fund",
                "payment_type": "contingency", "frequency": "one-time",
                "amount_due": 5000, "due_date": "2024-04-30",
            },
            {
                "id": "col-a-closed", "apartment_id": "apt-a", "name": "Maintenance Q4 2023",
                "amount_due": 1000, "due_date": "2024-01-10", "is_active": False,
            },
            {
                "id": "col-b", "apartment_id": "apt-b", "name": "Maintenance Q1",
                "rate_per_sqft": 5, "due_date": "2024-04-10", "daily_fine": 50,
            },
            {
                "id": "col-c", "apartment_id": "apt-c", "name": "Maintenance Q1",
                "flat_type_rates": {"2BHK": 2500, "3BHK": 3500},
                "due_date": "2024-04-10", "daily_fine": 25,
            },
        ],
    }


# ═══════════════════════════════════════════════════
# Store / orchestrator
# ═══════════════════════════════════════════════════

@pytest.fixture
def store(tmp_path, reference_data):
    """JSON store in a temp dir, seeded with the reference data."""
    s = JsonFileStore(tmp_path / "store.json")
    s.import_reference_data(reference_data)
    return s


@pytest.fixture
def orchestrator(store):
    return SubmissionOrchestrator(store)


@pytest.fixture
def make_request():
    """Factory for a valid submission request for flat-a1 / col-a."""
    def _make(**overrides):
        values = {
            "apartment_id": "apt-a",
            "block_id": "blk-a",
            "flat_id": "flat-a1",
            "expected_collection_id": "col-a",
            "email": "owner101@example.com",
            "occupant_type": "Owner",
            "contact_number": None,
            "name": "Priya Raman",
            "payment_date": "2024-04-10",
        }
        values.update(overrides)
        return SubmissionRequest(**values)
    return _make


@pytest.fixture
def make_submission():
    """Factory for a stored PaymentSubmission (bypasses the orchestrator)."""
    def _make(**overrides):
        values = {
            "apartment_id": "apt-a",
            "block_id": "blk-a",
            "flat_id": "flat-a1",
            "expected_collection_id": "col-a",
            "email": "owner101@example.com",
            "payment_amount": Decimal("1000"),
            "occupant_type": "Owner",
            "payment_date": None,
            "payment_quarter": "Q1-2024",
        }
        values.update(overrides)
        return PaymentSubmission(**values)
    return _make
