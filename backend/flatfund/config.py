"""Application configuration."""

import os
from decimal import Decimal
from pathlib import Path
from dotenv import load_dotenv

# Base paths
BASE_DIR = Path(__file__).resolve().parent.parent

# Load .env from backend root (before any os.getenv calls)
load_dotenv(BASE_DIR / ".env")
DATA_DIR = Path(os.getenv("FLATFUND_DATA_DIR", str(BASE_DIR / "data")))
STORE_PATH = Path(os.getenv("FLATFUND_STORE_PATH", str(DATA_DIR / "store.json")))

# CORS: comma-separated list of allowed front-end origins
CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("FLATFUND_CORS_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")
    if o.strip()
]

# Debug trace mode: set FLATFUND_TRACE=1 to get detailed engine logs
TRACE_ENABLED = os.getenv("FLATFUND_TRACE", "").strip().lower() in ("1", "true", "yes")

# Mobile numbers
DEFAULT_COUNTRY_CODE = os.getenv("FLATFUND_DEFAULT_COUNTRY_CODE", "+91")
MOBILE_MASK_PREFIX = "******"      # Display form: prefix + last 4 digits
MOBILE_MASK_VISIBLE_DIGITS = 4

# Mobile-mismatch decision tokens are single use and expire after this many seconds
DECISION_TOKEN_TTL_SECONDS = int(os.getenv("FLATFUND_DECISION_TOKEN_TTL", "900"))

# Dial-code registry: (ISO code, name, dial code, expected local length)
COUNTRY_CODES = [
    ("IN", "India", "+91", 10),
    ("US", "United States", "+1", 10),
    ("GB", "United Kingdom", "+44", 10),
    ("AE", "UAE", "+971", 9),
    ("SG", "Singapore", "+65", 8),
    ("MY", "Malaysia", "+60", 9),
    ("AU", "Australia", "+61", 9),
    ("CA", "Canada", "+1", 10),
]

# Fiscal calendar: April starts Q1. Informational; quarter mapping is fixed.
FISCAL_YEAR_START_MONTH = 4

# Amount comparison tolerance (paid vs expected)
AMOUNT_TOLERANCE = Decimal(os.getenv("FLATFUND_AMOUNT_TOLERANCE", "0.01"))

# Billing-rate policies per apartment
COLLECTION_MODES = {
    "A": "Flat equal rate",
    "B": "Area based (rate per sq.ft)",
    "C": "Flat type based",
}

PAYMENT_FREQUENCIES = ["monthly", "quarterly", "one-time"]

# Flat types accepted as keys in collection flat_type_rates
FLAT_TYPES = [
    "Studio",
    "1BHK",
    "2BHK",
    "3BHK",
    "4BHK",
    "5BHK",
    "Penthouse",
    "Duplex",
]

OCCUPANT_TYPES = ["Owner", "Tenant"]

# Review statuses set by the (external) admin review flow
SUBMISSION_STATUSES = ["Received", "Reviewed", "Approved", "Rejected"]
PENDING_REVIEW_STATUSES = ("Received", "Reviewed")
