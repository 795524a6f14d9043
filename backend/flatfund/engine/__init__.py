"""Payment calculation & reconciliation engine."""

from .errors import (
    ConfigurationError,
    DuplicateSubmission,
    FlatFundError,
    IdentityConflict,
    PersistenceFailure,
    ReferenceNotFound,
    StoreUnavailable,
    TransientLookupFailure,
)
from .periods import fiscal_quarter, fiscal_year_label, parse_date
from .mobile import mask_mobile, normalize_mobile_number, validate_mobile_number
from .models import Apartment, Block, Collection, Flat, IdentityMapping, PaymentSubmission
from .rates import resolve_base_amount
from .fines import compute_due_amount, compute_total_due
from .store import JsonFileStore, SubmissionStore
from .duplicates import DuplicateGuard
from .identity import IdentityReconciler, MobileDecision
from .orchestrator import SubmissionOrchestrator, SubmissionRequest
from .status import summarize_collection

__all__ = [
    "ConfigurationError",
    "DuplicateSubmission",
    "FlatFundError",
    "IdentityConflict",
    "PersistenceFailure",
    "ReferenceNotFound",
    "StoreUnavailable",
    "TransientLookupFailure",
    "fiscal_quarter",
    "fiscal_year_label",
    "parse_date",
    "mask_mobile",
    "normalize_mobile_number",
    "validate_mobile_number",
    "Apartment",
    "Block",
    "Collection",
    "Flat",
    "IdentityMapping",
    "PaymentSubmission",
    "resolve_base_amount",
    "compute_due_amount",
    "compute_total_due",
    "JsonFileStore",
    "SubmissionStore",
    "DuplicateGuard",
    "IdentityReconciler",
    "MobileDecision",
    "SubmissionOrchestrator",
    "SubmissionRequest",
    "summarize_collection",
]
