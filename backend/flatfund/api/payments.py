"""Payment quote / submission endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from flatfund.api.dependencies import get_orchestrator, safe_json_response
from flatfund.engine.errors import FlatFundError
from flatfund.engine.orchestrator import (
    ACCEPTED,
    CONFIGURATION_ERROR,
    DUPLICATE,
    EMAIL_MISMATCH,
    INVALID_DECISION,
    INVALID_REQUEST,
    MOBILE_MISMATCH,
    NOT_FOUND,
    SUBMIT_FAILED,
    SubmissionOrchestrator,
    SubmissionRequest,
    outcome_for_error,
)
from flatfund.engine.periods import parse_date

router = APIRouter()
logger = logging.getLogger(__name__)

# Outcome status → HTTP status code
_HTTP_STATUS = {
    ACCEPTED: 201,
    EMAIL_MISMATCH: 409,
    MOBILE_MISMATCH: 409,
    INVALID_DECISION: 409,
    DUPLICATE: 409,
    CONFIGURATION_ERROR: 422,
    INVALID_REQUEST: 422,
    NOT_FOUND: 404,
    SUBMIT_FAILED: 503,
}


class QuoteRequest(BaseModel):
    flat_id: str
    collection_id: str
    payment_date: Optional[str] = None


class SubmitRequest(BaseModel):
    apartment_id: str
    block_id: str
    flat_id: str
    expected_collection_id: str
    email: str
    occupant_type: str
    contact_number: Optional[str] = None
    name: Optional[str] = None
    payment_amount: Optional[float] = None
    payment_date: Optional[str] = None
    whatsapp_opt_in: bool = True
    fraud_score: Optional[float] = Field(default=None, ge=0, le=100)
    # Re-submit after a MOBILE_MISMATCH response
    decision_token: Optional[str] = None
    mobile_decision: Optional[str] = None


class DuplicateCheckRequest(BaseModel):
    block_id: str
    flat_id: str
    collection_id: str
    payment_date: Optional[str] = None


def _parse_payment_date(value: Optional[str]):
    try:
        return parse_date(value)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Invalid payment_date: {value}")


@router.post("/quote")
async def quote_payment(request: QuoteRequest, orchestrator: SubmissionOrchestrator = Depends(get_orchestrator)):
    """Amount owed for a flat and collection if paid on ``payment_date`` (default today)."""
    payment_date = _parse_payment_date(request.payment_date)
    try:
        due = orchestrator.quote(request.flat_id, request.collection_id, payment_date=payment_date)
    except FlatFundError as exc:
        outcome = outcome_for_error(exc)
        return safe_json_response(outcome.to_dict(), status_code=_HTTP_STATUS[outcome.status])
    return safe_json_response({"flat_id": request.flat_id, "collection_id": request.collection_id, **due.to_dict()})


@router.post("/submit")
async def submit_payment(request: SubmitRequest, orchestrator: SubmissionOrchestrator = Depends(get_orchestrator)):
    """Submit a payment proof.

    409 responses carry the conflict: existing record for DUPLICATE, masked
    numbers plus a ``decision_token`` for MOBILE_MISMATCH.  Re-submit with
    ``decision_token`` and ``mobile_decision`` (``permanent`` | ``one-time``).
    """
    outcome = orchestrator.submit(
        SubmissionRequest(
            apartment_id=request.apartment_id,
            block_id=request.block_id,
            flat_id=request.flat_id,
            expected_collection_id=request.expected_collection_id,
            email=request.email,
            occupant_type=request.occupant_type,
            contact_number=request.contact_number,
            name=request.name,
            payment_amount=request.payment_amount,
            payment_date=request.payment_date,
            whatsapp_opt_in=request.whatsapp_opt_in,
            fraud_score=request.fraud_score,
        ),
        decision_token=request.decision_token,
        decision=request.mobile_decision,
    )
    if not outcome.accepted:
        logger.info(f"Submission for flat {request.flat_id} ended with {outcome.status}")
    return safe_json_response(outcome.to_dict(), status_code=_HTTP_STATUS.get(outcome.status, 500))


@router.post("/duplicate-check")
async def check_duplicate(request: DuplicateCheckRequest, orchestrator: SubmissionOrchestrator = Depends(get_orchestrator)):
    """Pre-flight duplicate check (same block, flat and collection)."""
    result = orchestrator.duplicate_guard.check(
        request.block_id, request.flat_id, request.collection_id,
        payment_date=_parse_payment_date(request.payment_date),
    )
    return safe_json_response(result.to_dict())

