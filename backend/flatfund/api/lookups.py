"""Stateless helpers the payment form calls while the user types."""

from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from flatfund.engine.mobile import (
    format_mobile_for_display,
    mask_mobile,
    normalize_mobile_number,
    validate_mobile_number,
)
from flatfund.engine.periods import fiscal_quarter, fiscal_year_label, parse_date

router = APIRouter()


class MobileRequest(BaseModel):
    mobile: str


@router.post("/mobile/normalize")
async def normalize_mobile(request: MobileRequest):
    """Canonical form, validation result and masked display of a phone number."""
    normalized = normalize_mobile_number(request.mobile)
    valid, error = validate_mobile_number(normalized.local_number, normalized.country_code)
    return {
        **normalized.to_dict(),
        "is_valid": valid,
        "error": error,
        "display": format_mobile_for_display(normalized.full_number),
        "masked": mask_mobile(normalized.full_number),
    }


@router.get("/periods/quarter")
async def get_quarter(date: Optional[str] = None):
    """Fiscal quarter label (``Q1-2024``) for a date, defaulting to today."""
    try:
        parsed = parse_date(date)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Invalid date: {date}")
    label = fiscal_quarter(parsed)
    return {
        "date": parsed.isoformat() if parsed else None,
        "quarter": label,
        "fiscal_year": fiscal_year_label(parsed) if parsed else None,
    }
