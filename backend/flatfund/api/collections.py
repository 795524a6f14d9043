"""Collection status endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from flatfund.api.dependencies import get_store, safe_json_response
from flatfund.engine.errors import ReferenceNotFound, StoreUnavailable
from flatfund.engine.status import summarize_collection
from flatfund.engine.store import SubmissionStore

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/{collection_id}/status")
async def get_collection_status(collection_id: str, store: SubmissionStore = Depends(get_store)):
    """Per-flat payment status for one collection, with totals."""
    try:
        summary = summarize_collection(store, collection_id)
    except ReferenceNotFound as exc:
        raise HTTPException(status_code=404, detail=exc.message)
    except StoreUnavailable as exc:
        logger.error(f"Status lookup failed for collection {collection_id}: {exc}")
        raise HTTPException(status_code=503, detail="Service temporarily unavailable. Please try again.")
    return safe_json_response(summary.to_dict())
