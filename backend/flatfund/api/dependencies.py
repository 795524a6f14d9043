"""Shared API dependencies: the store and the orchestrator.

One orchestrator per process: it owns the mobile-decision tokens, which
must survive between the mismatch response and the user's re-submit.
Tests swap these out with ``app.dependency_overrides``.
"""

import json
import logging
from functools import lru_cache

from fastapi.responses import JSONResponse

from flatfund.config import STORE_PATH
from flatfund.engine.orchestrator import SubmissionOrchestrator
from flatfund.engine.store import JsonFileStore, SubmissionStore

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_store() -> SubmissionStore:
    logger.info(f"Using JSON store at {STORE_PATH}")
    return JsonFileStore(STORE_PATH)


@lru_cache(maxsize=1)
def get_orchestrator() -> SubmissionOrchestrator:
    return SubmissionOrchestrator(get_store())


def safe_json_response(data: dict, status_code: int = 200) -> JSONResponse:
    """JSONResponse that tolerates Decimal / date / other non-native values."""
    content = json.loads(json.dumps(data, default=str, ensure_ascii=False))
    return JSONResponse(content=content, status_code=status_code)
