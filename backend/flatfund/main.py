"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from flatfund.api import collections, lookups, payments
from flatfund.config import CORS_ORIGINS, DATA_DIR, STORE_PATH

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: make sure the data directory exists."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    STORE_PATH.parent.mkdir(parents=True, exist_ok=True)
    if not STORE_PATH.exists():
        logger.info(f"No store at {STORE_PATH} yet; it will be created on first write")
    yield


app = FastAPI(
    title="FlatFund Payments",
    description="Maintenance payment calculation and reconciliation for housing societies",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(payments.router, prefix="/api/payments", tags=["Payments"])
app.include_router(collections.router, prefix="/api/collections", tags=["Collections"])
app.include_router(lookups.router, prefix="/api", tags=["Lookups"])


@app.get("/api/health")
async def health():
    return {"status": "operational", "platform": "FlatFund Payments"}
