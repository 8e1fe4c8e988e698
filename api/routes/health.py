"""Liveness and readiness probes."""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

router = APIRouter()

SERVICE_VERSION = "0.1.0"


class HealthStatus(BaseModel):
    status: str
    version: str


@router.get("/health", response_model=HealthStatus)
async def liveness():
    return HealthStatus(status="healthy", version=SERVICE_VERSION)


@router.get("/ready")
async def readiness(request: Request):
    """Ready once the database answers ``SELECT 1``."""
    try:
        async with request.app.state.session_factory() as db:
            await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Database not reachable for readiness probe: {e}")
        return JSONResponse(status_code=503, content={"status": "unavailable"})
    return {"status": "ready"}
