"""Saved job endpoints."""

from fastapi import APIRouter, Depends, Path, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.notifications import SavedJobResponse
from api.services import saved_jobs as saved_job_service
from core.middleware.authorization import get_session_claims
from core.security import SessionClaims
from database.engine import get_db

router = APIRouter(prefix="/saved-jobs", tags=["saved-jobs"])


@router.get("", response_model=list[SavedJobResponse], summary="List Saved Jobs")
async def list_saved_jobs(
    claims: SessionClaims = Depends(get_session_claims),
    db: AsyncSession = Depends(get_db),
):
    return await saved_job_service.list_saved_jobs(db, claims.user_id)


@router.post(
    "/{job_id}",
    response_model=SavedJobResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Save Job",
)
async def save_job(
    job_id: int = Path(..., description="Job ID"),
    claims: SessionClaims = Depends(get_session_claims),
    db: AsyncSession = Depends(get_db),
):
    return await saved_job_service.save_job(db, claims.user_id, job_id)


@router.delete("/{job_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Unsave Job")
async def unsave_job(
    job_id: int = Path(..., description="Job ID"),
    claims: SessionClaims = Depends(get_session_claims),
    db: AsyncSession = Depends(get_db),
):
    await saved_job_service.unsave_job(db, claims.user_id, job_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
