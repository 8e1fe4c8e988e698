"""Institution endpoints: the public listing and superadmin suspension."""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.notifications import InstitutionResponse
from api.services import institutions as institution_service
from core.middleware.authorization import SUPERADMIN_ROLE, require_roles
from core.security import SessionClaims
from database.engine import get_db

router = APIRouter(prefix="/institutions", tags=["institutions"])


@router.get("", response_model=list[InstitutionResponse], summary="List Institutions")
async def list_institutions(db: AsyncSession = Depends(get_db)):
    """Active institutions, for registration and the institution switcher."""
    return await institution_service.list_active_institutions(db)


@router.patch(
    "/{institution_id}/deactivate",
    response_model=InstitutionResponse,
    summary="Deactivate Institution",
)
async def deactivate_institution(
    institution_id: int = Path(..., description="Institution ID"),
    claims: SessionClaims = Depends(require_roles(SUPERADMIN_ROLE)),
    db: AsyncSession = Depends(get_db),
):
    """Suspend an institution; sessions acting as it are rejected from the next request on."""
    return await institution_service.set_active(db, institution_id, False, claims.user_id)


@router.patch(
    "/{institution_id}/activate",
    response_model=InstitutionResponse,
    summary="Activate Institution",
)
async def activate_institution(
    institution_id: int = Path(..., description="Institution ID"),
    claims: SessionClaims = Depends(require_roles(SUPERADMIN_ROLE)),
    db: AsyncSession = Depends(get_db),
):
    return await institution_service.set_active(db, institution_id, True, claims.user_id)
