"""Institution service functions: the public listing and tenant suspension."""

from typing import Any, Dict, List
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import NotFoundError
from core.security import AuditAction, ResourceType, log_audit_event
from database.models.institutions import Institution

logger = logging.getLogger(__name__)


def _serialize(institution: Institution) -> Dict[str, Any]:
    return {
        "id": institution.id,
        "name": institution.name,
        "type": institution.type.value,
        "is_active": institution.is_active,
    }


async def list_active_institutions(db: AsyncSession) -> List[Dict[str, Any]]:
    """Active institutions ordered by name."""
    result = await db.execute(
        select(Institution)
        .where(Institution.is_active.is_(True))
        .order_by(Institution.name)
    )
    return [_serialize(i) for i in result.scalars().all()]


async def set_active(
    db: AsyncSession,
    institution_id: int,
    is_active: bool,
    actor_id: int,
) -> Dict[str, Any]:
    """
    Activate or suspend an institution.

    Suspension takes effect on the next request of every session acting as
    the institution.

    Raises:
        NotFoundError: Unknown institution
    """
    institution = await db.get(Institution, institution_id)
    if institution is None:
        raise NotFoundError("Institution not found")

    institution.is_active = is_active
    await db.commit()
    await db.refresh(institution)

    logger.info(
        f"Institution {institution_id} {'activated' if is_active else 'deactivated'} by user {actor_id}"
    )
    log_audit_event(
        action=AuditAction.UPDATE,
        resource_type=ResourceType.INSTITUTION,
        resource_id=institution_id,
        user_id=actor_id,
        institution_id=institution_id,
        details={"is_active": is_active},
    )

    return _serialize(institution)
