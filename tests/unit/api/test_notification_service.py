"""
Tests for notifications, institutions and role seeding.
"""

import pytest
from sqlalchemy import select

from api.services import institutions as institution_service
from api.services import notifications as service
from core.errors import NotFoundError
from database.models import Notification, Role, RoleScope
from scripts.seed import ROLE_NAMES, seed_roles


async def _notify(db, user, count=1, read=False):
    for i in range(count):
        db.add(Notification(
            user_id=user.id,
            title="Status da Candidatura",
            message=f"Mensagem {i}",
            link="/jobs/1",
            read=read,
        ))
    await db.commit()


class TestNotifications:
    """Test the notification inbox."""

    @pytest.mark.asyncio
    async def test_list_newest_first_with_unread_count(self, db, world):
        await _notify(db, world.student, count=3)
        await _notify(db, world.student, read=True)

        inbox = await service.list_notifications(db, world.student.id)

        assert inbox["unread_count"] == 3
        assert len(inbox["notifications"]) == 4
        ids = [n["id"] for n in inbox["notifications"]]
        assert ids == sorted(ids, reverse=True)

    @pytest.mark.asyncio
    async def test_list_limit(self, db, world):
        await _notify(db, world.student, count=25)

        inbox = await service.list_notifications(db, world.student.id)

        assert len(inbox["notifications"]) == 20
        assert inbox["unread_count"] == 25

    @pytest.mark.asyncio
    async def test_only_own(self, db, world):
        await _notify(db, world.student)

        inbox = await service.list_notifications(db, world.prof_a.id)
        assert inbox == {"notifications": [], "unread_count": 0}

    @pytest.mark.asyncio
    async def test_mark_as_read(self, db, world):
        await _notify(db, world.student, count=2)
        first = (await service.list_notifications(db, world.student.id))["notifications"][0]

        assert await service.mark_as_read(db, world.student.id, first["id"]) is True
        assert (await service.list_notifications(db, world.student.id))["unread_count"] == 1

    @pytest.mark.asyncio
    async def test_mark_someone_elses(self, db, world):
        await _notify(db, world.student)
        first = (await service.list_notifications(db, world.student.id))["notifications"][0]

        assert await service.mark_as_read(db, world.prof_a.id, first["id"]) is False
        assert (await service.list_notifications(db, world.student.id))["unread_count"] == 1

    @pytest.mark.asyncio
    async def test_mark_all_as_read(self, db, world):
        await _notify(db, world.student, count=3)
        await _notify(db, world.prof_a)

        assert await service.mark_all_as_read(db, world.student.id) == 3
        assert (await service.list_notifications(db, world.student.id))["unread_count"] == 0
        assert (await service.list_notifications(db, world.prof_a.id))["unread_count"] == 1


class TestInstitutions:
    """Test the institution listing and suspension."""

    @pytest.mark.asyncio
    async def test_list_active_by_name(self, db, world, build):
        await build.institution(db, "Antiga Faculdade", is_active=False)
        await db.commit()

        names = [i["name"] for i in await institution_service.list_active_institutions(db)]
        assert names == ["Empresa X", "Universidade Federal"]

    @pytest.mark.asyncio
    async def test_deactivate_and_activate(self, db, world):
        result = await institution_service.set_active(db, world.company.id, False, world.superadmin.id)
        assert result == {
            "id": world.company.id,
            "name": "Empresa X",
            "type": "company",
            "is_active": False,
        }

        result = await institution_service.set_active(db, world.company.id, True, world.superadmin.id)
        assert result["is_active"] is True

    @pytest.mark.asyncio
    async def test_unknown_institution(self, db, world):
        with pytest.raises(NotFoundError):
            await institution_service.set_active(db, 999999, False, world.superadmin.id)


class TestSeedRoles:
    """Test role seeding."""

    @pytest.mark.asyncio
    async def test_seed_creates_all_with_scopes(self, db):
        created = await seed_roles(db, ["superadmin", "admin"])

        assert created == len(ROLE_NAMES)
        roles = {r.name: r.scope for r in (await db.execute(select(Role))).scalars().all()}
        assert roles["superadmin"] is RoleScope.GLOBAL
        assert roles["admin"] is RoleScope.GLOBAL
        assert roles["professor"] is RoleScope.TENANT
        assert roles["student"] is RoleScope.TENANT

    @pytest.mark.asyncio
    async def test_seed_is_idempotent_and_realigns_scope(self, db):
        await seed_roles(db, ["superadmin", "admin"])

        created = await seed_roles(db, ["superadmin"])

        assert created == 0
        admin = (await db.execute(select(Role).where(Role.name == "admin"))).scalar_one()
        assert admin.scope is RoleScope.TENANT
