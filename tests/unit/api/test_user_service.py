"""
Tests for the user service.

Tests:
- Registration and the welcome email
- Login with the stored preferred institution
- Profile with memberships
- Password change
- Tenant context switch
"""

import pytest
from sqlalchemy import select

from api.services import users as service
from core.errors import ConflictError, NotFoundError, UnauthenticatedError
from core.security import SessionClaims, verify_password
from core.middleware.authorization import get_membership_role
from database.models import User


def _claims(user, active_institution_id=None):
    return SessionClaims(
        user_id=user.id,
        first_name=user.first_name,
        last_name=user.last_name,
        email=user.email,
        active_institution_id=active_institution_id,
    )


class TestRegister:
    """Test registration."""

    @pytest.mark.asyncio
    async def test_register_creates_member(self, db, world, token_service, dispatcher):
        token = await service.register(
            db,
            token_service,
            dispatcher,
            first_name="Caio",
            last_name="Lima",
            email="Caio@UF.edu",
            password="senha-nova-123",
            institution_id=world.university.id,
        )

        claims = token_service.verify(token)
        assert claims.email == "caio@uf.edu"
        assert claims.active_institution_id == world.university.id

        user = await service.get_user_by_email(db, "caio@uf.edu")
        assert user is not None
        assert user.active_institution_id == world.university.id
        assert verify_password("senha-nova-123", user.password_hash)

        assert await get_membership_role(db, user.id, world.university.id) == "student"

        assert dispatcher.templates() == ["welcome"]
        assert dispatcher.sent[0].context == {"user_name": "Caio"}

    @pytest.mark.asyncio
    async def test_register_duplicate_email(self, db, world, token_service, dispatcher):
        with pytest.raises(ConflictError):
            await service.register(
                db, token_service, dispatcher, "Bia", "Souza", "ALUNO@uf.edu",
                "senha-nova-123", world.university.id,
            )
        assert dispatcher.sent == []

    @pytest.mark.asyncio
    async def test_register_unknown_institution(self, db, world, token_service, dispatcher):
        with pytest.raises(NotFoundError):
            await service.register(
                db, token_service, dispatcher, "Caio", "Lima", "caio@uf.edu",
                "senha-nova-123", 999999,
            )

    @pytest.mark.asyncio
    async def test_register_inactive_institution(self, db, world, token_service, dispatcher):
        world.company.is_active = False
        await db.commit()

        with pytest.raises(NotFoundError):
            await service.register(
                db, token_service, dispatcher, "Caio", "Lima", "caio@uf.edu",
                "senha-nova-123", world.company.id,
            )

    @pytest.mark.asyncio
    async def test_register_unseeded_role(self, db, world, token_service, dispatcher):
        with pytest.raises(NotFoundError):
            await service.register(
                db, token_service, dispatcher, "Caio", "Lima", "caio@uf.edu",
                "senha-nova-123", world.university.id, member_role="monitor",
            )


class TestLogin:
    """Test login."""

    @pytest.mark.asyncio
    async def test_login_uses_stored_preference(self, db, world, token_service, password):
        world.prof_a.active_institution_id = world.university.id
        await db.commit()

        token = await service.login(db, token_service, "prof.a@uf.edu", password)

        claims = token_service.verify(token)
        assert claims.user_id == world.prof_a.id
        assert claims.active_institution_id == world.university.id
        assert world.prof_a.last_login_at is not None

    @pytest.mark.asyncio
    async def test_login_without_preference(self, db, world, token_service, password):
        token = await service.login(db, token_service, "aluno@uf.edu", password)
        assert token_service.verify(token).active_institution_id is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("email,pwd", [
        ("aluno@uf.edu", "wrong-password"),
        ("nobody@uf.edu", "senha-segura-123"),
    ])
    async def test_login_rejected(self, db, world, token_service, email, pwd):
        with pytest.raises(UnauthenticatedError) as exc_info:
            await service.login(db, token_service, email, pwd)

        # Same message whether the email exists or not
        assert exc_info.value.message == "Invalid email or password"


class TestProfile:
    """Test the profile view."""

    @pytest.mark.asyncio
    async def test_profile_lists_memberships(self, db, world):
        profile = await service.get_profile(db, _claims(world.recruiter, world.company.id))

        assert profile["email"] == "rh@empresax.com"
        assert profile["active_institution_id"] == world.company.id
        assert profile["memberships"] == [
            {"institution": {"id": world.company.id, "name": "Empresa X"}, "role": "empresa"}
        ]

    @pytest.mark.asyncio
    async def test_profile_of_deleted_user(self, db, world):
        claims = SessionClaims(user_id=999999, first_name="X", last_name="Y", email="x@y.z")

        with pytest.raises(NotFoundError):
            await service.get_profile(db, claims)


class TestChangePassword:
    """Test password changes."""

    @pytest.mark.asyncio
    async def test_change_password(self, db, world, dispatcher, password):
        await service.change_password(db, dispatcher, world.student.id, password, "outra-senha-456")

        assert verify_password("outra-senha-456", world.student.password_hash)
        assert dispatcher.templates() == ["security_alert"]
        assert dispatcher.sent[0].to == "aluno@uf.edu"

    @pytest.mark.asyncio
    async def test_wrong_old_password(self, db, world, dispatcher, password):
        with pytest.raises(UnauthenticatedError):
            await service.change_password(db, dispatcher, world.student.id, "not-it", "outra-senha-456")

        assert verify_password(password, world.student.password_hash)
        assert dispatcher.sent == []


class TestSwitchInstitution:
    """Test the tenant context switch."""

    async def _stored_preference(self, db, user_id):
        result = await db.execute(select(User.active_institution_id).where(User.id == user_id))
        return result.scalar_one()

    @pytest.mark.asyncio
    async def test_switch_reissues_and_stores(self, db, world, token_service):
        token = await service.switch_institution(
            db, token_service, _claims(world.prof_a), world.university.id
        )

        assert token_service.verify(token).active_institution_id == world.university.id
        assert await self._stored_preference(db, world.prof_a.id) == world.university.id

    @pytest.mark.asyncio
    async def test_switch_to_non_member_institution(self, db, world, token_service):
        """Selecting a context is free; role checks decide what it allows."""
        token = await service.switch_institution(
            db, token_service, _claims(world.student, world.university.id), world.company.id
        )
        assert token_service.verify(token).active_institution_id == world.company.id

    @pytest.mark.asyncio
    async def test_switch_to_none(self, db, world, token_service):
        token = await service.switch_institution(
            db, token_service, _claims(world.student, world.university.id), None
        )

        assert token_service.verify(token).active_institution_id is None
        assert await self._stored_preference(db, world.student.id) is None

    @pytest.mark.asyncio
    async def test_switch_to_unknown_institution(self, db, world, token_service):
        user_id, university_id = world.student.id, world.university.id
        world.student.active_institution_id = university_id
        await db.commit()
        claims = _claims(world.student, university_id)

        token = await service.switch_institution(db, token_service, claims, 999999)

        assert token_service.verify(token).active_institution_id == 999999
        # Stored preference unchanged
        assert await self._stored_preference(db, user_id) == university_id

    @pytest.mark.asyncio
    async def test_switch_deleted_user(self, db, world, token_service):
        claims = SessionClaims(user_id=999999, first_name="X", last_name="Y", email="x@y.z")

        with pytest.raises(NotFoundError):
            await service.switch_institution(db, token_service, claims, None)
