"""Shared fixtures and utilities for tests."""

import os
from types import SimpleNamespace
from typing import Optional

import httpx
import pytest
from sqlalchemy import select

# Settings() is built at import time by core.config
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-min-32-chars-long-for-security")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")

from core.config import Settings
from core.integrations.email import MailDispatcher
from core.middleware.authorization import RolePolicy
from core.security import TokenService, hash_password
from database.engine import close_db, create_engine, create_session_factory, init_db
from database.models import (
    Institution,
    InstitutionType,
    Job,
    JobStatus,
    Role,
    User,
    UserInstitutionRole,
)
from scripts.seed import seed_roles

TEST_SECRET = "test-jwt-secret-key-min-32-chars-long-for-security"
TEST_PASSWORD = "senha-segura-123"
# Hashed once; bcrypt is deliberately slow
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)


class RecordingDispatcher(MailDispatcher):
    """Mail dispatcher that records what would have been enqueued."""

    def __init__(self):
        self.sent = []

    def dispatch(self, template, to, **context):
        self.sent.append(SimpleNamespace(template=template, to=to, context=context))

    def templates(self):
        return [mail.template for mail in self.sent]


@pytest.fixture
def settings():
    return Settings(
        jwt_secret_key=TEST_SECRET,
        database_url="sqlite+aiosqlite:///:memory:",
        log_level="WARNING",
        json_logs=False,
    )


@pytest.fixture
def password():
    """Plain password of every user built by the fixtures."""
    return TEST_PASSWORD


@pytest.fixture
def token_service():
    return TokenService(TEST_SECRET, expire_minutes=60)


@pytest.fixture
def policy():
    return RolePolicy()


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
async def engine():
    engine = create_engine("sqlite+aiosqlite:///:memory:")
    await init_db(engine)
    yield engine
    await close_db(engine)


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def roles(db):
    """Every platform role, keyed by name."""
    await seed_roles(db, ["superadmin", "admin"])
    result = await db.execute(select(Role))
    return {role.name: role for role in result.scalars().all()}


# ==================== Builders ==================== #

async def make_institution(db, name: str, is_active: bool = True,
                           type: InstitutionType = InstitutionType.UNIVERSITY) -> Institution:
    institution = Institution(name=name, type=type, is_active=is_active)
    db.add(institution)
    await db.flush()
    return institution


async def make_user(db, email: str, first_name: str = "Ana", last_name: str = "Silva",
                    active_institution_id: Optional[int] = None) -> User:
    user = User(
        email=email,
        password_hash=TEST_PASSWORD_HASH,
        first_name=first_name,
        last_name=last_name,
        active_institution_id=active_institution_id,
    )
    db.add(user)
    await db.flush()
    return user


async def grant(db, user: User, institution: Institution, role: Role) -> UserInstitutionRole:
    membership = UserInstitutionRole(
        user_id=user.id,
        institution_id=institution.id,
        role_id=role.id,
    )
    db.add(membership)
    await db.flush()
    return membership


async def make_job(db, institution: Institution, author: Optional[User], title: str = "Estágio em Dados",
                   status: JobStatus = JobStatus.OPEN) -> Job:
    job = Job(
        title=title,
        status=status,
        institution_id=institution.id,
        author_id=author.id if author else None,
    )
    db.add(job)
    await db.flush()
    return job


@pytest.fixture
async def world(db, roles):
    """
    Two institutions and one user per role.

    University: superadmin, admin, two professors (prof_a authors job_a),
    a student. Company: an empresa user who authors job_b.
    """
    university = await make_institution(db, "Universidade Federal")
    company = await make_institution(db, "Empresa X", type=InstitutionType.COMPANY)

    superadmin = await make_user(db, "root@decola.dev", "Root", "Admin")
    admin = await make_user(db, "admin@uf.edu", "Carla", "Admin")
    prof_a = await make_user(db, "prof.a@uf.edu", "Paulo", "A")
    prof_b = await make_user(db, "prof.b@uf.edu", "Pedro", "B")
    student = await make_user(db, "aluno@uf.edu", "Bia", "Souza")
    recruiter = await make_user(db, "rh@empresax.com", "Rita", "RH")

    await grant(db, superadmin, university, roles["superadmin"])
    await grant(db, admin, university, roles["admin"])
    await grant(db, prof_a, university, roles["professor"])
    await grant(db, prof_b, university, roles["professor"])
    await grant(db, student, university, roles["student"])
    await grant(db, recruiter, company, roles["empresa"])

    job_a = await make_job(db, university, prof_a, "Monitoria de Cálculo")
    job_b = await make_job(db, company, recruiter, "Estágio Backend")
    await db.commit()

    return SimpleNamespace(
        university=university,
        company=company,
        superadmin=superadmin,
        admin=admin,
        prof_a=prof_a,
        prof_b=prof_b,
        student=student,
        recruiter=recruiter,
        job_a=job_a,
        job_b=job_b,
    )


# ==================== HTTP ==================== #

@pytest.fixture
def app(settings, session_factory, dispatcher):
    from api.main import create_app

    return create_app(settings, session_factory=session_factory, dispatcher=dispatcher)


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def auth_headers(token_service: TokenService, user: User,
                 active_institution_id: Optional[int] = None) -> dict:
    token = token_service.issue(user, active_institution_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def build():
    """Builders for rows not covered by ``world``."""
    return SimpleNamespace(
        institution=make_institution,
        user=make_user,
        grant=grant,
        job=make_job,
    )


@pytest.fixture
def auth(token_service):
    """``auth(user, active_institution_id=None)`` -> Authorization header."""
    def _auth(user: User, active_institution_id: Optional[int] = None) -> dict:
        return auth_headers(token_service, user, active_institution_id)
    return _auth
