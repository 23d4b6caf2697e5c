"""Test configuration and fixtures"""

from typing import Optional
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient

from restaurant_core.audit.trail import AuditTrail
from restaurant_core.auth.passwords import PasswordPolicy
from restaurant_core.auth.rbac import AccessPolicy, role_table_for
from restaurant_core.auth.service import AuthService
from restaurant_core.auth.tokens import TokenService
from restaurant_core.config import Settings
from restaurant_core.crud.actor import ActorRepository
from restaurant_core.database import build_engine, build_session_factory, init_models
from restaurant_core.models.actor import ActorStatus
from restaurant_core.models.tenant import Tenant
from restaurant_core.services.data_manager import DataManager, MutationContext
from restaurant_core.services.user_admin import UserAdministration

STRONG_PASSWORD = "SecureP@ssw0rd123!"
OTHER_STRONG_PASSWORD = "N3w-Passw0rd-2024!"


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a throwaway SQLite file"""
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        jwt_secret_key="test-secret-key",
        bcrypt_rounds=4,
        role_model="hierarchical",
        route_default_allow=True,
        revoke_sessions_on_password_change=False,
    )


@pytest.fixture
async def engine(settings):
    """Create test database"""
    engine = build_engine(settings)
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def audit_trail(session_factory):
    return AuditTrail(session_factory)


@pytest.fixture
def password_policy():
    return PasswordPolicy(rounds=4)


@pytest.fixture
def token_service(settings):
    return TokenService(settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


@pytest.fixture
def access_policy(settings):
    return AccessPolicy(roles=role_table_for(settings.role_model))


@pytest.fixture
def auth_service(db_session, audit_trail, settings, password_policy):
    return AuthService.for_session(db_session, audit_trail, settings=settings, passwords=password_policy)


@pytest.fixture
def user_admin(db_session, audit_trail, access_policy, settings, password_policy):
    return UserAdministration.for_session(
        db_session,
        audit_trail,
        access_policy,
        settings=settings,
        passwords=password_policy,
    )


@pytest.fixture
async def test_tenant(db_session):
    """Create a test tenant"""
    tenant = Tenant(id=uuid4(), name="Test Restaurant", slug="test-restaurant")
    db_session.add(tenant)
    await db_session.commit()
    return tenant


@pytest.fixture
async def other_tenant(db_session):
    tenant = Tenant(id=uuid4(), name="Other Restaurant", slug="other-restaurant")
    db_session.add(tenant)
    await db_session.commit()
    return tenant


@pytest.fixture
def make_actor(db_session, password_policy):
    """Factory creating committed actors"""
    repo = ActorRepository(db_session)
    counter = {"n": 0}

    async def _make(
        role: str = "editor",
        email: Optional[str] = None,
        password: str = STRONG_PASSWORD,
        status: ActorStatus = ActorStatus.ACTIVE,
        tenant_ids=(),
    ):
        counter["n"] += 1
        actor = await repo.create(
            email=email or f"{role}{counter['n']}@example.com",
            password_hash=password_policy.hash(password),
            role=role,
            name=f"{role.title()} {counter['n']}",
            tenant_ids=tenant_ids,
        )
        actor.status = status
        await repo.commit()
        return actor

    return _make


@pytest.fixture
async def admin_actor(make_actor, test_tenant):
    return await make_actor("admin", email="admin@example.com", tenant_ids=[test_tenant.id])


@pytest.fixture
async def editor_actor(make_actor, test_tenant):
    return await make_actor("editor", email="editor@example.com", tenant_ids=[test_tenant.id])


@pytest.fixture
async def viewer_actor(make_actor, test_tenant):
    return await make_actor("viewer", email="viewer@example.com", tenant_ids=[test_tenant.id])


@pytest.fixture
def data_manager(db_session, audit_trail, editor_actor, test_tenant, access_policy):
    context = MutationContext(
        actor_id=editor_actor.id,
        tenant_id=test_tenant.id,
        role=editor_actor.role,
        ip_address="127.0.0.1",
        user_agent="pytest",
    )
    return DataManager(db_session, audit_trail, context, policy=access_policy)


@pytest.fixture
async def app(settings, session_factory):
    from restaurant_core.main import create_app

    return create_app(settings, session_factory=session_factory)


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
