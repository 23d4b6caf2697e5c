"""Tests for the FastAPI integration: route guard, error mapping and health"""

import logging

import pytest
import structlog
from httpx import AsyncClient

from restaurant_core.errors import NotFoundError
from restaurant_core.main import create_app

STRONG_PASSWORD = "SecureP@ssw0rd123!"


@pytest.fixture
async def guarded_app(app):
    """App with a few routes behind the global access dependency"""

    @app.get("/")
    async def home():
        return {"page": "home"}

    @app.get("/admin/users")
    async def admin_users():
        return {"page": "users"}

    @app.get("/admin/dashboard")
    async def dashboard():
        return {"page": "dashboard"}

    @app.get("/menu/{item_id}")
    async def public_item(item_id: str):
        raise NotFoundError(f"Menu item {item_id} not found")

    return app


async def _token(auth_service, actor) -> str:
    result = await auth_service.login(actor.email, STRONG_PASSWORD)
    return result.data.token


@pytest.mark.asyncio
async def test_public_path_open_to_anonymous(guarded_app, client: AsyncClient):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json() == {"page": "home"}


@pytest.mark.asyncio
async def test_protected_path_requires_authentication(guarded_app, client: AsyncClient):
    response = await client.get("/admin/users")

    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_role_gates_admin_pages(guarded_app, client: AsyncClient, auth_service, admin_actor, editor_actor):
    admin_token = await _token(auth_service, admin_actor)
    editor_token = await _token(auth_service, editor_actor)

    as_admin = await client.get("/admin/users", headers={"Authorization": f"Bearer {admin_token}"})
    as_editor = await client.get("/admin/users", headers={"Authorization": f"Bearer {editor_token}"})
    editor_dashboard = await client.get("/admin/dashboard", headers={"Authorization": f"Bearer {editor_token}"})

    assert as_admin.status_code == 200
    assert as_editor.status_code == 403
    assert editor_dashboard.status_code == 200


@pytest.mark.asyncio
async def test_logged_out_token_is_anonymous(guarded_app, client: AsyncClient, auth_service, admin_actor):
    token = await _token(auth_service, admin_actor)
    await auth_service.logout(token)

    response = await client.get("/admin/users", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_app_error_mapped_to_json(guarded_app, client: AsyncClient):
    response = await client.get("/menu/42")

    assert response.status_code == 404
    assert response.json() == {
        "error": {"code": "NOT_FOUND", "message": "Menu item 42 not found", "details": None}
    }


@pytest.mark.asyncio
async def test_health_endpoints(client: AsyncClient):
    health = await client.get("/health")
    ready = await client.get("/health/ready")

    assert health.status_code == 200
    assert health.json()["status"] == "healthy"
    assert ready.status_code == 200
    assert ready.json()["checks"]["database"] == "ok"
    assert ready.json()["checks"]["audit_write_failures"] == 0


@pytest.mark.asyncio
async def test_create_app_configures_logging(settings, session_factory):
    """Apps started through the factory get structured logging set up"""
    root = logging.getLogger()
    previous_level = root.level
    structlog.reset_defaults()

    try:
        create_app(settings.model_copy(update={"log_format": "console", "log_level": "WARNING"}), session_factory)

        assert structlog.is_configured()
        assert isinstance(structlog.get_config()["processors"][-1], structlog.dev.ConsoleRenderer)
        assert root.level == logging.WARNING
    finally:
        root.setLevel(previous_level)
