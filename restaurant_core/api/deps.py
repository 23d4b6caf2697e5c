"""Request-path dependencies: services, current actor and route guard"""

from typing import Optional

import structlog
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_core.audit.trail import AuditTrail
from restaurant_core.auth.rbac import AccessPolicy
from restaurant_core.auth.service import AuthService
from restaurant_core.database import get_db
from restaurant_core.schemas.auth import ActorPublic
from restaurant_core.services.user_admin import UserAdministration

logger = structlog.get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_audit_trail(request: Request) -> AuditTrail:
    return request.app.state.audit_trail


def get_access_policy(request: Request) -> AccessPolicy:
    return request.app.state.access_policy


async def get_auth_service(
    request: Request,
    db: AsyncSession = Depends(get_db),
    audit: AuditTrail = Depends(get_audit_trail),
) -> AuthService:
    return AuthService.for_session(
        db,
        audit,
        settings=request.app.state.settings,
        passwords=request.app.state.password_policy,
    )


async def get_user_administration(
    request: Request,
    db: AsyncSession = Depends(get_db),
    audit: AuditTrail = Depends(get_audit_trail),
    policy: AccessPolicy = Depends(get_access_policy),
) -> UserAdministration:
    return UserAdministration.for_session(
        db,
        audit,
        policy,
        settings=request.app.state.settings,
        passwords=request.app.state.password_policy,
    )


async def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth: AuthService = Depends(get_auth_service),
) -> Optional[ActorPublic]:
    """Actor behind the bearer token, or None for anonymous or dead sessions"""
    if credentials is None:
        return None
    result = await auth.validate_session(credentials.credentials)
    if not result.success:
        logger.debug("bearer_rejected", reason=result.error_code.value)
        return None
    return result.data


async def enforce_route_access(
    request: Request,
    actor: Optional[ActorPublic] = Depends(get_current_actor),
    policy: AccessPolicy = Depends(get_access_policy),
) -> Optional[ActorPublic]:
    """Apply the route rule table to every request"""
    path = request.url.path
    if policy.can_access(actor, path, request.method):
        request.state.actor = actor
        return actor

    if actor is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    logger.info("route_access_denied", actor_id=str(actor.id), path=path, method=request.method)
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Insufficient permissions",
    )


async def require_actor(
    actor: Optional[ActorPublic] = Depends(enforce_route_access),
) -> ActorPublic:
    """Authenticated actor, for handlers on public paths that still need one"""
    if actor is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return actor
