"""Actor authentication and server-side sessions"""

import uuid
from datetime import timedelta
from typing import Any, Optional

import structlog
from pydantic import EmailStr, TypeAdapter, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_core.audit.trail import AuditAction, AuditTrail
from restaurant_core.auth.passwords import PasswordPolicy, hash_token
from restaurant_core.auth.rbac import RoleTable, role_table_for
from restaurant_core.auth.tokens import TokenService
from restaurant_core.config import Settings, get_settings
from restaurant_core.crud.actor import ActorRepository
from restaurant_core.crud.session import SessionRepository
from restaurant_core.database import utcnow
from restaurant_core.errors import ErrorCode, ServiceResult
from restaurant_core.models.actor import Actor
from restaurant_core.ports import ActorStore, SessionStore
from restaurant_core.schemas.audit import AuditEntry
from restaurant_core.schemas.auth import ActorPublic, LoginSuccess

logger = structlog.get_logger(__name__)

_email_adapter = TypeAdapter(EmailStr)


def normalize_email(email: str) -> Optional[str]:
    """Lower-cased address, or None when it is not a valid email"""
    try:
        return _email_adapter.validate_python((email or "").strip()).lower()
    except ValidationError:
        return None


class AuthService:
    """
    Registration, login and session lifecycle.

    A session row binds the sha256 of an issued bearer token to an actor.
    The row is the source of truth: logout and password resets delete rows,
    and a token without a row is rejected even if its signature is valid.
    """

    def __init__(
        self,
        actors: ActorStore,
        sessions: SessionStore,
        audit: AuditTrail,
        passwords: PasswordPolicy,
        tokens: TokenService,
        roles: RoleTable,
        settings: Optional[Settings] = None,
    ):
        self._actors = actors
        self._sessions = sessions
        self._audit = audit
        self._passwords = passwords
        self._tokens = tokens
        self._roles = roles
        self._settings = settings or get_settings()

    @classmethod
    def for_session(
        cls,
        db: AsyncSession,
        audit: AuditTrail,
        settings: Optional[Settings] = None,
        passwords: Optional[PasswordPolicy] = None,
    ) -> "AuthService":
        """Service backed by the SQLAlchemy repositories of one database session"""
        settings = settings or get_settings()
        return cls(
            actors=ActorRepository(db),
            sessions=SessionRepository(db),
            audit=audit,
            passwords=passwords or PasswordPolicy(rounds=settings.bcrypt_rounds),
            tokens=TokenService(
                settings.jwt_secret_key,
                algorithm=settings.jwt_algorithm,
                default_ttl=timedelta(hours=settings.token_ttl_hours),
            ),
            roles=role_table_for(settings.role_model),
            settings=settings,
        )

    async def register(
        self,
        email: str,
        password: str,
        name: Optional[str] = None,
        role: Optional[str] = None,
    ) -> ServiceResult[ActorPublic]:
        normalized = normalize_email(email)
        if normalized is None:
            return ServiceResult.fail(ErrorCode.INVALID_EMAIL)

        if await self._actors.get_by_email(normalized) is not None:
            return ServiceResult.fail(ErrorCode.DUPLICATE_EMAIL)

        check = self._passwords.validate_strength(password)
        if not check.valid:
            return ServiceResult.fail(ErrorCode.WEAK_PASSWORD, details=check.errors)

        role = role or self._roles.lowest_role
        if role not in self._roles:
            return ServiceResult.fail(ErrorCode.INVALID_ROLE)

        actor = await self._actors.create(
            email=normalized,
            password_hash=self._passwords.hash(password),
            role=str(getattr(role, "value", role)),
            name=name,
        )
        await self._actors.commit()

        logger.info("actor_registered", actor_id=str(actor.id), role=actor.role)
        return ServiceResult.ok(ActorPublic.model_validate(actor))

    async def login(
        self,
        email: str,
        password: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> ServiceResult[LoginSuccess]:
        actor = await self._actors.get_by_email(email or "")

        if actor is None:
            self._passwords.dummy_verify()
            logger.info("login_failed", reason="unknown_email")
            return ServiceResult.fail(ErrorCode.INVALID_CREDENTIALS)

        if not self._passwords.verify(password, actor.password_hash):
            logger.info("login_failed", reason="wrong_password", actor_id=str(actor.id))
            return ServiceResult.fail(ErrorCode.INVALID_CREDENTIALS)

        if not actor.is_active:
            logger.info("login_failed", reason="account_disabled", actor_id=str(actor.id))
            return ServiceResult.fail(ErrorCode.ACCOUNT_DISABLED)

        now = utcnow()
        expires_at = now + timedelta(hours=self._settings.session_ttl_hours)
        token = self._tokens.issue(actor)

        await self._sessions.create(
            actor_id=actor.id,
            token_hash=hash_token(token),
            expires_at=expires_at,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        actor.last_login_at = now
        await self._actors.commit()

        await self._audit.record(
            AuditEntry(
                action=AuditAction.LOGIN.value,
                entity_type="actor",
                entity_id=str(actor.id),
                actor_id=actor.id,
                ip_address=ip_address,
                user_agent=user_agent,
            )
        )
        logger.info("login_succeeded", actor_id=str(actor.id))

        return ServiceResult.ok(
            LoginSuccess(token=token, expires_at=expires_at, actor=ActorPublic.model_validate(actor))
        )

    async def logout(self, token: str) -> ServiceResult[None]:
        """Idempotent: an unknown token still logs out successfully"""
        login_session = await self._sessions.get_by_token_hash(hash_token(token)) if token else None
        if login_session is None:
            return ServiceResult.ok()

        actor_id = login_session.actor_id
        await self._sessions.delete(login_session)
        await self._sessions.commit()

        await self._audit.record(
            AuditEntry(
                action=AuditAction.LOGOUT.value,
                entity_type="actor",
                entity_id=str(actor_id),
                actor_id=actor_id,
            )
        )
        return ServiceResult.ok()

    async def validate_session(self, token: str) -> ServiceResult[ActorPublic]:
        login_session = await self._sessions.get_by_token_hash(hash_token(token)) if token else None
        if login_session is None:
            return ServiceResult.fail(ErrorCode.SESSION_NOT_FOUND)

        now = utcnow()
        if now > login_session.expires_at:
            actor_id = login_session.actor_id
            await self._sessions.delete(login_session)
            await self._sessions.commit()
            logger.info("session_expired", actor_id=str(actor_id))
            return ServiceResult.fail(ErrorCode.SESSION_EXPIRED)

        actor = await self._actors.get_by_id(login_session.actor_id)
        if actor is None or not actor.is_active:
            return ServiceResult.fail(ErrorCode.ACCOUNT_DISABLED)

        login_session.last_activity_at = now
        await self._sessions.commit()

        return ServiceResult.ok(ActorPublic.model_validate(actor))

    async def refresh_token(self, token: str) -> ServiceResult[LoginSuccess]:
        """Rotate the bearer token of a live session"""
        new_token = self._tokens.refresh(token)
        if new_token is None:
            return ServiceResult.fail(ErrorCode.INVALID_OR_EXPIRED_TOKEN)

        login_session = await self._sessions.get_by_token_hash(hash_token(token))
        if login_session is None:
            return ServiceResult.fail(ErrorCode.SESSION_NOT_FOUND)

        now = utcnow()
        if now > login_session.expires_at:
            await self._sessions.delete(login_session)
            await self._sessions.commit()
            return ServiceResult.fail(ErrorCode.SESSION_EXPIRED)

        actor = await self._actors.get_by_id(login_session.actor_id)
        if actor is None or not actor.is_active:
            return ServiceResult.fail(ErrorCode.ACCOUNT_DISABLED)

        login_session.token_hash = hash_token(new_token)
        login_session.expires_at = now + timedelta(hours=self._settings.session_ttl_hours)
        login_session.last_activity_at = now
        await self._sessions.commit()

        return ServiceResult.ok(
            LoginSuccess(
                token=new_token,
                expires_at=login_session.expires_at,
                actor=ActorPublic.model_validate(actor),
            )
        )

    async def request_password_reset(self, email: str) -> ServiceResult[dict[str, Any]]:
        """Always succeeds; the token is attached only for an existing account"""
        actor = await self._actors.get_by_email(email or "")
        if actor is None:
            logger.info("password_reset_requested", known_account=False)
            return ServiceResult.ok({})

        reset_token = self._passwords.generate_token(32)
        actor.reset_token_hash = hash_token(reset_token)
        actor.reset_token_expires_at = utcnow() + timedelta(
            minutes=self._settings.password_reset_ttl_minutes
        )
        await self._actors.commit()

        await self._audit.record(
            AuditEntry(
                action=AuditAction.PASSWORD_RESET_REQUEST.value,
                entity_type="actor",
                entity_id=str(actor.id),
                actor_id=actor.id,
            )
        )
        logger.info("password_reset_requested", known_account=True)
        return ServiceResult.ok({"reset_token": reset_token})

    async def reset_password(self, token: str, new_password: str) -> ServiceResult[None]:
        actor = None
        if token:
            actor = await self._actors.get_by_reset_token_hash(hash_token(token), now=utcnow())
        if actor is None:
            return ServiceResult.fail(ErrorCode.INVALID_OR_EXPIRED_TOKEN)

        check = self._passwords.validate_strength(new_password)
        if not check.valid:
            return ServiceResult.fail(ErrorCode.WEAK_PASSWORD, details=check.errors)

        actor.password_hash = self._passwords.hash(new_password)
        actor.reset_token_hash = None
        actor.reset_token_expires_at = None
        revoked = await self._sessions.delete_for_actor(actor.id)
        await self._actors.commit()

        await self._audit.record(
            AuditEntry(
                action=AuditAction.PASSWORD_RESET.value,
                entity_type="actor",
                entity_id=str(actor.id),
                actor_id=actor.id,
                metadata={"sessions_revoked": revoked},
            )
        )
        return ServiceResult.ok()

    async def change_password(
        self,
        actor_id: uuid.UUID,
        current_password: str,
        new_password: str,
        current_token: Optional[str] = None,
    ) -> ServiceResult[None]:
        """
        Change a known actor's password.

        With ``revoke_sessions_on_password_change`` enabled, every other
        session of the actor is deleted; ``current_token`` names the one kept.
        """
        actor: Optional[Actor] = await self._actors.get_by_id(actor_id)
        if actor is None:
            return ServiceResult.fail(ErrorCode.NOT_FOUND)

        if not self._passwords.verify(current_password, actor.password_hash):
            return ServiceResult.fail(ErrorCode.WRONG_CURRENT_PASSWORD)

        check = self._passwords.validate_strength(new_password)
        if not check.valid:
            return ServiceResult.fail(ErrorCode.WEAK_PASSWORD, details=check.errors)

        actor.password_hash = self._passwords.hash(new_password)
        metadata: dict[str, Any] = {}
        if self._settings.revoke_sessions_on_password_change:
            keep = hash_token(current_token) if current_token else None
            metadata["sessions_revoked"] = await self._sessions.delete_for_actor(
                actor.id, keep_token_hash=keep
            )
        await self._actors.commit()

        await self._audit.record(
            AuditEntry(
                action=AuditAction.PASSWORD_CHANGE.value,
                entity_type="actor",
                entity_id=str(actor.id),
                actor_id=actor.id,
                metadata=metadata or None,
            )
        )
        return ServiceResult.ok()
