"""Invitations, removals and role changes for admin accounts"""

import uuid
from datetime import timedelta
from typing import Any, List, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_core.audit.trail import AuditAction, AuditTrail
from restaurant_core.auth.passwords import PasswordPolicy, hash_token
from restaurant_core.auth.rbac import AccessPolicy, Permission
from restaurant_core.config import Settings, get_settings
from restaurant_core.crud.actor import ActorRepository
from restaurant_core.crud.invitation import InvitationRepository
from restaurant_core.crud.session import SessionRepository
from restaurant_core.database import utcnow
from restaurant_core.errors import ErrorCode, ServiceResult
from restaurant_core.models.actor import ActorStatus
from restaurant_core.models.invitation import InvitationStatus
from restaurant_core.ports import ActorStore, SessionStore
from restaurant_core.schemas.audit import AuditEntry
from restaurant_core.schemas.auth import ActorPublic
from restaurant_core.schemas.user import ActorSummary, InvitationCreate, InvitationIssued

logger = structlog.get_logger(__name__)

INVITATION_TOKEN_LENGTH = 64


class UserAdministration:
    def __init__(
        self,
        actors: ActorStore,
        sessions: SessionStore,
        invitations: InvitationRepository,
        audit: AuditTrail,
        policy: AccessPolicy,
        passwords: PasswordPolicy,
        settings: Optional[Settings] = None,
    ):
        self._actors = actors
        self._sessions = sessions
        self._invitations = invitations
        self._audit = audit
        self._policy = policy
        self._passwords = passwords
        self._settings = settings or get_settings()

    @classmethod
    def for_session(
        cls,
        db: AsyncSession,
        audit: AuditTrail,
        policy: AccessPolicy,
        settings: Optional[Settings] = None,
        passwords: Optional[PasswordPolicy] = None,
    ) -> "UserAdministration":
        settings = settings or get_settings()
        return cls(
            actors=ActorRepository(db),
            sessions=SessionRepository(db),
            invitations=InvitationRepository(db),
            audit=audit,
            policy=policy,
            passwords=passwords or PasswordPolicy(rounds=settings.bcrypt_rounds),
            settings=settings,
        )

    def _may(self, role: Any, permission: Permission) -> bool:
        return permission.value in self._policy.permissions_of(role)

    async def invite(
        self,
        inviter_role: Any,
        inviter_id: Optional[uuid.UUID],
        data: InvitationCreate,
    ) -> ServiceResult[InvitationIssued]:
        """Create a pending invitation; the raw token is returned only here"""
        if not self._may(inviter_role, Permission.USER_INVITE):
            return ServiceResult.fail(ErrorCode.FORBIDDEN)
        if not self._policy.can_assign_role(inviter_role, data.role):
            return ServiceResult.fail(ErrorCode.FORBIDDEN, "You cannot assign this role")

        email = data.email.lower()
        now = utcnow()
        if await self._actors.get_by_email(email) is not None:
            return ServiceResult.fail(ErrorCode.ALREADY_EXISTS, "User with this email already exists")
        if await self._invitations.get_live_pending(email, now=now) is not None:
            return ServiceResult.fail(ErrorCode.ALREADY_EXISTS, "Invitation already sent to this email")

        token = self._passwords.generate_token(INVITATION_TOKEN_LENGTH)
        invitation = await self._invitations.create(
            email=email,
            role=data.role,
            tenant_ids=data.tenant_ids,
            invited_by_id=inviter_id,
            token_hash=hash_token(token),
            expires_at=now + timedelta(days=self._settings.invitation_ttl_days),
        )
        await self._actors.commit()

        await self._audit.record(
            AuditEntry(
                action=AuditAction.INVITE_SENT.value,
                entity_type="invitation",
                entity_id=str(invitation.id),
                actor_id=inviter_id,
                new_value={"email": email, "role": data.role, "tenant_ids": invitation.tenant_ids},
            )
        )
        logger.info("invitation_sent", invitation_id=str(invitation.id), role=data.role)

        return ServiceResult.ok(
            InvitationIssued(
                invitation_id=invitation.id,
                email=email,
                role=data.role,
                token=token,
                expires_at=invitation.expires_at,
            )
        )

    async def accept_invitation(
        self,
        token: str,
        password: str,
        name: Optional[str] = None,
    ) -> ServiceResult[ActorPublic]:
        invitation = await self._invitations.get_by_token_hash(hash_token(token)) if token else None
        if invitation is None or invitation.status != InvitationStatus.PENDING:
            return ServiceResult.fail(ErrorCode.INVALID_OR_EXPIRED_TOKEN)

        now = utcnow()
        if invitation.expires_at <= now:
            invitation.status = InvitationStatus.EXPIRED
            await self._actors.commit()
            return ServiceResult.fail(ErrorCode.INVALID_OR_EXPIRED_TOKEN)

        if await self._actors.get_by_email(invitation.email) is not None:
            return ServiceResult.fail(ErrorCode.ALREADY_EXISTS, "User with this email already exists")

        check = self._passwords.validate_strength(password)
        if not check.valid:
            return ServiceResult.fail(ErrorCode.WEAK_PASSWORD, details=check.errors)

        actor = await self._actors.create(
            email=invitation.email,
            password_hash=self._passwords.hash(password),
            role=invitation.role,
            name=name,
            tenant_ids=[uuid.UUID(tenant_id) for tenant_id in invitation.tenant_ids or []],
        )
        invitation.status = InvitationStatus.ACCEPTED
        invitation.accepted_at = now
        await self._actors.commit()

        await self._audit.record(
            AuditEntry(
                action=AuditAction.INVITE_ACCEPTED.value,
                entity_type="invitation",
                entity_id=str(invitation.id),
                actor_id=actor.id,
                new_value={"actor_id": str(actor.id), "role": actor.role},
            )
        )
        return ServiceResult.ok(ActorPublic.model_validate(actor))

    async def remove(
        self,
        remover_role: Any,
        remover_id: uuid.UUID,
        target_id: uuid.UUID,
    ) -> ServiceResult[None]:
        """Suspend an actor and end all of its sessions"""
        if remover_id == target_id:
            return ServiceResult.fail(ErrorCode.SELF_REMOVAL)
        if not self._may(remover_role, Permission.USER_REMOVE):
            return ServiceResult.fail(ErrorCode.FORBIDDEN)

        target = await self._actors.get_by_id(target_id)
        if target is None or target.status == ActorStatus.SUSPENDED:
            return ServiceResult.fail(ErrorCode.NOT_FOUND, "User not found")

        top_role = self._policy.roles.top_role
        if target.role == top_role and target.is_active:
            if await self._actors.count_active_with_role(top_role) <= 1:
                return ServiceResult.fail(ErrorCode.LAST_ADMIN_PROTECTED)

        old_value = {"status": target.status.value, "role": target.role}
        target.status = ActorStatus.SUSPENDED
        revoked = await self._sessions.delete_for_actor(target.id)
        await self._actors.commit()

        await self._audit.record(
            AuditEntry(
                action=AuditAction.USER_REMOVED.value,
                entity_type="actor",
                entity_id=str(target.id),
                actor_id=remover_id,
                old_value=old_value,
                new_value={"status": ActorStatus.SUSPENDED.value, "role": target.role},
                metadata={"sessions_revoked": revoked},
            )
        )
        logger.info("actor_removed", actor_id=str(target.id), removed_by=str(remover_id))
        return ServiceResult.ok()

    async def update_role(
        self,
        updater_role: Any,
        updater_id: uuid.UUID,
        target_id: uuid.UUID,
        new_role: str,
    ) -> ServiceResult[ActorPublic]:
        top_role = self._policy.roles.top_role
        if str(getattr(updater_role, "value", updater_role)) != top_role:
            return ServiceResult.fail(ErrorCode.FORBIDDEN)

        new_role = str(getattr(new_role, "value", new_role))
        if updater_id == target_id and new_role != top_role:
            return ServiceResult.fail(ErrorCode.SELF_DEMOTION)
        if new_role not in self._policy.roles:
            return ServiceResult.fail(ErrorCode.INVALID_ROLE)

        target = await self._actors.get_by_id(target_id)
        if target is None or target.status == ActorStatus.SUSPENDED:
            return ServiceResult.fail(ErrorCode.NOT_FOUND, "User not found")

        old_role = target.role
        target.role = new_role
        await self._actors.commit()

        await self._audit.record(
            AuditEntry(
                action=AuditAction.ROLE_CHANGED.value,
                entity_type="actor",
                entity_id=str(target.id),
                actor_id=updater_id,
                old_value={"role": old_role},
                new_value={"role": new_role},
            )
        )
        logger.info("actor_role_changed", actor_id=str(target.id), old_role=old_role, new_role=new_role)
        return ServiceResult.ok(ActorPublic.model_validate(target))

    async def list(
        self,
        viewer_role: Any,
        tenant_id: Optional[uuid.UUID] = None,
    ) -> ServiceResult[List[ActorSummary]]:
        """Non-suspended actors; email and last login are hidden without user:view"""
        actors = await self._actors.list_visible(tenant_id)
        summaries = [ActorSummary.model_validate(actor) for actor in actors]
        if not self._may(viewer_role, Permission.USER_VIEW):
            summaries = [
                summary.model_copy(update={"email": None, "last_login_at": None})
                for summary in summaries
            ]
        return ServiceResult.ok(summaries)
