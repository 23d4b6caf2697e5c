from .actor import ActorRepository
from .audit_log import AuditLogRepository
from .invitation import InvitationRepository
from .session import SessionRepository

__all__ = [
    "ActorRepository",
    "AuditLogRepository",
    "InvitationRepository",
    "SessionRepository",
]
