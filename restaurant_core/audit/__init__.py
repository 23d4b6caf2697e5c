"""Append-only audit trail"""

from restaurant_core.audit.diff import compute_changes, snapshot
from restaurant_core.audit.trail import AuditAction, AuditTrail

__all__ = ["AuditAction", "AuditTrail", "compute_changes", "snapshot"]
