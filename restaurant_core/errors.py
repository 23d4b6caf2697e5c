"""Error taxonomy and service results"""

import enum
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from fastapi import status

T = TypeVar("T")


class ErrorCode(str, enum.Enum):
    """Typed failure reasons returned by the services"""
    # Validation
    INVALID_EMAIL = "INVALID_EMAIL"
    WEAK_PASSWORD = "WEAK_PASSWORD"
    INVALID_ROLE = "INVALID_ROLE"
    INVALID_INPUT = "INVALID_INPUT"

    # Authentication
    DUPLICATE_EMAIL = "DUPLICATE_EMAIL"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    ACCOUNT_DISABLED = "ACCOUNT_DISABLED"
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    SESSION_EXPIRED = "SESSION_EXPIRED"
    INVALID_OR_EXPIRED_TOKEN = "INVALID_OR_EXPIRED_TOKEN"
    WRONG_CURRENT_PASSWORD = "WRONG_CURRENT_PASSWORD"

    # Authorization
    FORBIDDEN = "FORBIDDEN"
    SELF_REMOVAL = "SELF_REMOVAL"
    SELF_DEMOTION = "SELF_DEMOTION"
    LAST_ADMIN_PROTECTED = "LAST_ADMIN_PROTECTED"

    # Lookup / state
    NOT_FOUND = "NOT_FOUND"
    ALREADY_EXISTS = "ALREADY_EXISTS"

    OPERATION_FAILED = "OPERATION_FAILED"


DEFAULT_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.INVALID_EMAIL: "Email address is not valid",
    ErrorCode.WEAK_PASSWORD: "Password does not meet the strength requirements",
    ErrorCode.INVALID_ROLE: "Invalid role specified",
    ErrorCode.INVALID_INPUT: "Invalid input",
    ErrorCode.DUPLICATE_EMAIL: "Email already registered",
    ErrorCode.INVALID_CREDENTIALS: "Invalid credentials",
    ErrorCode.ACCOUNT_DISABLED: "Account is disabled",
    ErrorCode.SESSION_NOT_FOUND: "Session not found",
    ErrorCode.SESSION_EXPIRED: "Session expired",
    ErrorCode.INVALID_OR_EXPIRED_TOKEN: "Invalid or expired token",
    ErrorCode.WRONG_CURRENT_PASSWORD: "Current password is incorrect",
    ErrorCode.FORBIDDEN: "Insufficient permissions",
    ErrorCode.SELF_REMOVAL: "You cannot remove your own account",
    ErrorCode.SELF_DEMOTION: "You cannot demote yourself",
    ErrorCode.LAST_ADMIN_PROTECTED: "Cannot remove the last administrator",
    ErrorCode.NOT_FOUND: "Resource not found",
    ErrorCode.ALREADY_EXISTS: "Resource already exists",
    ErrorCode.OPERATION_FAILED: "Operation failed",
}

STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.INVALID_EMAIL: status.HTTP_400_BAD_REQUEST,
    ErrorCode.WEAK_PASSWORD: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_ROLE: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorCode.DUPLICATE_EMAIL: status.HTTP_409_CONFLICT,
    ErrorCode.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.ACCOUNT_DISABLED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.SESSION_NOT_FOUND: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.SESSION_EXPIRED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.INVALID_OR_EXPIRED_TOKEN: status.HTTP_400_BAD_REQUEST,
    ErrorCode.WRONG_CURRENT_PASSWORD: status.HTTP_400_BAD_REQUEST,
    ErrorCode.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorCode.SELF_REMOVAL: status.HTTP_403_FORBIDDEN,
    ErrorCode.SELF_DEMOTION: status.HTTP_403_FORBIDDEN,
    ErrorCode.LAST_ADMIN_PROTECTED: status.HTTP_409_CONFLICT,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.ALREADY_EXISTS: status.HTTP_409_CONFLICT,
    ErrorCode.OPERATION_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for(code: ErrorCode) -> int:
    return STATUS_BY_CODE.get(code, status.HTTP_400_BAD_REQUEST)


@dataclass(frozen=True)
class ServiceError:
    code: ErrorCode
    message: str
    details: Any = None


@dataclass(frozen=True)
class ServiceResult(Generic[T]):
    """Discriminated result: success flag, optional payload, optional typed error"""
    success: bool
    data: Optional[T] = None
    error: Optional[ServiceError] = None

    @classmethod
    def ok(cls, data: Optional[T] = None) -> "ServiceResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(
        cls,
        code: ErrorCode,
        message: Optional[str] = None,
        details: Any = None,
    ) -> "ServiceResult[T]":
        return cls(
            success=False,
            error=ServiceError(code=code, message=message or DEFAULT_MESSAGES[code], details=details),
        )

    @property
    def error_code(self) -> Optional[ErrorCode]:
        return self.error.code if self.error else None


class AppError(Exception):
    """Raised for failures of operations that return entities directly"""
    code: ErrorCode = ErrorCode.OPERATION_FAILED
    message: str = "Application error"
    details: Any | None = None

    def __init__(self, message: str | None = None, *, details: Any | None = None):
        if message is not None:
            self.message = message
        if details is not None:
            self.details = details
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return status_for(self.code)


class ValidationError(AppError):
    code = ErrorCode.INVALID_INPUT
    message = "Validation error"


class NotFoundError(AppError):
    code = ErrorCode.NOT_FOUND
    message = "Resource not found"


class PermissionDeniedError(AppError):
    code = ErrorCode.FORBIDDEN
    message = "Insufficient permissions"


class ConflictError(AppError):
    code = ErrorCode.ALREADY_EXISTS
    message = "Resource conflict"


def error_payload(code: str, message: str, details: Any | None = None) -> dict[str, Any]:
    return {"error": {"code": code, "message": message, "details": details}}
