# File: app/core/errors.py
# Project: itms-backend
"""
Error taxonomy shared by services and routers.

Services raise these; the handlers registered in ``app.main`` turn them into
``{"error": <message>, "code": <code>}`` JSON bodies with the matching status.
"""
from typing import Optional


class AppError(Exception):
    status_code = 500
    code = "internal_error"
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None, **extra):
        self.message = message or self.message
        self.extra = extra
        super().__init__(self.message)

    def to_payload(self) -> dict:
        payload = {"error": self.message, "code": self.code}
        payload.update(self.extra)
        return payload


class Unauthenticated(AppError):
    status_code = 401
    code = "unauthenticated"
    message = "Authentication token required"


class InvalidToken(Unauthenticated):
    code = "invalid_token"
    message = "Invalid token"


class TokenExpired(Unauthenticated):
    code = "token_expired"
    message = "Token expired"


class Forbidden(AppError):
    status_code = 403
    code = "forbidden"
    message = "You do not have permission to perform this action"


class NotFound(AppError):
    status_code = 404
    code = "not_found"
    message = "Resource not found"


class Conflict(AppError):
    status_code = 400
    code = "conflict"
    message = "Resource already exists"


class ValidationFailed(AppError):
    status_code = 400
    code = "validation_failed"
    message = "Invalid request"


class InvalidVerificationToken(ValidationFailed):
    code = "invalid_token"
    message = "Invalid or already used verification token"


# Login rejections all answer 400; the code tells them apart.
class LoginRejected(AppError):
    status_code = 400
    code = "login_failed"
    message = "Login failed"


class AccountNotFound(LoginRejected):
    code = "account_not_found"
    message = "User does not exist"


class VerificationRequired(LoginRejected):
    code = "verification_required"
    message = "Email verification required"


class ApprovalPending(LoginRejected):
    code = "approval_pending"

    def __init__(self, approver: str):
        label = "Super Admin" if approver == "super_admin" else "User Master"
        super().__init__(f"Approval by {label} is required", approver=approver)
        self.approver = approver


class InvalidCredential(LoginRejected):
    code = "invalid_credential"
    message = "Password does not match"


class UpstreamFailure(AppError):
    status_code = 500
    code = "upstream_failure"
    message = "A backing service failed. Please try again later."
