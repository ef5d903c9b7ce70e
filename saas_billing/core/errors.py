"""Application error taxonomy.

Every error the service raises on purpose is an ``AppError``.  Each
subclass carries the HTTP status and machine-readable code that the
exception handlers in ``saas_billing.api.errors`` put into the error
envelope, so routes raise domain errors and never build responses
for failures themselves.

    AppError
    ├── ValidationError        400
    ├── AuthenticationError    401
    ├── AuthorizationError     403
    ├── NotFoundError          404
    ├── ConflictError          409
    ├── RateLimitExceededError 429
    └── DependencyError        500
"""

from __future__ import annotations


class AppError(Exception):
    status_code: int = 500
    code: str = "INTERNAL_SERVER_ERROR"
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        details: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.message = message or type(self).message
        self.code = code or type(self).code
        self.details = details
        self.headers = headers
        super().__init__(self.message)


# --- Categories ---


class ValidationError(AppError):
    status_code = 400
    code = "INVALID_REQUEST"
    message = "Invalid request"


class AuthenticationError(AppError):
    status_code = 401
    code = "UNAUTHORIZED"
    message = "Authentication required"


class AuthorizationError(AppError):
    status_code = 403
    code = "FORBIDDEN"
    message = "Insufficient permissions"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"
    message = "Resource not found"


class ConflictError(AppError):
    status_code = 409
    code = "CONFLICT"
    message = "Resource already exists"


class RateLimitExceededError(AppError):
    status_code = 429
    code = "RATE_LIMIT_EXCEEDED"
    message = "Rate limit exceeded"


class DependencyError(AppError):
    status_code = 500
    code = "DEPENDENCY_ERROR"
    message = "A backing service is unavailable"


# --- Credential store ---


class InvalidInputError(ValidationError):
    pass


class DuplicateEmailError(ConflictError):
    code = "EMAIL_ALREADY_EXISTS"
    message = "A user with this email already exists"


class InvalidCredentialsError(AuthenticationError):
    code = "INVALID_CREDENTIALS"
    message = "Invalid credentials"


class InvalidTokenError(AuthenticationError):
    code = "INVALID_TOKEN"
    message = "Invalid token"


class ExpiredTokenError(AuthenticationError):
    code = "TOKEN_EXPIRED"
    message = "Token expired"


# --- Authorization gate ---


class MissingAuthError(AuthenticationError):
    code = "AUTH_HEADER_MISSING"
    message = "Authorization header required"


class MalformedAuthError(AuthenticationError):
    code = "AUTH_HEADER_MALFORMED"
    message = "Invalid authorization header format"


class InvalidOrExpiredTokenError(AuthenticationError):
    code = "INVALID_TOKEN"
    message = "Invalid or expired token"


class ForbiddenError(AuthorizationError):
    code = "INSUFFICIENT_PERMISSIONS"
    message = "Insufficient permissions"


class NotAMemberError(ForbiddenError):
    code = "NOT_A_MEMBER"
    message = "User is not a member of this organization"


# --- Organization directory ---


class OrgNotFoundError(NotFoundError):
    code = "ORGANIZATION_NOT_FOUND"
    message = "Organization not found"


class UserNotFoundError(NotFoundError):
    code = "USER_NOT_FOUND"
    message = "User not found"


class DuplicateMembershipError(ConflictError):
    code = "MEMBERSHIP_EXISTS"
    message = "User is already a member of this organization"


# --- Subscription ledger ---


class PlanNotFoundError(NotFoundError):
    code = "PLAN_NOT_FOUND"
    message = "Plan not found"


class SubscriptionNotFoundError(NotFoundError):
    code = "SUBSCRIPTION_NOT_FOUND"
    message = "No active subscription found"


class ActiveSubscriptionExistsError(ConflictError):
    code = "SUBSCRIPTION_EXISTS"
    message = "Organization already has an active subscription"
