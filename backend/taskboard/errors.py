from typing import Any, Optional


class AppError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"
    message = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None, details: Any = None) -> None:
        self.message = message or self.message
        self.details = details
        super().__init__(self.message)


class ValidationFailed(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"
    message = "Invalid input"


class AlreadyExists(AppError):
    status_code = 400
    code = "ALREADY_EXISTS"
    message = "User already exists"


class InvalidCredentials(AppError):
    status_code = 401
    code = "INVALID_CREDENTIALS"
    message = "Invalid credentials"


class InvalidRefreshToken(AppError):
    status_code = 401
    code = "INVALID_REFRESH_TOKEN"
    message = "Invalid or revoked refresh token"


class Unauthenticated(AppError):
    status_code = 401
    code = "UNAUTHENTICATED"
    message = "Not authenticated"


class NotFound(AppError):
    status_code = 404
    code = "NOT_FOUND"
    message = "Resource not found"


class RateLimited(AppError):
    status_code = 429
    code = "RATE_LIMITED"
    message = "Too many attempts"


class InternalError(AppError):
    pass
