"""
Application errors for MondayEase.

Every error raised by the service layer derives from AppError and carries
an HTTP status code and a stable machine-readable code. The FastAPI
exception handlers in mondayease.app.main render them as {"error": message}.

Upstream (third-party) failures are not AppErrors; they are
IntegrationError subclasses from mondayease.integrations.base.
"""

from __future__ import annotations


class AppError(Exception):
    """Base exception for application errors."""

    def __init__(self, message: str, code: str, status_code: int = 500):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class NotAuthenticatedError(AppError):
    """Raised when the request carries no valid session token."""

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message, "AUTH_ERROR", 401)


class AccessDeniedError(AppError):
    """Raised when the caller is authenticated but not allowed."""

    def __init__(self, message: str = "Access denied"):
        super().__init__(message, "ACCESS_DENIED", 403)


class NotFoundError(AppError):
    """Raised when a requested row does not exist."""

    def __init__(self, message: str = "Not found"):
        super().__init__(message, "NOT_FOUND", 404)


class BadRequestError(AppError):
    """Raised when request parameters are missing or invalid."""

    def __init__(self, message: str):
        super().__init__(message, "BAD_REQUEST", 400)


class ConflictError(AppError):
    """Raised when a write collides with existing data."""

    def __init__(self, message: str):
        super().__init__(message, "CONFLICT", 409)


class InvalidTransitionError(AppError):
    """Raised when a state machine is asked for a move it does not allow."""

    def __init__(self, current: str, requested: str):
        super().__init__(
            f"Cannot transition from '{current}' to '{requested}'",
            "INVALID_TRANSITION",
            409,
        )
        self.current = current
        self.requested = requested
