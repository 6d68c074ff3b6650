# learnshop/core/errors.py
"""
Application error taxonomy.

Services raise these; `learnshop.main` maps them to HTTP responses
(`{"detail": message}` with the class status code). Routers never build
error responses themselves.
"""
from typing import Any

from fastapi import status


class AppError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, *, extra: Any = None):
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)

    def to_detail(self) -> Any:
        if self.extra is None:
            return self.message
        return {"message": self.message, "items": self.extra}


# ---- 400 ----


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class EmptyCartError(ValidationError):
    default_message = "Cart is empty"


class UnavailableItemsError(ValidationError):
    default_message = "Cart contains items that are no longer available"


class InvalidStatusError(ValidationError):
    default_message = "Invalid order status"


# ---- 401 / 403 ----


class AuthorizationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class ForbiddenError(AuthorizationError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"


class NotEnrolledError(ForbiddenError):
    default_message = "You must be enrolled in this course"


# ---- 404 ----


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class CartLineNotFoundError(NotFoundError):
    default_message = "Item not found in cart"


# ---- 409 ----


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class AlreadyEnrolledError(ConflictError):
    default_message = "Already enrolled in this course"
