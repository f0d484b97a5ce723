"""Typed failures raised by the marketplace core.

Routes do not catch these; the handler registered in ``app.main`` turns them
into JSON responses with the same ``{"detail": ...}`` shape FastAPI uses for
``HTTPException``.
"""
from fastapi import status


class MarketplaceError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Request could not be processed"

    def __init__(self, detail: str = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ConstraintViolation(MarketplaceError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = "Constraint violation"


class DuplicateEntry(ConstraintViolation):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Row already exists"


class InvalidTransition(ConstraintViolation):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Invalid status transition"


class ReferentialViolation(MarketplaceError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = "Referenced row does not exist"


class AuthorizationDenied(MarketplaceError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Not enough permissions"


class NotFound(MarketplaceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"
