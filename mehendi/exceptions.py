"""
Domain errors raised by the service layer.

Each error is an HTTPException so routers can let it propagate unchanged and
FastAPI renders {"detail": ...} with the matching status code.
"""

from typing import Optional

from fastapi import HTTPException


class DomainError(HTTPException):
    """Base class for appointment domain errors"""

    status_code = 400
    default_detail = "Bad request"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)


class ValidationError(DomainError):
    """Malformed or missing input"""

    status_code = 400
    default_detail = "Invalid request"


class NotFoundError(DomainError):
    """Referenced record does not exist or is not eligible"""

    status_code = 404
    default_detail = "Not found"


class ForbiddenError(DomainError):
    """Actor role or identity does not satisfy the rule"""

    status_code = 403
    default_detail = "Forbidden"


class ConflictError(DomainError):
    """Operation not allowed in the appointment's current status"""

    # Disallowed transitions are reported as bad requests to API clients
    status_code = 400
    default_detail = "Operation not allowed for the current appointment status"


class DeliveryFailure(Exception):
    """Raised when a push notification or email could not be delivered"""

    pass
