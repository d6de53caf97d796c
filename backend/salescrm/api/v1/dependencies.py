"""
API Dependencies
Shared dependencies for reaching the services built at startup
"""
from fastapi import HTTPException, Request, status

from salescrm.domain.errors import (
    CapacityExceededError,
    ContactValidationError,
    DuplicateRecordError,
    RecordNotFoundError,
)
from salescrm.services.contact_service import ContactService


def get_contact_service(request: Request) -> ContactService:
    """
    Get the ContactService built in the application lifespan.

    Raises:
        HTTPException: 503 if the application has not finished starting
    """
    service = getattr(request.app.state, "contact_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Contact service is not initialized"
        )
    return service


def to_http_error(error: Exception) -> HTTPException:
    """Map a domain error to the HTTP status it is reported with"""
    if isinstance(error, RecordNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=error.message)
    if isinstance(error, DuplicateRecordError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=error.message)
    if isinstance(error, (ContactValidationError, CapacityExceededError)):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error.message)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))
