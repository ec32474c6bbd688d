import logging
from typing import Optional
from fastapi import status
from fastapi.responses import JSONResponse
from fastapi.requests import Request

logger = logging.getLogger(__name__)

# ---------------------------
# CRUD (Document store abstraction)
# ---------------------------

class DatabaseError(Exception):
    """Base class for failures raised below the gateway."""
    pass

class DatabaseNotFoundError(DatabaseError):
    """Raised when no document exists at the requested path."""
    pass

class StoreErrorCode:
    """Structured error codes reported by the document store client."""
    FAILED_PRECONDITION = "failed-precondition"
    INVALID_ARGUMENT = "invalid-argument"
    UNAVAILABLE = "unavailable"
    PERMISSION_DENIED = "permission-denied"
    RESOURCE_EXHAUSTED = "resource-exhausted"

class StoreError(DatabaseError):
    """Raised when a store call fails; `code` tells callers what kind of failure."""

    def __init__(self, message: str, code: str = StoreErrorCode.UNAVAILABLE):
        super().__init__(message)
        self.code = code

# ---------------------------
# Gateway (Persistence)
# ---------------------------

class GatewayError(DatabaseError):
    """A journal read or write that the caller may retry."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code

class WriteError(GatewayError):
    """Raised when a record could not be written."""
    pass

class ReadError(GatewayError):
    """Raised when a read failed and no fallback applies."""
    pass

# ---------------------------
# Service (Submission / insight flows)
# ---------------------------

class BusinessError(Exception):
    """Base class for errors raised by the service layer."""
    pass

class ServiceError(BusinessError):
    """Unexpected failure inside a service."""
    pass

class NotFoundError(BusinessError):
    """Raised when a journal entry or other record is not there."""
    pass

class ValidationError(BusinessError):
    """Raised when a request breaks a rule the schema cannot express (e.g. alarm before entry)."""
    pass

class StepSourceError(BusinessError):
    """Raised by a step-count source whose totals could not be read."""
    pass


# ---------------------------
# FastAPI Exception Handlers
# ---------------------------

def _error(status_code: int, detail: str, code: Optional[str] = None) -> JSONResponse:
    content = {"detail": detail}
    if code is not None:
        content["code"] = code
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app):
    """Map the error taxonomy onto HTTP responses."""

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return _error(status.HTTP_404_NOT_FOUND, str(exc))

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError):
        return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, str(exc))

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        logger.warning(f"{request.method} {request.url.path} failed in gateway ({exc.code}): {exc}")
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, str(exc), exc.code)

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        logger.warning(f"{request.method} {request.url.path} failed in store ({exc.code}): {exc}")
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, "Document store unavailable", exc.code)

    @app.exception_handler(StepSourceError)
    async def step_source_error_handler(request: Request, exc: StepSourceError):
        logger.warning(f"{request.method} {request.url.path} failed reading step totals: {exc}")
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, str(exc))

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        logger.error(f"Service error on {request.url.path}: {exc}", exc_info=exc)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")
