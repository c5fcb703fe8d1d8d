import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from liftcycle.core.exceptions import (
    AnalysisError,
    AuthenticationError,
    DomainError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)

logger = logging.getLogger(__name__)


ERROR_STATUS_MAP: dict[type[DomainError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ValidationError: status.HTTP_400_BAD_REQUEST,
    PersistenceError: status.HTTP_503_SERVICE_UNAVAILABLE,
    AnalysisError: status.HTTP_502_BAD_GATEWAY,
    AuthenticationError: status.HTTP_401_UNAUTHORIZED,
}

REQUEST_VALIDATION_CODE = "VAL_REQUEST_001"


def error_envelope(request: Request, status_code: int, errors: list[dict]) -> JSONResponse:
    """Every error leaves the API as {data: null, meta, errors[]}."""
    headers = {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(
        status_code=status_code,
        headers=headers,
        content={
            "data": None,
            "meta": {
                "request_id": getattr(request.state, "request_id", None),
                "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            },
            "errors": errors,
        },
    )


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    status_code = ERROR_STATUS_MAP.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)

    if status_code >= 500:
        logger.warning(f"Request failed with {exc.code}: {exc.message}")

    return error_envelope(
        request,
        status_code,
        [{"code": exc.code, "message": exc.message, "details": exc.details}],
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies and query parameters, one entry per field."""
    errors = [
        {
            "code": REQUEST_VALIDATION_CODE,
            "message": error.get("msg", "Invalid value"),
            "details": {
                "loc": [str(part) for part in error.get("loc", ())],
                "type": error.get("type"),
            },
        }
        for error in exc.errors()
    ]
    return error_envelope(request, status.HTTP_422_UNPROCESSABLE_ENTITY, errors)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
