"""Translate service errors into HTTP responses."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from qrlanding.api.schemas import RiskAssessmentSchema
from qrlanding.errors import (AuthenticationError, AuthorizationError, ConflictError,
                              NotFoundError, QRLandingError, RiskWarning,
                              ShortCodeRetryExhausted, StorageError, ValidationError)

logger = logging.getLogger(__name__)

_STATUS_CODES: list[tuple[type[QRLandingError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (RiskWarning, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (StorageError, status.HTTP_502_BAD_GATEWAY),
    (ShortCodeRetryExhausted, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def status_for(exc: QRLandingError) -> int:
    for exc_type, code in _STATUS_CODES:
        if isinstance(exc, exc_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def service_error_handler(request: Request, exc: QRLandingError) -> JSONResponse:
    """Handle all service exceptions."""
    code = status_for(exc)
    if code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {code}: {exc}")

    body: dict = {"detail": str(exc)}
    if isinstance(exc, RiskWarning):
        body["validation"] = RiskAssessmentSchema.from_assessment(exc.assessment).model_dump()
    return JSONResponse(status_code=code, content=body)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(QRLandingError, service_error_handler)
