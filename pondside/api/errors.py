"""
Exception handlers rendering failures into the response envelope.
"""

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from pondside.core.errors import DomainError
from pondside.core.logging import get_logger
from pondside.schemas.common import ErrorBody, ErrorEnvelope

logger = get_logger(__name__)


def _envelope(status_code: int, body: ErrorBody) -> JSONResponse:
    content = ErrorEnvelope(error=body).model_dump(mode="json", exclude_none=True)
    return JSONResponse(status_code=status_code, content=content)


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    logger.info("request_rejected", kind=exc.kind, code=exc.code, status_code=exc.status_code)
    return _envelope(exc.status_code, ErrorBody(**exc.to_dict()))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = jsonable_encoder(exc.errors(), custom_encoder={Exception: str})
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{location}: {first.get('msg')}" if location else str(first.get("msg", "Invalid request"))
    return _envelope(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        ErrorBody(kind="validation_error", code="VALIDATION_ERROR", message=message, details={"errors": errors}),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
