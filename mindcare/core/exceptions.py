"""
Application error taxonomy.

Services raise these; ``register_exception_handlers`` renders them into the
standard response envelope with a matching HTTP status.
"""
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from mindcare.core.config import settings
from mindcare.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)

HTTP_ERROR_KINDS = {
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
}


class AppError(Exception):
    """Base class for errors that map onto a stable error kind"""
    kind = "internal"
    code = 500
    default_msg = "Internal server error"

    def __init__(self, msg: Optional[str] = None, debug: Optional[str] = None):
        self.msg = msg or self.default_msg
        self.debug = debug
        super().__init__(self.msg)


class NotFoundError(AppError):
    kind = "not_found"
    code = 404
    default_msg = "Resource not found"


class ForbiddenError(AppError):
    kind = "forbidden"
    code = 403
    default_msg = "Not authorized"


class InvalidInputError(AppError):
    kind = "invalid_input"
    code = 400
    default_msg = "Invalid input"


class ConflictError(AppError):
    kind = "conflict"
    code = 409
    default_msg = "Conflicting update"


class InternalError(AppError):
    pass


def _render(code: int, kind: str, msg: str, debug: Optional[str]) -> JSONResponse:
    body = ErrorResponse(
        code=code,
        msg=msg,
        kind=kind,
        debug=debug if settings.DEBUG else None
    )
    return JSONResponse(status_code=code, content=body.model_dump())


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError):
        if exc.code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.msg} ({exc.debug})")
        else:
            logger.info(f"{request.method} {request.url.path} rejected: {exc.kind} - {exc.msg}")
        return _render(exc.code, exc.kind, exc.msg, exc.debug)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        response = _render(exc.status_code, HTTP_ERROR_KINDS.get(exc.status_code, "http_error"), str(exc.detail), None)
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        msg = f"{field}: {first.get('msg')}" if field else "Invalid request"
        return _render(InvalidInputError.code, InvalidInputError.kind, msg, str(errors))
