"""
Error taxonomy for the API and the handlers that turn it into
`{"success": false, "error": ...}` responses.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("akshayapatra.errors")

GENERIC_ERROR = "Internal server error"


class AkshayapatraError(Exception):
    """Base exception for all business logic errors."""
    status_code = 500

    def __init__(self, message: str = GENERIC_ERROR):
        self.message = message
        super().__init__(self.message)


class Unauthenticated(AkshayapatraError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class Forbidden(AkshayapatraError):
    """Missing permission, or an action the caller may not take on themselves."""
    status_code = 403

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class ValidationError(AkshayapatraError):
    status_code = 400

    def __init__(self, message: str = "Bad request"):
        super().__init__(message)


class NotFoundError(AkshayapatraError):
    status_code = 404

    def __init__(self, message: str = "Not found"):
        super().__init__(message)


class ConflictError(AkshayapatraError):
    status_code = 409

    def __init__(self, message: str = "Already exists"):
        super().__init__(message)


class UpstreamError(AkshayapatraError):
    """The backing store, identity provider or a remote procedure failed."""
    status_code = 500


class InternalError(AkshayapatraError):
    status_code = 500


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


async def _handle_app_error(request: Request, exc: AkshayapatraError):
    if exc.status_code >= 500:
        # Upstream detail stays in the logs
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return error_response(exc.status_code, GENERIC_ERROR)
    return error_response(exc.status_code, exc.message)


async def _handle_http_exception(request: Request, exc: HTTPException):
    detail = exc.detail if isinstance(exc.detail, str) else GENERIC_ERROR
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": detail},
        headers=getattr(exc, "headers", None),
    )


async def _handle_validation_error(request: Request, exc: RequestValidationError):
    problems = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        problems.append(f"{field}: {err.get('msg')}" if field else err.get("msg", "invalid"))
    return error_response(400, "; ".join(problems) or "Invalid request body")


class InternalErrorMiddleware(BaseHTTPMiddleware):
    """Last line of defence: unhandled exceptions become a bare 500."""

    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except Exception:
            logger.exception(f"Unhandled error on {request.method} {request.url.path}")
            return error_response(500, GENERIC_ERROR)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AkshayapatraError, _handle_app_error)
    app.add_exception_handler(HTTPException, _handle_http_exception)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
