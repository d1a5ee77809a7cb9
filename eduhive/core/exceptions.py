import logging
from typing import Optional

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

logger = logging.getLogger("uvicorn.error")


class CustomHTTPException(Exception):
    """HTTP error carrying an application error code for the client."""
    def __init__(self, status_code: int, detail: str, error_code: str = None, headers: dict = None):
        self.status_code = status_code
        self.detail = detail
        self.error_code = error_code
        self.headers = headers
        super().__init__(detail)


def error_response(status_code: int, detail, error_code: Optional[str] = None, headers: dict = None) -> JSONResponse:
    content = {"detail": detail}
    if error_code:
        content["error_code"] = error_code
    return JSONResponse(status_code=status_code, content=content, headers=headers or {})


def _log(request: Request, status_code: int, detail) -> None:
    level = logging.ERROR if status_code >= 500 else logging.WARNING
    logger.log(level, f"{request.method} {request.url.path} -> {status_code}: {detail}")


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    _log(request, 422, errors)
    # Validator errors carry exception objects in ctx
    content = jsonable_encoder(
        {"detail": errors, "message": "Validation failed. Please check your request data."},
        custom_encoder={Exception: str},
    )
    return JSONResponse(status_code=422, content=content)


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render CustomHTTPException and HTTPException as JSON."""
    if isinstance(exc, (CustomHTTPException, HTTPException)):
        _log(request, exc.status_code, exc.detail)
        return error_response(exc.status_code, exc.detail, getattr(exc, "error_code", None), exc.headers)

    logger.error(f"Unexpected error on {request.url}: {exc}")
    return error_response(500, "An unexpected error occurred")
