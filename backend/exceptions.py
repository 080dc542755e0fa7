import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class MenuServiceError(Exception):
    """Base error raised by the menu service; carries its HTTP mapping."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "Internal Server Error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(MenuServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "Not Found"


class ConflictError(MenuServiceError):
    status_code = status.HTTP_409_CONFLICT
    error = "Conflict"


class BadRequestError(MenuServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "Bad Request"


class TreeIntegrityError(MenuServiceError):
    """Stored ancestry is malformed (cycle or dangling parent).

    Should never happen while every write goes through ``MenuService``.
    """


def _error_body(status_code: int, error: str, message) -> dict:
    return {"statusCode": status_code, "error": error, "message": message}


async def menu_error_handler(request: Request, exc: MenuServiceError) -> JSONResponse:
    if isinstance(exc, TreeIntegrityError):
        logger.error(f"Menu tree integrity failure on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.status_code, exc.error, exc.message),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        messages.append(f"{location}: {err.get('msg')}" if location else err.get("msg"))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body(status.HTTP_400_BAD_REQUEST, "Bad Request", messages),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MenuServiceError, menu_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
