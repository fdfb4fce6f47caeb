"""
Application errors and the FastAPI handlers that turn them into responses.
"""
import logging
from typing import List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from pymongo.errors import DuplicateKeyError

logger = logging.getLogger(__name__)


class FieldError(BaseModel):
    field: str
    message: str


class APIError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Something broke!"

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def body(self) -> dict:
        return {"message": self.message}


class NotFoundError(APIError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Not found"


class BadRequestError(APIError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Bad request"


class UnknownCategoryError(BadRequestError):
    def __init__(self, category: str):
        self.category = category
        super().__init__(f"Unknown category: {category}")


class AuthenticationError(APIError):
    """Any failed bearer-token check. The body never says which check failed."""

    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Please authenticate."

    def body(self) -> dict:
        return {"error": self.message}


class InvalidCredentialsError(APIError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Invalid credentials"


class ValidationFailed(BadRequestError):
    message = "Validation failed"

    def __init__(self, errors: List[FieldError]):
        self.errors = errors
        super().__init__()

    def body(self) -> dict:
        return {"message": self.message, "errors": [e.model_dump() for e in self.errors]}


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    headers = None
    if isinstance(exc, AuthenticationError):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(status_code=exc.status_code, content=exc.body(), headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        FieldError(
            field=".".join(str(part) for part in err["loc"] if part != "body"),
            message=err["msg"],
        )
        for err in exc.errors()
    ]
    return await api_error_handler(request, ValidationFailed(errors))


async def duplicate_key_handler(request: Request, exc: DuplicateKeyError) -> JSONResponse:
    key_value = (exc.details or {}).get("keyValue") or {}
    field = next(iter(key_value), "value")
    logger.info("Duplicate key rejected", extra={"path": request.url.path, "field": field})
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": f"{field} already in use"},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Full traceback goes to the log only.
    logger.error(
        f"Unhandled exception: {type(exc).__name__}: {exc}",
        exc_info=exc,
        extra={"path": request.url.path, "method": request.method},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": APIError.message},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(DuplicateKeyError, duplicate_key_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
