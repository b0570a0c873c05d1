"""
voice_token_service.errors

Error taxonomy for the token path and its HTTP mapping.

Responsibilities:
- Define typed errors raised by the cache, service, and rate limiter.
- Render every error as a `{"error": "..."}` JSON body with the right status code.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_429_TOO_MANY_REQUESTS,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from voice_token_service.observability.logging import get_logger

log = get_logger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal Server Error"


class TokenServiceError(Exception):
    status_code: int = HTTP_500_INTERNAL_SERVER_ERROR
    public_message: str = INTERNAL_ERROR_MESSAGE

    def headers(self) -> dict[str, str] | None:
        return None


class SigningFailedError(TokenServiceError):
    public_message = "Failed to generate token"


class CacheUnavailableError(TokenServiceError):
    pass


class InvalidIdentityError(TokenServiceError):
    status_code = HTTP_400_BAD_REQUEST

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.public_message = message


class RateLimitExceededError(TokenServiceError):
    status_code = HTTP_429_TOO_MANY_REQUESTS
    public_message = "Too many requests, please try again later."

    def __init__(self, *, retry_after_seconds: int) -> None:
        super().__init__(self.public_message)
        self.retry_after_seconds = retry_after_seconds

    def headers(self) -> dict[str, str] | None:
        return {"Retry-After": str(self.retry_after_seconds)}


def error_response(status_code: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


async def _token_service_error_handler(_: Request, exc: TokenServiceError) -> JSONResponse:
    if exc.status_code >= HTTP_500_INTERNAL_SERVER_ERROR:
        log.error("token_request_failed", error_type=type(exc).__name__, error=str(exc))
    return error_response(exc.status_code, exc.public_message, exc.headers())


async def _unhandled_error_handler(_: Request, exc: Exception) -> JSONResponse:
    log.exception("unhandled_error", error_type=type(exc).__name__)
    return error_response(HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR_MESSAGE)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TokenServiceError, _token_service_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)


# --- Module Notes -----------------------------------------------------------
# Raw signer/cache messages go to logs only; callers see `public_message`.
