from __future__ import annotations

import logging
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from authgate.domain import exceptions as errors


logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: dict[type[errors.DomainError], int] = {
    errors.InvalidCredentialsError: 401,
    errors.EmailAlreadyRegisteredError: 409,
    errors.EmailAlreadyInUseError: 409,
    errors.AccountLinkRequiredError: 409,
    errors.ProviderDisabledError: 503,
    errors.InvalidProviderTokenError: 401,
    errors.InvalidSignatureError: 401,
    errors.InvalidPayloadError: 401,
    errors.PayloadExpiredError: 401,
    errors.InvalidRefreshTokenError: 401,
    errors.InvalidAccessTokenError: 401,
    errors.InvalidLinkTokenError: 401,
    errors.ExpiredLinkTokenError: 401,
    errors.IdentityAlreadyLinkedError: 409,
    errors.ProviderUserIdRequiredError: 400,
    errors.PasswordRequiredError: 400,
    errors.EmailRequiredError: 400,
    errors.InvalidEmailLinkCodeError: 401,
    errors.EmailDeliveryError: 503,
    errors.InvalidBotLinkSecretError: 401,
    errors.UnauthorizedError: 401,
    errors.ForbiddenError: 403,
    errors.RateLimitedError: 429,
    errors.RateLimitUnavailableError: 503,
}


def status_for_error(exc: errors.DomainError) -> int:
    for error_type in type(exc).__mro__:
        status_code = _STATUS_BY_ERROR.get(error_type)
        if status_code is not None:
            return status_code
    return 400


def error_body(code: str, message: str, details=None) -> dict:
    body = {"code": code, "message": message}
    if details is not None:
        body["details"] = details
    return body


async def _handle_domain_error(request: Request, exc: errors.DomainError) -> JSONResponse:
    status_code = status_for_error(exc)
    headers = None
    details = None
    if isinstance(exc, errors.RateLimitedError):
        headers = {"Retry-After": str(exc.retry_after_seconds)}
        details = {"retryAfterSeconds": exc.retry_after_seconds}
    if status_code >= 500:
        logger.error("http_error: path=%s status=%s code=%s", request.url.path, status_code, exc.code)
    return JSONResponse(
        status_code=status_code,
        content=error_body(exc.code, exc.message, details),
        headers=headers,
    )


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=error_body("VALIDATION_ERROR", "Request validation failed.", jsonable_encoder(exc.errors())),
    )


async def _handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    try:
        status = HTTPStatus(exc.status_code)
        code, phrase = status.name, status.phrase
    except ValueError:
        code, phrase = f"HTTP_{exc.status_code}", "Request failed."
    message = exc.detail if isinstance(exc.detail, str) else phrase
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(code, message),
        headers=getattr(exc, "headers", None),
    )


async def _handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("http_error: unhandled_exception path=%s", request.url.path)
    return JSONResponse(
        status_code=500,
        content=error_body("INTERNAL_SERVER_ERROR", "Internal server error."),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(errors.DomainError, _handle_domain_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)
    app.add_exception_handler(Exception, _handle_unexpected_error)
