"""异常 -> HTTP 响应映射

错误响应统一为 {"ok": false, "error": {"code", "kind", "message"}}。
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from lockpoint.auth import AuthUnavailableError, InvalidCredentialError
from lockpoint.core.exceptions import LockpointError
from lockpoint.core.models import ErrorKind
from starlette.responses import JSONResponse

log = structlog.get_logger()

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.CONFLICT: 409,
    ErrorKind.UNEXPECTED: 500,
}


def error_response(
    status_code: int,
    code: str,
    kind: ErrorKind,
    message: str,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "ok": False,
            "error": {
                "code": code,
                "kind": kind.value,
                "message": message,
            },
        },
        headers=headers,
    )


async def _lockpoint_error_handler(request: Request, exc: LockpointError) -> JSONResponse:
    status_code = STATUS_BY_KIND[exc.kind]
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return error_response(status_code, exc.code, exc.kind, exc.message, headers)


async def _invalid_credential_handler(
    request: Request, exc: InvalidCredentialError
) -> JSONResponse:
    return error_response(
        401,
        "UNAUTHENTICATED",
        ErrorKind.UNAUTHENTICATED,
        exc.message,
        {"WWW-Authenticate": "Bearer"},
    )


async def _auth_unavailable_handler(
    request: Request, exc: AuthUnavailableError
) -> JSONResponse:
    await log.aerror("auth_unavailable", auth_url=exc.auth_url)
    return error_response(
        503,
        "AUTH_UNAVAILABLE",
        ErrorKind.UNEXPECTED,
        "Identity provider is unavailable",
    )


async def _validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = first.get("msg", "Invalid request")
    return error_response(
        422,
        "INVALID_REQUEST",
        ErrorKind.INVALID_INPUT,
        f"{location}: {message}" if location else message,
    )


async def _unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    await log.aexception("unhandled_error", error_type=type(exc).__name__)
    return error_response(
        500,
        "UNEXPECTED",
        ErrorKind.UNEXPECTED,
        "Unexpected error",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """注册异常处理器"""
    app.add_exception_handler(LockpointError, _lockpoint_error_handler)
    app.add_exception_handler(InvalidCredentialError, _invalid_credential_handler)
    app.add_exception_handler(AuthUnavailableError, _auth_unavailable_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unexpected_error_handler)
