import logging
import traceback
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tradeapi.schemas.common import BaseResponse, Error

from .exceptions import BaseAPIException, InternalServerError

logger = logging.getLogger("tradeapi")


def _describe(request: Request) -> str:
    client = request.client.host if request.client else "-"
    return f"{request.method} {request.url.path} from {client}"


def _envelope(
    status_code: int,
    code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """실패 응답도 성공 응답과 같은 {success, data, error, meta} 형태로"""
    body = BaseResponse(
        success=False,
        data=None,
        error=Error(code=code, message=message, details=details or {}),
        meta=None,
    )
    return JSONResponse(
        status_code=status_code, content=body.model_dump(mode="json"), headers=headers
    )


async def handle_base_api_exception(request: Request, exc: BaseAPIException):
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(f"[{exc.error_code}] {_describe(request)} -> {exc.status_code}: {exc.message} {exc.details}")
    return _envelope(exc.status_code, exc.error_code, exc.message, exc.details, exc.headers)


async def handle_http_exception(request: Request, exc: StarletteHTTPException):
    message = f"[HTTPException] {_describe(request)} -> {exc.status_code}: {exc.detail}"
    if exc.status_code >= 500:
        tb_str = "".join(traceback.format_tb(exc.__traceback__))
        logger.error(f"{message}\n\nStack Trace:\n{tb_str}")
    else:
        logger.warning(message)
    return _envelope(
        exc.status_code,
        "HTTP_ERROR",
        str(exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def handle_validation_error(request: Request, exc: RequestValidationError):
    errors = [
        {
            "loc": list(err.get("loc", [])),
            "msg": err.get("msg", ""),
            "type": err.get("type", ""),
        }
        for err in exc.errors()
    ]
    logger.warning(f"[VALIDATION_001] {_describe(request)} -> 422: {errors}")
    return _envelope(422, "VALIDATION_001", "Validation failed", {"errors": errors})


async def handle_unexpected_error(request: Request, exc: Exception):
    tb_str = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    logger.error(
        f"[Unhandled Error] {_describe(request)}\n"
        f"Exception Type: {type(exc).__name__}\n"
        f"Exception Message: {exc}\n\n"
        f"Full Stack Trace:\n{tb_str}"
    )
    internal = InternalServerError()
    return _envelope(internal.status_code, internal.error_code, internal.message)
