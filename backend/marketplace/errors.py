"""
RFC 7807 problem responses.

Every error leaves the API as ``application/problem+json`` with the usual
``type``/``title``/``status``/``detail``/``instance`` members, plus ``code``,
``errors`` and ``request_id`` when they are known.

Routes raise ``HTTPException`` whose ``detail`` is either a string or the
``{"message", "code", "details"}`` dict built by
``DomainException.to_http_exception()``; both shapes are flattened here.
"""

from http import HTTPStatus
import logging
from typing import Any, Mapping, Optional, Tuple

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.exceptions import DomainException
from .core.request_context import current_request_id

logger = logging.getLogger(__name__)

PROBLEM_MEDIA_TYPE = "application/problem+json"


def status_title(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


def problem_response(
    request: Request,
    status_code: int,
    detail: Optional[str],
    *,
    code: Optional[str] = None,
    errors: Any = None,
    headers: Optional[Mapping[str, str]] = None,
) -> JSONResponse:
    body = {
        "type": "about:blank",
        "title": status_title(status_code),
        "status": status_code,
        "detail": detail or "",
        "instance": request.url.path,
    }
    if code:
        body["code"] = code
    if errors is not None:
        body["errors"] = jsonable_encoder(errors)
    request_id = current_request_id()
    if request_id:
        body["request_id"] = request_id
    return JSONResponse(
        body, status_code=status_code, media_type=PROBLEM_MEDIA_TYPE, headers=headers
    )


def split_http_detail(detail: Any) -> Tuple[Optional[str], Optional[str], Any]:
    """(message, code, errors) from an ``HTTPException.detail``."""
    if detail is None or isinstance(detail, str):
        return detail, None, None
    if not isinstance(detail, dict):
        return str(detail), None, None
    message = detail.get("message", detail.get("detail"))
    code = detail.get("code")
    return (
        message if isinstance(message, str) else None,
        code if isinstance(code, str) else None,
        detail.get("details") or detail.get("errors"),
    )


async def _on_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message, code, errors = split_http_detail(exc.detail)
    return problem_response(
        request,
        exc.status_code,
        message,
        code=code,
        errors=errors,
        headers=getattr(exc, "headers", None),
    )


async def _on_domain_exception(request: Request, exc: DomainException) -> JSONResponse:
    return problem_response(
        request, exc.status_code, exc.message, code=exc.code, errors=exc.details or None
    )


async def _on_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return problem_response(
        request,
        422,
        "Request validation failed",
        code="validation_error",
        errors=exc.errors(),
    )


async def _on_unhandled(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return problem_response(request, 500, "Internal Server Error", code="internal_server_error")


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, _on_http_exception)
    app.add_exception_handler(DomainException, _on_domain_exception)
    app.add_exception_handler(RequestValidationError, _on_validation_error)
    app.add_exception_handler(Exception, _on_unhandled)
