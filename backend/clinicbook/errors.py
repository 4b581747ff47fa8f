# backend/clinicbook/errors.py
"""
Problem-document error responses.

Every error leaves the API as {type, title, status, detail, instance} plus
an optional machine-readable `code` and `errors` list. Domain exceptions
are translated here and nowhere else; routes just let them propagate.
"""

from http import HTTPStatus
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.exceptions import DomainException, RepositoryException

logger = logging.getLogger(__name__)

PROBLEM_TYPE_BASE = "https://clinicbook.dev/problems/"


def _title(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


def problem_response(
    request: Request,
    status_code: int,
    detail: str = "",
    code: Optional[str] = None,
    errors: Optional[Any] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    body: Dict[str, Any] = {
        "type": PROBLEM_TYPE_BASE + code.lower().replace("_", "-") if code else "about:blank",
        "title": _title(status_code),
        "status": status_code,
        "detail": detail,
        "instance": request.url.path,
    }
    if code:
        body["code"] = code
    if errors:
        body["errors"] = jsonable_encoder(errors)
    return JSONResponse(body, status_code=status_code, headers=headers)


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
        payload = exc.to_http_exception()
        if payload.status_code >= 500:
            logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
        detail = payload.detail
        return problem_response(
            request,
            payload.status_code,
            detail=detail["message"],
            code=detail["code"],
            errors=detail["details"] or None,
        )

    @app.exception_handler(RepositoryException)
    async def repository_exception_handler(
        request: Request, exc: RepositoryException
    ) -> JSONResponse:
        logger.error(f"Data access failure on {request.method} {request.url.path}: {exc}")
        return problem_response(
            request,
            HTTPStatus.INTERNAL_SERVER_ERROR,
            detail="The request could not be completed",
            code="INTERNAL_ERROR",
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        detail = exc.detail if isinstance(exc.detail, str) else ""
        return problem_response(request, exc.status_code, detail=detail, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return problem_response(
            request,
            422,
            detail="Request validation failed",
            code="validation_error",
            errors=exc.errors(),
        )
