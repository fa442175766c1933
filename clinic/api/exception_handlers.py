# FILE: clinic/api/exception_handlers.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Union

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from clinic.db.session import SessionLocal
from clinic.services.error_logger import format_exception, log_error
from clinic.utils.resp import err

logger = logging.getLogger(__name__)


def validation_details(exc: Union[RequestValidationError, ValidationError]) -> List[Dict[str, Any]]:
    out = []
    for e in exc.errors():
        loc = [str(p) for p in e.get("loc", ()) if p != "body"]
        msg = str(e.get("msg", "Invalid value"))
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        out.append({"field": ".".join(loc), "msg": msg})
    return out


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # exc.detail can be str/dict/list
        if isinstance(exc.detail, dict):
            body = dict(exc.detail)
            msg = str(body.pop("error", None) or "Request failed")
            return err(msg=msg, status_code=exc.status_code, details=body or None)
        msg = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return err(msg=msg, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = validation_details(exc)
        first = details[0] if details else None
        if first and first["field"]:
            msg = f"{first['field']}: {first['msg']}"
        else:
            msg = first["msg"] if first else "Validation error"
        return err(msg=msg, status_code=400, details=details)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        endpoint_fn = request.scope.get("endpoint")
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        with SessionLocal() as db:
            log_error(
                db,
                description=str(exc) or type(exc).__name__,
                endpoint=f"{request.method} {request.url.path}",
                module=getattr(endpoint_fn, "__module__", None),
                function=getattr(endpoint_fn, "__name__", None),
                http_status=500,
                request_payload=dict(request.query_params) or None,
                stack_trace=format_exception(exc),
            )
        return err(msg="Internal server error", status_code=500)
