# clinic/utils/resp.py
from __future__ import annotations

from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def err(msg: str,
        status_code: int = 400,
        details: Optional[Any] = None) -> JSONResponse:
    payload = {"error": msg}
    if details is not None:
        payload["details"] = details
    return JSONResponse(status_code=status_code,
                        content=jsonable_encoder(payload))
