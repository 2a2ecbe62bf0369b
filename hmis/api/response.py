from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from hmis.core.errors import HmisError


def _send(body: Dict[str, Any], status_code: int) -> JSONResponse:
    # datetimes, dates and Decimals in ORM-backed payloads
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def ok(data: Any = None, *, meta: Optional[Dict[str, Any]] = None,
       status_code: int = 200) -> JSONResponse:
    """``{"ok": true, "data": ...}``; paged lists also carry ``meta``."""
    body: Dict[str, Any] = {"ok": True, "data": data}
    if meta is not None:
        body["meta"] = meta
    return _send(body, status_code)


def err(msg: str = "Something went wrong", *, status_code: int = 400,
        code: Optional[str] = None, details: Any = None) -> JSONResponse:
    """``{"ok": false, "error": {"msg", "code", "details"}}``"""
    return _send({"ok": False, "error": {"msg": msg, "code": code, "details": details}},
                 status_code)


def err_from(exc: HmisError) -> JSONResponse:
    return err(exc.msg, status_code=exc.status_code, code=exc.code, details=exc.details)
