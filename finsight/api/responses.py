"""
JSON envelope shared by every API route
"""
from typing import Any

from fastapi.responses import JSONResponse


def ok(data: Any = None, message: str | None = None, meta: dict | None = None) -> dict:
    body: dict = {"success": True}
    if data is not None:
        body["data"] = data
    if message is not None:
        body["message"] = message
    if meta is not None:
        body["meta"] = meta
    return body


def error_response(status_code: int, error: str, code: str | None = None) -> JSONResponse:
    body: dict = {"success": False, "error": error}
    if code is not None:
        body["code"] = code
    return JSONResponse(status_code=status_code, content=body)
