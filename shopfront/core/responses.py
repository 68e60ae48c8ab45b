"""Uniform response envelope: {status, message, data}."""

from __future__ import annotations

from typing import Any

from fastapi.responses import JSONResponse


def envelope(data: Any, message: str, *, status: int = 200, **extra: Any) -> dict:
    if data is None:
        data = []
    body = {"status": status, "message": message, "data": data}
    body.update(extra)
    return body


def respond(data: Any, message: str, *, status: int = 200, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status, content=envelope(data, message, status=status, **extra))


def list_message(items: list, empty: str, found: str) -> str:
    return empty if not items else found
