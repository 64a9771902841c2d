from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp


# NOTE: don't use uvicorn.access here; its formatter expects access-log arguments.
logger = logging.getLogger("uvicorn.error")

SECRET_MARKERS = ("password", "secret", "token", "api_key", "apikey")


def _mask_secret(value: str, *, keep_start: int = 6, keep_end: int = 4) -> str:
    if value is None:
        return ""
    s = str(value)
    if len(s) <= keep_start + keep_end:
        return "***"
    return f"{s[:keep_start]}***{s[-keep_end:]}"


def _is_secret_key(key: str) -> bool:
    k = key.lower()
    return any(m in k for m in SECRET_MARKERS)


def _mask(data: Any) -> Any:
    if isinstance(data, dict):
        return {
            k: _mask_secret(v) if isinstance(v, str) and _is_secret_key(str(k)) else _mask(v)
            for k, v in data.items()
        }
    if isinstance(data, list):
        return [_mask(v) for v in data]
    return data


def _safe_json_body(body_bytes: bytes) -> dict[str, Any] | None:
    if not body_bytes:
        return None
    try:
        data = json.loads(body_bytes.decode("utf-8", errors="replace"))
    except ValueError:
        return None
    if not isinstance(data, dict):
        return {"_raw": data}
    return _mask(data)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, *, log_body: bool = False) -> None:
        super().__init__(app)
        self.log_body = log_body

    async def dispatch(self, request: Request, call_next: Callable[[Request], Any]) -> Response:
        start = time.perf_counter()
        body = b""
        if self.log_body and request.method.upper() in ("POST", "PUT", "PATCH"):
            body = await request.body()

            # Re-create request so downstream can read body again
            async def receive() -> dict:
                return {"type": "http.request", "body": body, "more_body": False}

            request = Request(request.scope, receive)

        response: Response | None = None
        try:
            response = await call_next(request)
            return response
        finally:
            dur_ms = int((time.perf_counter() - start) * 1000)
            client = request.client.host if request.client else "-"
            base = {
                "method": request.method,
                "path": request.url.path,
                "client": client,
                "ms": dur_ms,
                "status": getattr(response, "status_code", None),
            }
            if body:
                base["json"] = _safe_json_body(body)
            logger.info("request %s", base)
