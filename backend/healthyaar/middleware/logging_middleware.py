"""
Request logging middleware.

Pure ASGI so that it wraps every response type without buffering the
application. Logs the method, path, status and duration of each request
and, at DEBUG level, the sanitized request body.
"""

import json
import logging
import time
from typing import Optional, Sequence

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..core.logging_config import filter_sensitive_data, truncate_large_data

logger = logging.getLogger(__name__)


def _sanitize_body(raw: bytes) -> str:
    """Decode a body and strip credentials and image payloads from it."""
    text = raw.decode("utf-8", errors="ignore")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        return truncate_large_data(text, max_length=2000)
    return truncate_large_data(
        json.dumps(filter_sensitive_data(payload), ensure_ascii=False),
        max_length=2000,
    )


class RequestLoggingMiddleware:
    """Log every HTTP request passing through the application."""

    def __init__(self, app: ASGIApp, exclude_paths: Optional[Sequence[str]] = None):
        self.app = app
        self.exclude_paths = set(exclude_paths or ("/health", "/"))

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope.get("path", "") in self.exclude_paths:
            await self.app(scope, receive, send)
            return

        method = scope.get("method", "UNKNOWN")
        path = scope.get("path", "")
        client = scope.get("client")
        request_id = id(scope)
        start_time = time.perf_counter()

        body_chunks: list[bytes] = []
        status_code = 0

        async def receive_wrapper() -> Message:
            message = await receive()
            if message["type"] == "http.request":
                body_chunks.append(message.get("body", b""))
            return message

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 0)
            await send(message)

        try:
            await self.app(scope, receive_wrapper, send_wrapper)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"Request failed: {method} {path} - {e}",
                exc_info=True,
                extra={"extra_fields": {
                    "request_id": request_id,
                    "method": method,
                    "path": path,
                    "duration_ms": round(duration_ms, 2),
                }}
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000

        if body_chunks and logger.isEnabledFor(logging.DEBUG):
            body = b"".join(body_chunks)
            if body:
                logger.debug(
                    f"Request body: {_sanitize_body(body)}",
                    extra={"extra_fields": {"request_id": request_id}}
                )

        if status_code < 400:
            level = logging.INFO
        elif status_code < 500:
            level = logging.WARNING
        else:
            level = logging.ERROR

        logger.log(
            level,
            f"{method} {path} - {status_code} ({duration_ms:.2f}ms)",
            extra={"extra_fields": {
                "request_id": request_id,
                "method": method,
                "path": path,
                "status_code": status_code,
                "duration_ms": round(duration_ms, 2),
                "client": client[0] if client else None,
            }}
        )
