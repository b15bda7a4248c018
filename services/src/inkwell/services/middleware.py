"""Custom ASGI middleware components used by the review service."""

from __future__ import annotations

import json

from fastapi import status
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .http import TRACE_ID_HEADER, build_error_payload, ensure_trace_id

HTTP_STATUS_PAYLOAD_TOO_LARGE = getattr(status, "HTTP_413_CONTENT_TOO_LARGE", 413)


class BodySizeLimitMiddleware:
    """Reject requests whose bodies exceed a configured byte threshold."""

    def __init__(self, app: ASGIApp, *, limit: int) -> None:
        if limit <= 0:
            raise ValueError("limit must be greater than zero.")
        self.app = app
        self._limit = limit

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        for key, value in scope["headers"]:
            if key.lower() == b"content-length":
                try:
                    declared = int(value.decode("latin-1"))
                except ValueError:
                    break
                if declared > self._limit:
                    await self._reject(send)
                    return
                break

        consumed = 0

        async def limited_receive() -> Message:
            nonlocal consumed
            message = await receive()
            if message["type"] == "http.request":
                consumed += len(message.get("body", b""))
                if consumed > self._limit:
                    await self._reject(send)
                    return {"type": "http.disconnect"}
            return message

        await self.app(scope, limited_receive, send)

    async def _reject(self, send: Send) -> None:
        trace_id = ensure_trace_id()
        payload = build_error_payload(
            code="PAYLOAD_TOO_LARGE",
            message="Request payload exceeds allowed size.",
            details={"limit_bytes": self._limit},
            trace_id=trace_id,
        )
        body = json.dumps(payload.model_dump(), ensure_ascii=False).encode("utf-8")
        await send(
            {
                "type": "http.response.start",
                "status": HTTP_STATUS_PAYLOAD_TOO_LARGE,
                "headers": [
                    (b"content-type", b"application/json"),
                    (b"content-length", str(len(body)).encode("latin-1")),
                    (TRACE_ID_HEADER.encode("latin-1"), trace_id.encode("latin-1")),
                ],
            }
        )
        await send({"type": "http.response.body", "body": body, "more_body": False})


__all__ = ["BodySizeLimitMiddleware"]
