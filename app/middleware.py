"""
Request size guard for upload endpoints.

Requests whose declared Content-Length exceeds the wire limit are refused with
413 before the body is parsed. Bodies without a Content-Length (chunked
uploads) are counted as they stream and cut off with the same 413 once they
pass the limit. The document vault still enforces its own, smaller, per-file
ceiling.
"""
from fastapi import HTTPException
from starlette.datastructures import Headers

from schemas import error_response


class RequestSizeLimitMiddleware:
    def __init__(self, app, max_bytes: int, path_prefix: str = "/api/document/upload"):
        self.app = app
        self.max_bytes = max_bytes
        self.path_prefix = path_prefix

    def _too_large(self):
        return error_response(
            413,
            f"Request body exceeds {self.max_bytes // (1024 * 1024)} MB",
            ["Payload too large"],
        )

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http" or not scope["path"].startswith(self.path_prefix):
            await self.app(scope, receive, send)
            return

        length = Headers(scope=scope).get("content-length")
        try:
            size = int(length) if length is not None else None
        except ValueError:
            size = None
        if size is not None and size > self.max_bytes:
            await self._too_large()(scope, receive, send)
            return

        received = 0
        started = False

        async def counting_receive():
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    raise HTTPException(status_code=413, detail="Payload too large")
            return message

        async def tracking_send(message):
            nonlocal started
            if message["type"] == "http.response.start":
                started = True
            await send(message)

        try:
            await self.app(scope, counting_receive, tracking_send)
        except HTTPException as e:
            # Raised from counting_receive outside the app's own exception handlers
            if e.status_code != 413 or started:
                raise
            await self._too_large()(scope, receive, send)
