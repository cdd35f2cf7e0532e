import logging

from fastapi import HTTPException, status
from starlette.datastructures import Headers
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger("cloudbox.requests")

# room for multipart boundaries and part headers around the file content
MULTIPART_OVERHEAD = 64 * 1024


class RequestLogMiddleware:
    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] == "http":
            client = scope.get("client")
            client_ip = client[0] if client else "-"
            logger.info(f"Request from IP: {client_ip} - {scope['method']} {scope['path']}")
        await self.app(scope, receive, send)


class UploadSizeLimitMiddleware:
    """Stops reading an upload body once it cannot fit under the size cap.

    Declared Content-Length is checked before any byte is read; bodies without
    one are counted as they arrive.  The exact per-file cap is enforced again
    by the blob store while the content is written.
    """

    def __init__(self, app: ASGIApp, max_file_size: int, path: str = "/api/files/upload"):
        self.app = app
        self.max_body_size = max_file_size + MULTIPART_OVERHEAD
        self.path = path

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http" or scope["method"] != "POST" or scope["path"].rstrip("/") != self.path:
            await self.app(scope, receive, send)
            return

        content_length = Headers(scope=scope).get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.max_body_size:
            logger.info(f"Rejected upload with Content-Length {content_length}")
            response = JSONResponse(
                {"message": "File too large"},
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
            )
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_size:
                    raise HTTPException(
                        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                        detail="File too large"
                    )
            return message

        await self.app(scope, limited_receive, send)
