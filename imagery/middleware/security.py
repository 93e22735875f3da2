from fastapi import HTTPException
from starlette.responses import JSONResponse
import logging

logger = logging.getLogger(__name__)

PAYLOAD_TOO_LARGE_MESSAGE = "Image is too large. Please upload a file smaller than 4MB."


class PayloadTooLarge(HTTPException):
    def __init__(self):
        super().__init__(status_code=413, detail=PAYLOAD_TOO_LARGE_MESSAGE)


class RequestSizeLimitMiddleware:
    """Rejects oversized bodies with a JSON 413.

    Checks the declared Content-Length up front and, for chunked uploads,
    counts the bytes as the handler reads them.
    """

    def __init__(self, app, max_body_bytes: int):
        self.app = app
        self.max_body_bytes = max_body_bytes
        self.max_content_type_length = 256

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            return await self.app(scope, receive, send)

        headers = dict(scope.get("headers") or [])

        # Oversized Content-Type headers are a ReDoS vector for the multipart parser
        if len(headers.get(b"content-type", b"")) > self.max_content_type_length:
            response = JSONResponse({"error": "Content-Type header too long"}, status_code=400)
            return await response(scope, receive, send)

        content_length = headers.get(b"content-length")
        if content_length is not None:
            try:
                declared = int(content_length)
            except ValueError:
                response = JSONResponse({"error": "Invalid Content-Length header"}, status_code=400)
                return await response(scope, receive, send)
            if declared > self.max_body_bytes:
                logger.warning(f"Rejected {scope.get('path')} body of {declared} bytes")
                response = JSONResponse({"error": PAYLOAD_TOO_LARGE_MESSAGE}, status_code=413)
                return await response(scope, receive, send)

        received = 0

        async def limited_receive():
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_bytes:
                    logger.warning(f"Rejected streamed {scope.get('path')} body over {self.max_body_bytes} bytes")
                    raise PayloadTooLarge()
            return message

        return await self.app(scope, limited_receive, send)
