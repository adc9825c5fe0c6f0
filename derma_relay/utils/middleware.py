from fastapi import HTTPException
from starlette.datastructures import Headers
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from derma_relay.utils.logging import get_logger


logger = get_logger("middleware")

BODY_TOO_LARGE_MESSAGE = "Request body too large."


class BodySizeLimitMiddleware:
    """
    Reject request bodies above max_body_bytes with 413.

    A declared Content-Length is checked before the app runs. Bodies without
    one (chunked uploads) are counted as they are received, and reading stops
    with a 413 once the running total passes the limit.
    """

    def __init__(self, app: ASGIApp, max_body_bytes: int) -> None:
        self.app = app
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        content_length = Headers(scope=scope).get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.max_body_bytes:
            logger.warning(f"Rejected {scope.get('path')}: declared body of {content_length} bytes")
            response = JSONResponse(status_code=413, content={"error": BODY_TOO_LARGE_MESSAGE})
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_bytes:
                    logger.warning(f"Rejected {scope.get('path')}: streamed body passed {self.max_body_bytes} bytes")
                    # raised inside body parsing, so the app's HTTPException handler renders it
                    raise HTTPException(status_code=413, detail=BODY_TOO_LARGE_MESSAGE)
            return message

        await self.app(scope, limited_receive, send)
