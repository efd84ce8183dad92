from fastapi import HTTPException
from fastapi.responses import ORJSONResponse
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

REQUEST_TOO_LARGE = "Request body too large"


class BodySizeLimitMiddleware:
    """
    Reject request bodies larger than `max_body_bytes` with 413.

    - A declared Content-Length above the limit is answered before the app runs.
    - Bodies without a usable Content-Length (chunked) are counted while the
      route reads them; crossing the limit raises HTTPException(413), which the
      app's error handler renders as {"error": ...}.
    """

    def __init__(self, app: ASGIApp, max_body_bytes: int) -> None:
        self.app = app
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        declared = Headers(scope=scope).get("content-length")
        if declared is not None and declared.isdigit() and int(declared) > self.max_body_bytes:
            response = ORJSONResponse({"error": REQUEST_TOO_LARGE}, status_code=413)
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_bytes:
                    raise HTTPException(status_code=413, detail=REQUEST_TOO_LARGE)
            return message

        await self.app(scope, limited_receive, send)
