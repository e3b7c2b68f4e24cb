"""Request and correlation ids.

Incoming ``x-request-id`` / ``x-correlation-id`` headers are honoured and
missing ids generated. Both are echoed on the response, stored on
``request.state`` and bound into the logging context while the request
is served.
"""

from __future__ import annotations

import uuid

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from reelcritic.observability.logging import request_context

REQUEST_ID_HEADER = "x-request-id"
CORRELATION_ID_HEADER = "x-correlation-id"


class CorrelationMiddleware:
    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        request_id = headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        correlation_id = headers.get(CORRELATION_ID_HEADER) or request_id
        scope.setdefault("state", {}).update(
            request_id=request_id, correlation_id=correlation_id
        )

        async def send_with_ids(message: Message) -> None:
            if message["type"] == "http.response.start":
                response_headers = MutableHeaders(scope=message)
                response_headers[REQUEST_ID_HEADER] = request_id
                response_headers[CORRELATION_ID_HEADER] = correlation_id
            await send(message)

        with request_context(request_id, correlation_id):
            await self.app(scope, receive, send_with_ids)
