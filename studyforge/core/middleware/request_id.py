"""Request correlation: one id per request, echoed back and bound to logs."""

import time
from typing import Optional
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware

from studyforge.core.logging import latency_bucket_ms, log_event, request_id_ctx_var

MAX_INCOMING_ID_LENGTH = 128


def resolve_request_id(incoming: Optional[str]) -> str:
    """Reuse a caller-supplied id when it is usable, otherwise mint one."""
    if incoming:
        incoming = incoming.strip()
    if incoming and len(incoming) <= MAX_INCOMING_ID_LENGTH:
        return incoming
    return str(uuid4())


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    Bind ``request_id`` for the duration of the request.

    The id lands on ``request.state``, in the logging context, in error
    bodies (via the exception handlers) and in the response header.
    """

    def __init__(self, app, header_name: str = "x-request-id"):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request, call_next):
        rid = resolve_request_id(request.headers.get(self.header_name))
        request.state.request_id = rid
        token = request_id_ctx_var.set(rid)

        started = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            request_id_ctx_var.reset(token)

        response.headers[self.header_name] = rid
        log_event(
            "info",
            "request.complete",
            request_id=rid,
            event_type="http",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "latency_bucket": latency_bucket_ms((time.perf_counter() - started) * 1000),
            },
        )
        return response
