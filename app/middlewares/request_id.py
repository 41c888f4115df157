from __future__ import annotations

import logging
import time
from contextvars import ContextVar
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)
# Log correlation only. Handlers receive the principal through their dependencies.
principal_ctx_var: ContextVar[int | None] = ContextVar("principal_id", default=None)
logger = logging.getLogger("app.request")


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag every request with a correlation id and log its outcome."""

    def __init__(self, app, header_name: str = "X-Request-ID") -> None:  # type: ignore[override]
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(self.header_name) or str(uuid4())
        token = request_id_ctx_var.set(request_id)
        request.state.request_id = request_id
        request.state.principal = None
        start = time.perf_counter()
        try:
            response = await call_next(request)
            duration_ms = (time.perf_counter() - start) * 1000
            response.headers[self.header_name] = request_id
            response.headers.setdefault("X-Response-Time", f"{duration_ms:.2f}ms")
            extra_data = {
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "duration_ms": round(duration_ms, 2),
            }
            # The handler runs in another context, so read back what the gate stored.
            principal = getattr(request.state, "principal", None)
            if principal is not None:
                extra_data["principal"] = principal.account_id
            logger.info("request.completed", extra={"extra_data": extra_data})
            return response
        finally:
            request_id_ctx_var.reset(token)
