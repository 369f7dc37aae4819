from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from claimdesk.core.request_context import clear_request_context, set_request_context

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def _log_level(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code in (401, 403):
        return logging.WARNING
    return logging.INFO


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """Tag every request with an id and log one line when it completes.

    Organization and user come from the claims the request gate stored on
    `request.state`; requests the gate rejected are logged anonymously.
    """

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        set_request_context(request_id=request_id)

        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            claims = getattr(request.state, "session_claims", None)
            role = getattr(claims, "role", None)
            logger.log(
                _log_level(status_code),
                "request completed",
                extra={
                    "request_id": request_id,
                    "organization_id": getattr(claims, "organization_id", None),
                    "user_id": getattr(claims, "id", None),
                    "user_role": getattr(role, "value", None),
                    "endpoint": request.url.path,
                    "method": request.method,
                    "status_code": status_code,
                    "duration_ms": round((time.perf_counter() - start) * 1000, 2),
                },
            )
            clear_request_context()
