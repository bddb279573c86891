# ============================================================================
# File: api/middleware.py
# ============================================================================

import time
import uuid
import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
LATENCY_HEADER = "X-API-Latency-ms"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Injects:
    - request_id: taken from the caller's X-Request-ID or generated
    - api_latency_ms

    Tracker deletions are logged with the request id, since they change
    which files the next run reads.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or f"req_{uuid.uuid4().hex[:12]}"
        request.state.request_id = request_id
        started = time.perf_counter()

        response: Response = await call_next(request)

        latency_ms = int((time.perf_counter() - started) * 1000)
        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers[LATENCY_HEADER] = str(latency_ms)

        if request.method == "DELETE" or response.status_code >= 500:
            logger.info(
                f"[{request_id}] {request.method} {request.url.path} "
                f"-> {response.status_code} in {latency_ms} ms"
            )

        return response
