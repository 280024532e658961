# ============================================================================
# File: api/middleware.py
# ============================================================================

import time
import uuid
import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from pipeline.orchestrator import is_sync_running

logger = logging.getLogger(__name__)


class SyncRequestMiddleware(BaseHTTPMiddleware):
    """
    Injects:
    - request_id (an incoming X-Request-ID is kept, so a dashboard can
      follow a manual trigger into the background sync logs)
    - api_latency_ms
    - sync_running, read when the response leaves, so pollers can tell
      an in-flight run from a stale one without another request
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        start_time = time.perf_counter()

        request.state.request_id = request_id

        response: Response = await call_next(request)

        latency_ms = int((time.perf_counter() - start_time) * 1000)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-API-Latency-ms"] = str(latency_ms)
        response.headers["X-Sync-Running"] = "true" if is_sync_running() else "false"

        # triggers change state; reads are only interesting when debugging
        level = logging.INFO if request.method != "GET" else logging.DEBUG
        logger.log(level, f"[{request_id}] {request.method} {request.url.path} {response.status_code} {latency_ms}ms")

        return response
