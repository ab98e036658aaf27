"""
Where: services/function_web/middleware.py
What: HTTP middleware for invocation IDs and access logging.
Why: Isolate cross-cutting request concerns from app assembly.
"""

import logging
import time

from fastapi import Request

from services.common.core.request_context import clear_invocation, start_invocation

logger = logging.getLogger("function.web")

INVOCATION_ID_HEADER = "X-Invocation-Id"


async def invocation_context_middleware(request: Request, call_next):
    """Assign an invocation ID to the request and write a structured access log."""
    start_time = time.perf_counter()
    invocation_id = start_invocation(
        request.url.path, invocation_id=request.headers.get(INVOCATION_ID_HEADER)
    )

    try:
        response = await call_next(request)
        response.headers[INVOCATION_ID_HEADER] = invocation_id

        process_time_ms = round((time.perf_counter() - start_time) * 1000, 2)
        logger.info(
            f"{request.method} {request.url.path} {response.status_code}",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "latency_ms": process_time_ms,
                "client_ip": request.client.host if request.client else None,
            },
        )
        return response
    finally:
        clear_invocation()
