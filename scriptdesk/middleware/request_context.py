"""Request context middleware: request id, timing, request log and rate limiting.

All four concerns are handled in one pass.  The rate limiter is the pure
function ``check_rate_limit`` so it can be tested without a running app.
Limits are read from the Settings stored on ``app.state`` by ``create_app``.
"""

import logging
import threading
import time
import uuid
from typing import Dict, Optional, Tuple

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from ..core.logging_config import request_id_var

logger = logging.getLogger(__name__)

# {client_key: (available_tokens, last_refill_timestamp)}
Bucket = Dict[str, Tuple[float, float]]

# Sweep stale entries every N calls so rotating client IPs cannot grow the bucket forever.
_EVICT_EVERY = 100
_EVICT_AGE = 120.0


def check_rate_limit(
    bucket: Bucket,
    key: str,
    max_per_minute: int,
    now: Optional[float] = None,
) -> Tuple[bool, float]:
    """Check whether a request from *key* is allowed under the token bucket.

    Args:
        bucket: Mutable dict holding per-key state. Modified in place.
        key: Client identifier (IP address).
        max_per_minute: Sustained rate cap. ``0`` or less disables limiting.
        now: Current timestamp (injectable for testing). Defaults to ``time.monotonic()``.

    Returns:
        ``(allowed, retry_after)``: *retry_after* is 0.0 when allowed, otherwise
        the number of seconds until the next token becomes available.
    """
    if max_per_minute <= 0:
        return True, 0.0

    if now is None:
        now = time.monotonic()

    refill_rate = max_per_minute / 60.0  # tokens per second

    if key in bucket:
        tokens, last_refill = bucket[key]
        tokens = min(max_per_minute, tokens + (now - last_refill) * refill_rate)
    else:
        tokens = float(max_per_minute)

    if tokens >= 1.0:
        bucket[key] = (tokens - 1.0, now)
        return True, 0.0

    bucket[key] = (tokens, now)
    return False, (1.0 - tokens) / refill_rate


def evict_stale(bucket: Bucket, now: float, max_age: float = _EVICT_AGE) -> int:
    """Drop bucket entries untouched for *max_age* seconds. Returns the count."""
    cutoff = now - max_age
    stale = [k for k, (_, ts) in bucket.items() if ts < cutoff]
    for k in stale:
        del bucket[k]
    return len(stale)


# Health probes and docs are never throttled.
_EXEMPT_PATHS = frozenset({"/", "/health", "/docs", "/redoc", "/openapi.json"})


def _client_key(request: Request) -> str:
    """Rate-limit key: first ``X-Forwarded-For`` hop, else the direct client IP."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Single middleware handling request-id, timing, logging, and rate limiting.

    Bucket state lives on the middleware instance, so each app gets its own.
    """

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self._buckets: Bucket = {}
        self._lock = threading.Lock()
        self._calls = 0

    def _allow(self, key: str, max_per_minute: int) -> Tuple[bool, float]:
        with self._lock:
            self._calls += 1
            now = time.monotonic()
            if self._calls % _EVICT_EVERY == 0:
                evict_stale(self._buckets, now)
            return check_rate_limit(self._buckets, key, max_per_minute, now)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        # --- Request ID ---
        rid = request.headers.get("x-request-id") or uuid.uuid4().hex[:16]
        request_id_var.set(rid)

        # --- Rate limiting ---
        if request.url.path not in _EXEMPT_PATHS:
            key = _client_key(request)
            allowed, retry_after = self._allow(
                key, request.app.state.settings.rate_limit_per_minute
            )
            if not allowed:
                logger.warning(
                    "Rate limit exceeded",
                    extra={"client": key, "path": request.url.path, "retry_after": round(retry_after, 1)},
                )
                return JSONResponse(
                    status_code=429,
                    content={
                        "error": "RATE_LIMITED",
                        "message": "Too many requests",
                        "details": {"retry_after": round(retry_after, 1)},
                    },
                    headers={
                        "Retry-After": str(int(retry_after) + 1),
                        "X-Request-ID": rid,
                    },
                )

        # --- Timing ---
        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000, 1)

        response.headers["X-Request-ID"] = rid
        response.headers["X-Response-Time"] = f"{duration_ms}ms"

        logger.info(
            f"{request.method} {request.url.path} {response.status_code}",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )

        return response
