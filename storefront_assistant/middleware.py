import json
import threading
import time
from collections import deque
from typing import Deque, Dict, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from .log import get_logger


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log one JSON line per request: client ip, method, path, status and latency."""

    def __init__(self, app, logger=None):
        super().__init__(app)
        self.logger = logger or get_logger("http")

    async def dispatch(self, request: Request, call_next):
        start = time.time()
        status = 500
        try:
            response: Response = await call_next(request)
            status = response.status_code
            return response
        finally:
            self.logger.info(json.dumps({
                "ts": int(time.time() * 1000),
                "ip": (request.client.host if request.client else None) or "",
                "method": request.method,
                "path": request.url.path,
                "status": status,
                "duration_ms": int((time.time() - start) * 1000),
            }))


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Sliding-window request limit per client ip."""

    def __init__(self, app, max_requests: int = 60, window_seconds: int = 60, clock=None):
        super().__init__(app)
        self.max_requests = int(max_requests)
        self.window = int(window_seconds)
        self.clock = clock or time.time
        self.buckets: Dict[str, Deque[float]] = {}
        self.lock = threading.Lock()

    def _allow(self, key: str, now: Optional[float] = None) -> bool:
        now = self.clock() if now is None else now
        cutoff = now - self.window
        with self.lock:
            bucket = self.buckets.setdefault(key, deque())
            while bucket and bucket[0] < cutoff:
                bucket.popleft()
            if len(bucket) >= self.max_requests:
                return False
            bucket.append(now)
            return True

    async def dispatch(self, request: Request, call_next):
        ip = (request.client.host if request.client else "") or ""
        if not self._allow(ip):
            return JSONResponse({"error": "rate_limited"}, status_code=429)
        return await call_next(request)
