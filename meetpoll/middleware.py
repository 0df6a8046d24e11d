import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


class HTTPLogMiddleware(BaseHTTPMiddleware):
    """Debug-level request log with timing, enabled by REQUEST_DEBUG=1.

    Adds an ``X-Response-Time-Ms`` header so polling clients can spot slow reads.
    """

    def __init__(self, app, logger_name: str = "meetpoll.http"):
        super().__init__(app)
        self._logger = logging.getLogger(logger_name)

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        method = request.method
        path = request.url.path
        client = request.client.host if request.client else "-"
        self._logger.debug("http.request start method=%s path=%s client=%s", method, path, client)
        try:
            response: Response = await call_next(request)
        except Exception as e:
            self._logger.warning(
                "http.request error method=%s path=%s dur_ms=%d err=%r",
                method, path, self._elapsed_ms(start), e,
            )
            raise
        dur_ms = self._elapsed_ms(start)
        response.headers["X-Response-Time-Ms"] = str(dur_ms)
        self._logger.debug(
            "http.request end method=%s path=%s status=%s dur_ms=%d",
            method, path, response.status_code, dur_ms,
        )
        return response

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.perf_counter() - start) * 1000)
