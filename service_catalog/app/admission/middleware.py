"""
HTTP middleware binding requests to the admission controller.
"""

from typing import Iterable, Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from shared.errors import ServiceUnavailableError
from shared.logging import get_logger

from .controller import AdmissionController

DEFAULT_EXEMPT_PATHS = (
    "/health",
    "/health/detailed",
    "/health/ready",
    "/metrics",
    "/docs",
    "/redoc",
    "/openapi.json",
)


class AdmissionMiddleware(BaseHTTPMiddleware):
    """Admits or queues each request and always releases its slot."""

    def __init__(
        self,
        app,
        controller: AdmissionController,
        exempt_paths: Optional[Iterable[str]] = None,
    ):
        super().__init__(app)
        self.controller = controller
        self.exempt_paths = frozenset(exempt_paths if exempt_paths is not None else DEFAULT_EXEMPT_PATHS)
        self.logger = get_logger("catalog.admission.middleware")

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.exempt_paths:
            return await call_next(request)

        try:
            ticket = await self.controller.acquire()
        except ServiceUnavailableError as exc:
            self.logger.warning(
                "Request not admitted",
                method=request.method,
                path=request.url.path,
                reason=exc.message,
            )
            return JSONResponse(status_code=exc.status_code, content=exc.to_response().model_dump())

        try:
            response = await call_next(request)
        finally:
            self.controller.release()

        for header, value in ticket.headers().items():
            response.headers[header] = value
        return response
