import os
from starlette.requests import Request
from starlette.responses import Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint


class ServedByMiddleware(BaseHTTPMiddleware):
    """Tags every response with the PID of the worker that produced it."""
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        response.headers["X-Served-By"] = str(os.getpid())
        return response
