import os
import logging
from starlette.routing import Route
from starlette.requests import Request
from starlette.middleware import Middleware
from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.responses import PlainTextResponse, Response

from clusterweb import settings
from clusterweb.web.middleware import ServedByMiddleware
from clusterweb.web.compute import InvalidCountError, accumulate, clamp_count, parse_count

log = logging.getLogger("asgi_server")


async def greeting_handler(request: Request) -> Response:
    """Returns the fixed greeting."""
    return PlainTextResponse(settings.GREETING)


# Runs on the event loop; the summation blocks this worker until it completes.
async def count_handler(request: Request) -> Response:
    """Sums 0..n (n clamped) and reports it with the serving worker's PID."""
    raw = request.path_params["n"]
    try:
        n = parse_count(raw)
    except InvalidCountError as e:
        log.debug(f"Rejected count parameter {raw!r}")
        raise HTTPException(status_code=400, detail=str(e))

    n = clamp_count(n)
    log.debug(f"Accumulating 0..{n}")
    total = accumulate(n)
    return PlainTextResponse(f"Final count is {total} {os.getpid()}")


# --- Application Instance Creation ---
routes = [
    Route("/", endpoint=greeting_handler, methods=["GET"]),
    Route("/api/{n}", endpoint=count_handler, methods=["GET"]),
]

middleware = [
    Middleware(ServedByMiddleware),
]


def create_app() -> Starlette:
    """Builds the ASGI application served by every worker."""
    return Starlette(debug=False, routes=routes, middleware=middleware)


# The main application object loaded by each worker
app = create_app()
