from __future__ import annotations

import logging
import signal
import socket
import threading
from contextlib import asynccontextmanager, contextmanager
from typing import Iterator

import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from uvicorn.protocols.utils import get_path_with_query_string
from uvicorn.server import HANDLED_SIGNALS

from ginius import __version__
from ginius.api import router as api_router
from ginius.db import Database
from ginius.middleware import RequestLoggingMiddleware
from ginius.settings import Settings


log = logging.getLogger("uvicorn.error")


class ServerError(RuntimeError):
    pass


def parse_address(address: str) -> tuple[str, int]:
    """Split ``host:port`` (``[::1]:port`` for IPv6) into its parts."""
    host, sep, port = (address or "").rpartition(":")
    if not sep or not host:
        raise ServerError(f"invalid address {address!r}: expected host:port")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    if not port.isdigit() or not 0 <= int(port) < 65536:
        raise ServerError(f"invalid port in address {address!r}")
    return host, int(port)


def bind_socket(host: str, port: int) -> socket.socket:
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family=family, type=socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
    except OSError:
        sock.close()
        raise
    sock.set_inheritable(True)
    return sock


class _UvicornServer(uvicorn.Server):
    """uvicorn server that treats SIGINT/SIGTERM as a normal stop instead of re-raising them."""

    @contextmanager
    def capture_signals(self) -> Iterator[None]:
        if threading.current_thread() is not threading.main_thread():
            yield
            return
        original_handlers = {sig: signal.signal(sig, self.handle_exit) for sig in HANDLED_SIGNALS}
        try:
            yield
        finally:
            for sig, handler in original_handlers.items():
                signal.signal(sig, handler)


class Server:
    """The HTTP application plus the blocking call that serves it."""

    def __init__(self, app: FastAPI) -> None:
        self.app = app
        self.bound: tuple[str, int] | None = None
        self._uvicorn: uvicorn.Server | None = None

    @property
    def started(self) -> bool:
        return self._uvicorn is not None and self._uvicorn.started

    def stop(self) -> None:
        """Ask a running server to shut down; ``run`` then returns normally."""
        if self._uvicorn is not None:
            self._uvicorn.should_exit = True

    def run(self, address: str) -> None:
        """
        Serve on ``address`` until shutdown.

        Returns normally on a clean shutdown (including SIGINT/SIGTERM); raises
        ServerError when the address is malformed, the socket cannot be bound, or
        uvicorn gives up during startup.
        """
        host, port = parse_address(address)
        try:
            sock = bind_socket(host, port)
        except OSError as e:
            raise ServerError(f"cannot listen on {address}: {e}") from e
        self.bound = sock.getsockname()[:2]

        # log_config=None: logging is configured by the entry point
        config = uvicorn.Config(self.app, log_config=None, lifespan="on")
        server = self._uvicorn = _UvicornServer(config)
        try:
            server.run(sockets=[sock])
        except SystemExit as e:
            # uvicorn exits the process when lifespan startup fails
            raise ServerError(f"server at {address} stopped before it finished starting") from e
        finally:
            sock.close()
        if not server.started:
            raise ServerError(f"server at {address} stopped before it finished starting")


def create_app(db: Database, settings: Settings) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            yield
        finally:
            await db.dispose()

    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        lifespan=lifespan,
    )
    app.state.db = db
    app.state.settings = settings

    if settings.log_requests:
        app.add_middleware(RequestLoggingMiddleware, log_body=settings.log_request_body)

    @app.api_route("/", methods=["GET", "HEAD"], include_in_schema=False)
    async def root_health():
        # Many platforms use HEAD / for health checks.
        return {"status": "ok"}

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = jsonable_encoder(exc.errors())
        log.info("validation_422 %s errors=%s", get_path_with_query_string(request.scope), errors)
        return JSONResponse(status_code=422, content={"detail": errors})

    app.include_router(api_router)
    return app


def setup(db: Database, settings: Settings) -> Server:
    return Server(create_app(db, settings))
