"""
Startup sequence: config, database, router, then the blocking server run.

Every step fails fast by raising StartupError; terminating the process is left
to the entry point so the sequence can run inside tests.
"""

from __future__ import annotations

import logging
from typing import Callable

from ginius import db as database
from ginius import router, settings as config
from ginius.db import Database
from ginius.router import Server
from ginius.settings import Settings


log = logging.getLogger("uvicorn.error")

DEFAULT_HOST = "127.0.0.1"


class StartupError(RuntimeError):
    def __init__(self, stage: str, cause: BaseException) -> None:
        super().__init__(f"{stage} error: {cause}")
        self.stage = stage
        self.cause = cause


def resolve_address(settings: Settings) -> str:
    host = settings.get("server.host") or DEFAULT_HOST
    return f"{host}:{settings.get('server.port')}"


def start(
    *,
    load_config: Callable[[], Settings] = config.setup,
    setup_database: Callable[[Settings], Database] = database.setup,
    setup_router: Callable[[Database, Settings], Server] = router.setup,
    on_config: Callable[[Settings], None] | None = None,
) -> None:
    """
    Run the service until it stops.

    ``on_config`` is called with the loaded settings before the database is
    touched (the entry point uses it to apply the configured log level).
    Returns normally after a clean shutdown.
    """
    try:
        settings = load_config()
    except Exception as e:  # noqa: BLE001
        raise StartupError("config.setup()", e) from e
    if on_config is not None:
        on_config(settings)

    try:
        db = setup_database(settings)
    except Exception as e:  # noqa: BLE001
        raise StartupError("database.setup()", e) from e

    try:
        server = setup_router(db, settings)
    except Exception as e:  # noqa: BLE001
        raise StartupError("router.setup()", e) from e

    address = resolve_address(settings)
    log.info("Server is starting at %s", address)
    print(f"Server is starting at {address} Check logs for details.", flush=True)

    try:
        server.run(address)
    except Exception as e:  # noqa: BLE001
        raise StartupError("server.run()", e) from e
    log.info("Server at %s stopped", address)
