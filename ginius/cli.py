"""ginius command-line entry point.

Parses flag overrides, configures logging and runs the startup sequence. This
is the only place that turns a startup failure into a process exit.

Examples
    $ ginius
    $ ginius --host 0.0.0.0 --port 8080
    $ ginius --env-file prod.env --log-level DEBUG
"""

from __future__ import annotations

from functools import partial

import click

from ginius import __version__, bootstrap, logger
from ginius import settings as config
from ginius.settings import Settings


def _apply_log_level(settings: Settings) -> None:
    logger.configure(settings.log_level)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, prog_name="ginius")
@click.option("--host", default=None, help="Bind host (overrides SERVER_HOST, default 127.0.0.1).")
@click.option("--port", default=None, help="Bind port (overrides SERVER_PORT).")
@click.option(
    "--env-file",
    default=config.DEFAULT_ENV_FILE,
    show_default=True,
    type=click.Path(dir_okay=False),
    help="dotenv file to read settings from; missing files are ignored.",
)
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"], case_sensitive=False),
    help="Log level (overrides LOG_LEVEL).",
)
def main(host: str | None, port: str | None, env_file: str, log_level: str | None) -> None:
    """Start the ginius HTTP server."""
    logger.configure(log_level.upper() if log_level else "INFO")
    overrides = {"SERVER_HOST": host, "SERVER_PORT": port, "LOG_LEVEL": log_level}
    try:
        bootstrap.start(
            load_config=partial(config.setup, env_file=env_file, overrides=overrides),
            on_config=_apply_log_level,
        )
    except bootstrap.StartupError as e:
        logger.fatal("%s", e)
