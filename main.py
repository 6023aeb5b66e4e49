import asyncio
import sys

import click

from config import Settings, env_file_from_env, load_env_file
from dispatcher import dispatch
from endpoints import load_endpoints
from errors import PokerError
from logging_config import configure_logging, get_logger

logger = get_logger("endpoint_poker")

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("endpoints_file", required=False, type=click.Path(dir_okay=False))
@click.option("--env-file", type=click.Path(dir_okay=False), default=None,
              help="Env file with header secrets. Defaults to ./.env when present.")
@click.option("--timeout", type=float, default=None,
              help="Per-request timeout in seconds, 0 disables it. Defaults to the HTTP client's own.")
@click.option("--log-level", type=click.Choice(LOG_LEVELS, case_sensitive=False), default=None)
def cli(endpoints_file, env_file, timeout, log_level):
    """Poke every endpoint in ENDPOINTS_FILE (default: endpoints.json) once, concurrently."""
    try:
        load_env_file(env_file or env_file_from_env())
        settings = Settings.from_env().override(
            endpoints_file=endpoints_file,
            timeout=timeout,
            log_level=log_level,
        )
    except PokerError as e:
        configure_logging(log_level or "INFO")
        logger.error("startup failed error=%s", e)
        sys.exit(1)

    configure_logging(settings.log_level)

    try:
        endpoints = load_endpoints(settings.endpoints_file)
    except PokerError as e:
        logger.error("error getting endpoints error=%s", e)
        sys.exit(1)

    # Failed pokes are logged by the dispatcher and don't change the exit code.
    asyncio.run(dispatch(endpoints, timeout=settings.timeout))


if __name__ == "__main__":
    cli()
