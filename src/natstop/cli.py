"""Command-line entry point for natstop."""

import sys

import click

from natstop.app import NatsTopApp
from natstop.config import (
    DEFAULT_CONN_LIMIT,
    DEFAULT_HOST,
    DEFAULT_PORT,
    UI_STYLES,
    Config,
)
from natstop.exceptions import InvalidConfiguration, UnreachableServer
from natstop.fetcher import StatsFetcher
from natstop.logger import get_logger, setup_logging
from natstop.models import SortKey
from natstop.monitor import PollLoop, SampleMailbox

NATSTOP_VERSION = "1.0.0"

logger = get_logger(__name__)


def _print_version(ctx: click.Context, param: click.Parameter, value: bool) -> None:
    if not value or ctx.resilient_parsing:
        return
    click.echo(f"natstop v{NATSTOP_VERSION}")
    ctx.exit(0)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-s", "--server", "host", default=DEFAULT_HOST, envvar="NATSTOP_SERVER",
              show_default=True, help="The NATS server host")
@click.option("-m", "--monitor-port", "port", default=str(DEFAULT_PORT), envvar="NATSTOP_MONITOR_PORT",
              show_default=True, help="The NATS server monitoring port")
@click.option("-n", "--conns", "conn_limit", default=str(DEFAULT_CONN_LIMIT), show_default=True,
              help="Maximum number of connections to request")
@click.option("-d", "--delay", "interval", default="1", show_default=True,
              help="Delay between polls in seconds")
@click.option("--sort", default=SortKey.CID.value, show_default=True,
              help=f"Sort connections by one of: {', '.join(SortKey.names())}")
@click.option("--ui", default="simple", show_default=True,
              help=f"UI style, one of: {', '.join(UI_STYLES)}")
@click.option("--log-file", default="natstop.log", envvar="NATSTOP_LOG_FILE", show_default=True,
              help="File to write logs to")
@click.option("--log-level", default="WARNING", envvar="NATSTOP_LOG_LEVEL", show_default=True,
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
              help="Log level")
@click.option("-v", "--version", is_flag=True, expose_value=False, is_eager=True,
              callback=_print_version, help="Show natstop version")
def cli(host, port, conn_limit, interval, sort, ui, log_file, log_level):
    """Top-like monitor for a NATS server."""
    setup_logging(log_level, log_file)

    try:
        config = Config.from_options(
            host=host,
            port=port,
            conn_limit=conn_limit,
            interval=interval,
            sort=sort,
            ui=ui,
        )
    except InvalidConfiguration as e:
        click.echo(f"natstop: {e}", err=True)
        click.echo(f"Sort by options: {', '.join(SortKey.names())}", err=True)
        click.echo(f"UI styles: {', '.join(UI_STYLES)}", err=True)
        sys.exit(2)

    # Smoke test the server once before taking over the terminal
    fetcher = StatsFetcher(config)
    try:
        fetcher.fetch_server_stats()
    except UnreachableServer as e:
        logger.error(f"Server check failed: {e}")
        click.echo(f"ERROR: {e}", err=True)
        sys.exit(1)

    mailbox = SampleMailbox()
    app = NatsTopApp(config, PollLoop(config, mailbox, fetcher), mailbox)
    try:
        app.run()
    finally:
        fetcher.close()

    if app.failure is not None:
        click.echo(f"ERROR: {app.failure}", err=True)
    # return_code is 1 when the app ended on an unhandled exception.
    sys.exit(app.exit_status or app.return_code or 0)


def main() -> None:
    """Entry point for the natstop script."""
    cli()


if __name__ == "__main__":
    main()
