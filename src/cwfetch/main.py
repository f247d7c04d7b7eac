"""
Command-line entry point.

This module sets up logging, resolves settings and options, and invokes
the retrieval pipeline.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import click
import structlog
from pydantic import ValidationError

from . import __version__
from .config import Settings, get_settings
from .core.client import create_logs_client
from .core.exceptions import CwFetchException
from .core.pipeline import run_get
from .models.request import GetOptions

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(log_level: str = "WARNING") -> None:
    """Configure structured logging for the application."""
    # Logs go to stderr so they never mix with events on stdout
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper()),
    )

    # Silence the verbose AWS SDK loggers
    for name in ("botocore", "boto3", "urllib3"):
        logging.getLogger(name).setLevel(logging.WARNING)

    # Configure structlog
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def format_error(exc: BaseException) -> str:
    """Render an error and its cause chain on one line."""
    text = f"error: {exc}"
    cause = exc.__cause__
    while cause is not None:
        text += f": cause='{cause}'"
        cause = cause.__cause__
    return text


def handle_error(exc: CwFetchException) -> None:
    """Report a failed run on stderr."""
    logger = structlog.get_logger(__name__)
    logger.debug(
        "Run failed",
        error=str(exc),
        error_code=exc.error_code,
        details=exc.details,
    )
    click.echo(format_error(exc), err=True)


def parse_display_time(text: Optional[str], utc_offset_hours: int) -> Optional[datetime]:
    """Parse `YYYY-MM-DD HH:MM:SS` given in the display offset into UTC."""
    if text is None:
        return None
    try:
        naive = datetime.strptime(text, TIME_FORMAT)
    except ValueError as e:
        raise click.BadParameter(f"expected '{TIME_FORMAT}', got {text!r}") from e
    local = naive.replace(tzinfo=timezone(timedelta(hours=utc_offset_hours)))
    return local.astimezone(timezone.utc)


@click.group()
@click.option("-p", "--profile", help="AWS credentials profile")
@click.option("-r", "--region", help="AWS region")
@click.option("--role-arn", help="Role ARN to assume")
@click.option("--mfa-serial", help="The serial number of the MFA device")
@click.option("--log-level", help="Log level (DEBUG, INFO, WARNING, ...)")
@click.version_option(__version__, prog_name="cwfetch")
@click.pass_context
def cli(
    ctx: click.Context,
    profile: Optional[str],
    region: Optional[str],
    role_arn: Optional[str],
    mfa_serial: Optional[str],
    log_level: Optional[str],
) -> None:
    """Fetch events from CloudWatch Logs."""
    settings = get_settings()

    overrides = {
        "profile": profile,
        "region": region,
        "role_arn": role_arn,
        "mfa_serial": mfa_serial,
    }
    aws = settings.aws.model_copy(update={k: v for k, v in overrides.items() if v is not None})
    settings = settings.model_copy(update={
        "aws": aws,
        "log_level": log_level or settings.log_level,
    })

    configure_logging(settings.log_level)
    ctx.obj = settings


@cli.command("get")
@click.option("-g", "--group", "group_name", required=True, help="The name of the log group")
@click.option(
    "-f", "--filter-pattern", "filter_expression",
    help="The filter pattern to use. If not provided, all the events are matched.",
)
@click.option("-s", "--stream", "stream_name", help="The name of the log stream")
@click.option("--start-time", metavar="TIME", help="The start of the time range (YYYY-MM-DD HH:MM:SS)")
@click.option("--end-time", metavar="TIME", help="The end of the time range (YYYY-MM-DD HH:MM:SS)")
@click.option("--no-prefix", is_flag=True, help="Do not display the time at the beginning of the line.")
@click.pass_obj
def get_command(
    settings: Settings,
    group_name: str,
    filter_expression: Optional[str],
    stream_name: Optional[str],
    start_time: Optional[str],
    end_time: Optional[str],
    no_prefix: bool,
) -> None:
    """Print the log events of a stream or a filtered search."""
    logger = structlog.get_logger(__name__)
    offset = settings.display.utc_offset_hours

    try:
        options = GetOptions(
            group_name=group_name,
            stream_name=stream_name,
            filter_expression=filter_expression,
            start_time=parse_display_time(start_time, offset),
            end_time=parse_display_time(end_time, offset),
            use_prefix=not no_prefix,
        )
    except ValidationError as e:
        raise click.UsageError(str(e)) from e

    logger.info("Parsed get options", group=group_name, stream=stream_name, filter=filter_expression)

    def client_factory() -> Any:
        return create_logs_client(
            settings.aws,
            mfa_token_provider=lambda: click.prompt("MFA token code", err=True),
        )

    try:
        run_get(client_factory, options, settings)
    except CwFetchException as e:
        handle_error(e)
        raise SystemExit(e.exit_code)


def main() -> None:
    """Console script entry point."""
    cli(prog_name="cwfetch")


if __name__ == "__main__":
    main()
