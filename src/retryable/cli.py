"""CLI interface for the retryable HTTP client"""

import logging
from pathlib import Path
from typing import Dict, Optional, Tuple

import click
import requests

from retryable.domain.config import ClientPolicy
from retryable.errors import ClientError, RetryableError
from retryable.infrastructure.config.config_manager import ConfigManager, ConfigurationError
from retryable.infrastructure.http_client import RetryableClient, new_client

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration"""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
    logging.getLogger().setLevel(level)
    # urllib3 logs every connection at DEBUG
    logging.getLogger("urllib3").setLevel(logging.DEBUG if verbose else logging.WARNING)


def _die(message: str, verbose: bool = False, exc: Optional[Exception] = None) -> None:
    """Exit with a user-friendly error message"""
    if exc is not None:
        logger.error(message, exc_info=verbose)
    else:
        logger.error(message)
    raise click.ClickException(message)


def parse_form_fields(fields: Tuple[str, ...]) -> Dict[str, list]:
    """Parse ``key=value`` pairs into form data

    Args:
        fields: Pairs given on the command line; keys may repeat

    Returns:
        Mapping of key to list of values

    Raises:
        click.BadParameter: If a pair has no ``=``
    """
    data: Dict[str, list] = {}
    for field in fields:
        key, sep, value = field.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got {field!r}", param_hint="--field")
        data.setdefault(key, []).append(value)
    return data


def _load_policy(
    ctx: click.Context,
    retry_count: Optional[int],
    retry_timeout: Optional[str],
) -> ClientPolicy:
    """Load the policy from config and apply CLI overrides"""
    verbose = ctx.obj.get("verbose", False)
    try:
        policy = ConfigManager(config_path=ctx.obj.get("config_path")).get_policy()
    except ConfigurationError as e:
        _die(str(e), verbose=verbose, exc=e)

    overrides: Dict[str, object] = {}
    if retry_count is not None:
        overrides["retry_count"] = retry_count
    if retry_timeout is not None:
        overrides["retry_timeout"] = retry_timeout
    if not overrides:
        return policy
    try:
        return ClientPolicy(**{**policy.model_dump(), **overrides})
    except ValueError as e:
        _die(f"Invalid option: {e}", verbose=verbose, exc=e)


def _create_client(ctx: click.Context, retry_count: Optional[int], retry_timeout: Optional[str]) -> RetryableClient:
    policy = _load_policy(ctx, retry_count, retry_timeout)
    logger.debug(
        f"Using policy: retry_count={policy.retry_count}, retry_timeout={policy.retry_timeout}s"
    )
    return new_client(policy)


def _output_response(response: requests.Response, show_body: bool = True) -> None:
    """Output response status to stderr and body to stdout"""
    click.echo(f"HTTP {response.status_code} {response.reason or ''}".rstrip(), err=True)
    if show_body and response.content:
        click.echo(response.text, nl=not response.text.endswith("\n"))


def _run(ctx: click.Context, client: RetryableClient, send) -> None:
    """Send a request and report the outcome"""
    verbose = ctx.obj.get("verbose", False)
    with client:
        try:
            response = send(client)
        except ClientError as e:
            if e.response is not None:
                _output_response(e.response)
            kind = "retries exhausted" if isinstance(e, RetryableError) else "non-retryable error"
            _die(f"Request failed ({kind}): {e}", verbose=verbose, exc=e)
        else:
            _output_response(response, show_body=ctx.command.name != "head")


retry_options = [
    click.option("--retry-count", type=click.IntRange(min=0), help="Maximum retries. Overrides config."),
    click.option(
        "--retry-timeout",
        type=str,
        help="Total time budget, e.g. 30s or 5m (0 = unbounded). Overrides config.",
    ),
]


def with_retry_options(func):
    for option in reversed(retry_options):
        func = option(func)
    return func


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to .retryable.yml config file",
)
@click.pass_context
def cli(ctx, verbose: bool, config: Path):
    """Retryable - HTTP requests with delay, jitter and exponential backoff"""
    ctx.ensure_object(dict)
    setup_logging(verbose)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose


@cli.command()
@click.argument("url")
@with_retry_options
@click.pass_context
def get(ctx, url: str, retry_count: Optional[int], retry_timeout: Optional[str]):
    """Issue a GET to URL."""
    client = _create_client(ctx, retry_count, retry_timeout)
    _run(ctx, client, lambda c: c.get(url))


@cli.command()
@click.argument("url")
@with_retry_options
@click.pass_context
def head(ctx, url: str, retry_count: Optional[int], retry_timeout: Optional[str]):
    """Issue a HEAD to URL."""
    client = _create_client(ctx, retry_count, retry_timeout)
    _run(ctx, client, lambda c: c.head(url))


@cli.command()
@click.argument("url")
@click.option("--content-type", default="text/plain", show_default=True, help="Request content type")
@click.option("--data", "-d", type=str, help="Request body")
@click.option(
    "--data-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Read the request body from a file",
)
@with_retry_options
@click.pass_context
def post(
    ctx,
    url: str,
    content_type: str,
    data: Optional[str],
    data_file: Optional[Path],
    retry_count: Optional[int],
    retry_timeout: Optional[str],
):
    """Issue a POST to URL."""
    if data is not None and data_file is not None:
        raise click.UsageError("--data and --data-file are mutually exclusive")

    client = _create_client(ctx, retry_count, retry_timeout)
    if data_file is not None:
        with open(data_file, "rb") as f:
            _run(ctx, client, lambda c: c.post(url, content_type, f))
    else:
        _run(ctx, client, lambda c: c.post(url, content_type, data))


@cli.command(name="post-form")
@click.argument("url")
@click.option("--field", "-f", "fields", multiple=True, help="Form field as key=value (repeatable)")
@with_retry_options
@click.pass_context
def post_form(
    ctx,
    url: str,
    fields: Tuple[str, ...],
    retry_count: Optional[int],
    retry_timeout: Optional[str],
):
    """Issue a URL-encoded form POST to URL."""
    form = parse_form_fields(fields) if fields else None
    client = _create_client(ctx, retry_count, retry_timeout)
    _run(ctx, client, lambda c: c.post_form(url, form))


def main():
    """Main entry point"""
    cli(obj={})


if __name__ == "__main__":
    main()
