"""Command line entry point: search a mailbox and print matches as JSON."""

import asyncio
import re
import sys
from datetime import datetime, timedelta
from typing import NoReturn, TextIO

import click
import jinja2
import typer
from pydantic import SecretStr, TypeAdapter
from typer.core import TyperCommand
from typing_extensions import Annotated

from .client import MailboxClient
from .config import STDIN_PASSWORD, ImapConfig, LogConfig, PollConfig
from .errors import MailboxError
from .logging import setup_logging
from .models import Message
from .query import parse_criterion
from .retry import utcnow

EXIT_ERROR = 1
EXIT_NOT_FOUND = 2
EXIT_TEMPLATE_ERROR = 3

_DURATION_RE = re.compile(r"(?:\d+(?:\.\d+)?\s*[a-zA-Z]*\s*)+")
_DURATION_TOKEN_RE = re.compile(r"(\d+(?:\.\d+)?)\s*([a-zA-Z]*)")

_MINUTE = 60
_HOUR = 60 * _MINUTE
_DAY = 24 * _HOUR
_MONTH = 2_630_016  # 30.44 days
_YEAR = 31_557_600  # 365.25 days

# Case-sensitive: "m" is minutes, "M" is months.
_UNIT_SECONDS: dict[str, float] = {
    "": 1,
    "nsec": 1e-9,
    "ns": 1e-9,
    "usec": 1e-6,
    "us": 1e-6,
    "millis": 1e-3,
    "msec": 1e-3,
    "ms": 1e-3,
    "seconds": 1,
    "second": 1,
    "secs": 1,
    "sec": 1,
    "s": 1,
    "minutes": _MINUTE,
    "minute": _MINUTE,
    "mins": _MINUTE,
    "min": _MINUTE,
    "m": _MINUTE,
    "hours": _HOUR,
    "hour": _HOUR,
    "hrs": _HOUR,
    "hr": _HOUR,
    "h": _HOUR,
    "days": _DAY,
    "day": _DAY,
    "d": _DAY,
    "weeks": 7 * _DAY,
    "week": 7 * _DAY,
    "w": 7 * _DAY,
    "months": _MONTH,
    "month": _MONTH,
    "M": _MONTH,
    "years": _YEAR,
    "year": _YEAR,
    "y": _YEAR,
}

_TIMEDELTA = TypeAdapter(timedelta)
_DATETIME = TypeAdapter(datetime)
_MESSAGES = TypeAdapter(list[Message])

_TEMPLATES = jinja2.Environment(autoescape=False)


class _FindCommand(TyperCommand):
    """Usage errors exit with EXIT_ERROR; exit 2 is reserved for "no messages found"."""

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as exc:
            exc.exit_code = EXIT_ERROR
            raise


app = typer.Typer(
    name="mailbox-query",
    help="IMAP query client",
    add_completion=False,
)


def parse_deadline(value: str, now: datetime) -> datetime:
    """Turn a ``--wait`` value into an absolute deadline.

    Accepts a duration from *now* (``30``, ``45s``, ``5m``, ``5minutes``,
    ``1h 30m``, ``2d``, ``1week``, ``3M``, or ISO 8601 such as ``PT5M``)
    or an absolute timestamp (``2024-05-01T12:00:00Z``; naive timestamps
    are local time).
    """
    text = value.strip()
    duration = _parse_duration(text)
    if duration is None:
        try:
            duration = _TIMEDELTA.validate_python(text)
        except ValueError:
            duration = None
    if duration is not None:
        return now + duration

    try:
        deadline = _DATETIME.validate_python(text)
    except ValueError:
        raise ValueError(f"invalid wait `{value}`: expected a duration or a timestamp") from None
    if deadline.tzinfo is None:
        deadline = deadline.astimezone()
    return deadline


def _parse_duration(text: str) -> timedelta | None:
    if not text or not _DURATION_RE.fullmatch(text):
        return None
    seconds = 0.0
    for amount, unit in _DURATION_TOKEN_RE.findall(text):
        if unit not in _UNIT_SECONDS:
            return None
        seconds += float(amount) * _UNIT_SECONDS[unit]
    return timedelta(seconds=seconds)


def read_password(stream: TextIO) -> str:
    """Prompt on a terminal, otherwise read the first line piped on *stream*."""
    if stream.isatty():
        return typer.prompt("Password", hide_input=True)
    return stream.readline().rstrip("\r\n")


def render_template(template: jinja2.Template, messages: list[Message]) -> str:
    """Render *template* with ``messages`` bound to the JSON form of the results."""
    return template.render(messages=_MESSAGES.dump_python(messages, by_alias=True, mode="json"))


def _fail(message: str, code: int = EXIT_ERROR) -> NoReturn:
    typer.echo(message, err=True)
    raise typer.Exit(code=code)


@app.command(cls=_FindCommand)
def find(
    query: Annotated[
        list[str],
        typer.Argument(
            help="key:value query pairs used to search and find messages. "
            "examples from:foo@bar.com subject:hello",
            show_default=False,
        ),
    ],
    username: Annotated[
        str | None, typer.Option("--username", "-u", help="Username to authenticate as")
    ] = None,
    password: Annotated[
        str | None,
        typer.Option(
            "--password",
            "-p",
            help="Password to authenticate with ('-' reads it from stdin)",
        ),
    ] = None,
    domain: Annotated[
        str | None, typer.Option("--domain", "-d", help="IMAP server domain")
    ] = None,
    port: Annotated[int | None, typer.Option("--port", "-P", help="IMAP server port")] = None,
    mailbox: Annotated[
        str | None, typer.Option("--box", "-b", help="IMAP mailbox name")
    ] = None,
    wait: Annotated[
        str | None,
        typer.Option(
            "--wait",
            "-w",
            help="Time client will wait until a message is found (duration or timestamp)",
        ),
    ] = None,
    template: Annotated[
        str | None,
        typer.Option(
            "--template",
            "-t",
            help="Jinja2 template rendered with `messages` instead of printing JSON",
        ),
    ] = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable debug logging")
    ] = False,
    log_json: Annotated[
        bool, typer.Option("--log-json", help="Emit JSON log lines on stderr")
    ] = False,
):
    """Search an IMAP mailbox and print matching messages as JSON."""
    log_config = LogConfig()
    setup_logging(
        json=log_json or log_config.json_lines,
        level="DEBUG" if verbose else log_config.level,
    )

    compiled = None
    if template is not None:
        try:
            compiled = _TEMPLATES.from_string(template)
        except jinja2.TemplateError as exc:
            _fail(f"template error: {exc}", EXIT_TEMPLATE_ERROR)

    overrides = {
        "host": domain,
        "port": port,
        "username": username,
        "password": password,
        "mailbox": mailbox,
    }
    try:
        criteria = [parse_criterion(item) for item in query]
        deadline = parse_deadline(wait, utcnow()) if wait else None
        config = ImapConfig(**{k: v for k, v in overrides.items() if v is not None})
    except ValueError as exc:
        _fail(str(exc))

    if config.password.get_secret_value() == STDIN_PASSWORD:
        config = config.model_copy(update={"password": SecretStr(read_password(sys.stdin))})

    client = MailboxClient(config, PollConfig())
    try:
        messages = asyncio.run(client.find(config.mailbox, criteria, deadline))
    except MailboxError as exc:
        _fail(str(exc))

    if not messages:
        typer.echo("no messages found", err=True)
        raise typer.Exit(code=EXIT_NOT_FOUND)

    if compiled is None:
        typer.echo(_MESSAGES.dump_json(messages, by_alias=True, indent=2).decode())
        return
    try:
        output = render_template(compiled, messages)
    except jinja2.TemplateError as exc:
        _fail(f"template error: {exc}", EXIT_TEMPLATE_ERROR)
    typer.echo(output)


def main() -> None:
    """Entry point for the CLI."""
    app()
