"""``restwire`` console script: issue one request through the client pipeline.

Example::

    restwire POST https://api.example.com/users -H 'Accept: application/json' \\
        -d '{"name": "alice"}' --token "$API_TOKEN" --debug

The status line goes to stderr and the body to stdout (JSON re-indented, and
syntax highlighted when stdout is a terminal). Failures exit with the code of
the raised :class:`~restwire.exceptions.RestwireError`.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.syntax import Syntax

from restwire import __version__
from restwire.client import Client
from restwire.config import resolve_settings
from restwire.content import indent_json, is_json_type
from restwire.exceptions import ConfigurationError, RestwireError
from restwire.exit_codes import EXIT_SUCCESS
from restwire.response import Response

app = typer.Typer(
    name="restwire",
    help="Send an HTTP request through the restwire pipeline.",
    no_args_is_help=True,
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"restwire {__version__}")
        raise typer.Exit()


def _split_pair(item: str, separator: str, what: str) -> tuple[str, str]:
    key, sep, value = item.partition(separator)
    if not sep or not key.strip():
        raise ConfigurationError(f"Invalid {what} '{item}', expected KEY{separator}VALUE")
    return key.strip(), value.strip() if separator == ":" else value


def _parse_body(body: str) -> Any:  # noqa: ANN401
    """Parse *body* as JSON if possible, returning the raw string on failure."""
    try:
        return json.loads(body)
    except (json.JSONDecodeError, TypeError):
        return body


def _print_body(response: Response) -> None:
    text = response.string()
    if not text:
        return
    if is_json_type(response.content_type):
        text = indent_json(response.body) or text
        if sys.stdout.isatty():
            Console().print(Syntax(text, "json", theme="monokai", word_wrap=True))
            return
    typer.echo(text)


@app.command()
def request(
    method: str = typer.Argument(..., help="HTTP verb (GET, POST, PUT, DELETE, PATCH, HEAD, OPTIONS)."),
    url: str = typer.Argument(..., help="Absolute URL, or a path joined onto the configured base URL."),
    header: list[str] = typer.Option([], "--header", "-H", help="Header 'Name: value'."),
    query: list[str] = typer.Option([], "--query", "-q", help="Query parameter key=value."),
    data: Optional[str] = typer.Option(None, "--data", "-d", help="Body; JSON text is sent as JSON."),
    form: list[str] = typer.Option([], "--form", "-F", help="Form field key=value."),
    file: list[str] = typer.Option([], "--file", help="File upload field=path."),
    token: Optional[str] = typer.Option(None, "--token", help="Bearer token."),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Basic auth 'user:password'."),
    raw: bool = typer.Option(False, "--raw", help="Raw mode: follow redirects, no unmarshal."),
    debug: bool = typer.Option(False, "--debug", help="Log request and response to stderr."),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Timeout in seconds."),
    max_redirects: Optional[int] = typer.Option(None, "--max-redirects", help="Redirect hops to allow."),
    config: Optional[Path] = typer.Option(None, "--config", help="Settings file (default ./restwire.json)."),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit."
    ),
) -> None:
    """Send METHOD URL and print the reply."""
    err = Console(stderr=True, highlight=False, soft_wrap=True)
    try:
        settings = resolve_settings(
            path=config,
            timeout=timeout,
            debug=True if debug else None,
            mode="raw" if raw else None,
            max_redirects=max_redirects,
        )
        with Client.from_settings(settings) as client:
            req = client.new_request()
            for item in header:
                req.set_header(*_split_pair(item, ":", "header"))
            for item in query:
                req.set_query_param(*_split_pair(item, "=", "query parameter"))
            for item in form:
                req.set_form_data(dict([_split_pair(item, "=", "form field")]))
            for item in file:
                req.set_file(*_split_pair(item, "=", "file"))
            if data is not None:
                req.set_body(_parse_body(data))
            if token:
                req.set_auth_token(token)
            if user:
                username, _, password = user.partition(":")
                req.set_basic_auth(username, password)

            response = req.execute(method, url)
    except RestwireError as exc:
        if exc.response is not None:
            err.print(f"HTTP {exc.response.status}", markup=False)
        err.print(f"Error: {exc}", markup=False)
        raise typer.Exit(code=exc.exit_code)

    err.print(f"HTTP {response.status}", markup=False)
    _print_body(response)
    raise typer.Exit(code=EXIT_SUCCESS)


def main() -> None:
    """Entry point for the ``restwire`` console script."""
    app()
