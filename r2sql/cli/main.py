"""
r2sql CLI - Interactive terminal client for R2 SQL

Usage:
    r2sql [shell] [options]       # Launch interactive TUI (default)
    r2sql query "<sql>" [options] # Run one query and print the result
    r2sql namespaces              # List catalog namespaces
    r2sql tables [namespace]      # List the tables of a namespace
    r2sql describe <table>        # Show a table's columns
    r2sql login | logout | status # Manage stored credentials
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import click
import httpx
from dotenv import load_dotenv
from rich.console import Console, RenderableType

from r2sql import __version__
from r2sql.cli.chart import auto_chart
from r2sql.cli.formatters import get_formatter
from r2sql.clients.catalog_client import IcebergCatalogClient
from r2sql.clients.query_client import R2SQLClient
from r2sql.core.config import (
    DEFAULT_HISTORY_FILE,
    DEFAULT_LOG_FILE,
    SETTINGS,
    CredentialStore,
    SessionConfig,
    ShellOptions,
    load_config,
    resolve_settings,
)
from r2sql.core.exceptions import CatalogError, QueryError, R2SQLError
from r2sql.core.logging import configure_logging
from r2sql.core.render import render_table_schema
from r2sql.core.types import QueryResult, TableMetadata

VERIFY_URL = "https://api.cloudflare.com/client/v4/user/tokens/verify"


def credential_store() -> CredentialStore:
    return CredentialStore()


def catalog_client(config: SessionConfig) -> IcebergCatalogClient:
    return IcebergCatalogClient(config)


def echo_rich(renderable: RenderableType, no_color: bool = False) -> None:
    """Print a Rich renderable through click so output stays capturable."""
    no_color = no_color or not sys.stdout.isatty()
    console = Console(force_terminal=not no_color, no_color=no_color)
    with console.capture() as capture:
        console.print(renderable)
    click.echo(capture.get(), nl=False)


def mask(value: str) -> str:
    """Hide all but the last four characters of a secret."""
    if len(value) <= 4:
        return "*" * len(value)
    return "*" * (len(value) - 4) + value[-4:]


def verify_token(token: str, transport: Optional[httpx.BaseTransport] = None) -> Tuple[bool, str]:
    """
    Check an API token against the Cloudflare token verification endpoint

    Returns:
        ``(valid, message)``
    """
    try:
        with httpx.Client(transport=transport, timeout=30.0) as client:
            response = client.get(VERIFY_URL, headers={"Authorization": f"Bearer {token}"})
        body = response.json()
    except (httpx.HTTPError, ValueError) as e:
        return False, f"Token verification failed: {e}"

    if response.is_success and isinstance(body, dict) and body.get("success"):
        status = (body.get("result") or {}).get("status", "active")
        return True, f"Token is {status}"

    errors = body.get("errors") if isinstance(body, dict) else None
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        return False, f"Token verification failed: {errors[0].get('message', 'unknown error')}"
    return False, f"Token verification failed: HTTP {response.status_code}"


def connection_options(func):
    """Account, bucket and token options shared by commands that talk to R2."""
    func = click.option("--token", "api_token", default=None, help="Cloudflare API token (env: CLOUDFLARE_API_TOKEN)")(func)
    func = click.option("--bucket", "bucket_name", default=None, help="R2 bucket name (env: R2_BUCKET_NAME)")(func)
    func = click.option("--account-id", default=None, help="Cloudflare account ID (env: CLOUDFLARE_ACCOUNT_ID)")(func)
    return func


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="r2sql")
@click.pass_context
def cli(ctx: click.Context):
    """
    r2sql - Interactive terminal client for R2 SQL

    Browse your R2 Data Catalog and query Iceberg tables from the terminal.
    Runs the interactive shell when no command is given.
    """
    if ctx.invoked_subcommand is None:
        ctx.invoke(shell)


@cli.command()
@connection_options
@click.option("--execute", "-e", "execute", default=None, help="Query to run once the shell starts")
@click.option(
    "--history/--no-history",
    default=False,
    help=f"Append executed queries to {DEFAULT_HISTORY_FILE}",
)
@click.option("--debug", is_flag=True, help=f"Write debug logs to {DEFAULT_LOG_FILE}")
def shell(
    account_id: Optional[str] = None,
    bucket_name: Optional[str] = None,
    api_token: Optional[str] = None,
    execute: Optional[str] = None,
    history: bool = False,
    debug: bool = False,
):
    """
    Launch the interactive shell

    Examples:

        \b
        # Use stored credentials or environment variables
        $ r2sql shell

        \b
        # Run a query as soon as the shell opens
        $ r2sql shell -e "SELECT * FROM default.events LIMIT 10"
    """
    options = ShellOptions(execute_on_start=execute, history_enabled=history, debug=debug)
    configure_logging(debug=options.debug, log_path=options.log_path)
    try:
        config = load_config(account_id, bucket_name, api_token)
    except R2SQLError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    from r2sql.cli.shell import launch_shell

    launch_shell(config, options)


async def run_query(config: SessionConfig, sql: str) -> QueryResult:
    async with R2SQLClient(config) as client:
        result = await client.execute(sql)
    if not result.ok:
        raise QueryError(result.error)
    return result


@cli.command()
@click.argument("sql", type=str)
@connection_options
@click.option(
    "--format",
    "-f",
    "fmt",
    type=click.Choice(["table", "json", "csv", "markdown"], case_sensitive=False),
    default="table",
    help="Output format (default: table)",
)
@click.option("--stats", is_flag=True, help="Print query statistics to stderr")
@click.option("--chart", is_flag=True, help="Chart the rows when they are a time series or label/value pairs")
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.option("--debug", is_flag=True, help=f"Write debug logs to {DEFAULT_LOG_FILE}")
def query(
    sql: str,
    account_id: Optional[str],
    bucket_name: Optional[str],
    api_token: Optional[str],
    fmt: str,
    stats: bool,
    chart: bool,
    no_color: bool,
    debug: bool,
):
    """
    Execute a single SQL query

    Examples:

        \b
        $ r2sql query "SELECT * FROM default.events LIMIT 5"

        \b
        # JSON output for scripting
        $ r2sql query "SELECT status, count FROM logs.requests" -f json

        \b
        # Bar chart of a label/value result
        $ r2sql query "SELECT status, count FROM logs.requests" --chart
    """
    fmt = fmt.lower()
    configure_logging(debug=debug, log_path=Path(DEFAULT_LOG_FILE))
    try:
        config = load_config(account_id, bucket_name, api_token)
        result = asyncio.run(run_query(config, sql))
    except R2SQLError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        if debug:
            raise
        sys.exit(1)

    formatter = get_formatter(fmt)
    click.echo(formatter.format(result, no_color=no_color or not sys.stdout.isatty()))

    if chart:
        rendered = auto_chart(result.rows, width=Console().width)
        if rendered is None:
            click.echo("No chart: expected a time column with a numeric column, or label/value pairs", err=True)
        else:
            echo_rich(rendered, no_color=no_color)

    if stats and result.stats is not None:
        for key, value in result.stats.to_dict().items():
            click.echo(f"{key}: {'n/a' if value is None else value}", err=True)


async def list_catalog(config: SessionConfig, namespace: Optional[str] = None) -> Tuple[Optional[str], List[str]]:
    """
    List namespaces, or the tables of one namespace

    Returns:
        ``(None, namespaces)`` when no namespace is given, else ``(namespace, tables)``
    """
    async with catalog_client(config) as catalog:
        if namespace is None:
            return None, await catalog.list_namespaces()
        return namespace, await catalog.list_tables(namespace)


async def find_table(config: SessionConfig, name: str) -> Tuple[str, Optional[TableMetadata]]:
    """
    Fetch metadata for ``namespace.table``, or for a bare table name

    A bare name is looked up in each namespace in catalog order.

    Raises:
        CatalogError: If no namespace holds a table with that name
    """
    async with catalog_client(config) as catalog:
        if "." in name:
            namespace, table = name.rsplit(".", 1)
        else:
            namespace, table = None, name
            for candidate in await catalog.list_namespaces():
                if table in await catalog.list_tables(candidate):
                    namespace = candidate
                    break
            if namespace is None:
                raise CatalogError(f"Table {name} not found in any namespace")
        return f"{namespace}.{table}", await catalog.get_table_metadata(namespace, table)


def run_catalog(work, debug: bool):
    try:
        return asyncio.run(work)
    except R2SQLError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        if debug:
            raise
        sys.exit(1)


@cli.command()
@connection_options
@click.option("--debug", is_flag=True, help=f"Write debug logs to {DEFAULT_LOG_FILE}")
def namespaces(account_id: Optional[str], bucket_name: Optional[str], api_token: Optional[str], debug: bool):
    """List the catalog's namespaces"""
    configure_logging(debug=debug, log_path=Path(DEFAULT_LOG_FILE))
    try:
        config = load_config(account_id, bucket_name, api_token)
    except R2SQLError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    _, found = run_catalog(list_catalog(config), debug)
    if not found:
        click.echo("No namespaces found")
        return
    for namespace in found:
        click.echo(namespace)


@cli.command()
@click.argument("namespace", required=False)
@connection_options
@click.option("--debug", is_flag=True, help=f"Write debug logs to {DEFAULT_LOG_FILE}")
def tables(
    namespace: Optional[str],
    account_id: Optional[str],
    bucket_name: Optional[str],
    api_token: Optional[str],
    debug: bool,
):
    """
    List the tables of a namespace

    Without NAMESPACE the catalog's first namespace is used.

    Examples:

        \b
        $ r2sql tables logs
    """
    configure_logging(debug=debug, log_path=Path(DEFAULT_LOG_FILE))
    try:
        config = load_config(account_id, bucket_name, api_token)
    except R2SQLError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if namespace is None:
        _, found = run_catalog(list_catalog(config), debug)
        if not found:
            click.echo("Error: No namespaces found; pass a namespace explicitly", err=True)
            sys.exit(1)
        namespace = found[0]

    _, names = run_catalog(list_catalog(config, namespace), debug)
    if not names:
        click.echo(f"No tables found in namespace: {namespace}")
        return
    click.echo(f"Tables in {namespace}:")
    for name in names:
        click.echo(f"  {name}")


@cli.command()
@click.argument("table")
@connection_options
@click.option("--json", "as_json", is_flag=True, help="Print the full Iceberg table metadata as JSON")
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.option("--debug", is_flag=True, help=f"Write debug logs to {DEFAULT_LOG_FILE}")
def describe(
    table: str,
    account_id: Optional[str],
    bucket_name: Optional[str],
    api_token: Optional[str],
    as_json: bool,
    no_color: bool,
    debug: bool,
):
    """
    Show a table's columns

    TABLE is ``namespace.table`` or a bare table name.

    Examples:

        \b
        $ r2sql describe default.events
    """
    configure_logging(debug=debug, log_path=Path(DEFAULT_LOG_FILE))
    try:
        config = load_config(account_id, bucket_name, api_token)
    except R2SQLError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    qualified, metadata = run_catalog(find_table(config, table), debug)
    if metadata is None:
        click.echo(f"Error: Table {qualified} not found", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(metadata.full_metadata, indent=2, default=str))
    else:
        echo_rich(render_table_schema(metadata).text, no_color=no_color)


@cli.command()
@click.option("--account-id", prompt="Cloudflare account ID", help="Cloudflare account ID")
@click.option("--bucket", "bucket_name", prompt="R2 bucket name", help="R2 bucket name")
@click.option("--token", "api_token", prompt="API token", hide_input=True, help="Cloudflare API token")
@click.option("--verify/--no-verify", default=True, help="Verify the token before saving")
def login(account_id: str, bucket_name: str, api_token: str, verify: bool):
    """Store credentials for later sessions"""
    if verify:
        valid, message = verify_token(api_token)
        if not valid:
            click.echo(f"Error: {message}", err=True)
            sys.exit(1)
        click.echo(message)

    store = credential_store()
    store.save(account_id, bucket_name, api_token)
    click.echo(f"Credentials saved to {store.path}")


@cli.command()
def logout():
    """Remove stored credentials"""
    if credential_store().clear():
        click.echo("Stored credentials removed")
    else:
        click.echo("No stored credentials found")


@cli.command()
@connection_options
def status(account_id: Optional[str], bucket_name: Optional[str], api_token: Optional[str]):
    """Show where each setting is resolved from"""
    load_dotenv(override=False)
    resolved = resolve_settings(
        {"account_id": account_id, "bucket_name": bucket_name, "api_token": api_token},
        store=credential_store(),
    )

    complete = True
    for name, (value, source) in resolved.items():
        label = name.replace("_", " ")
        if value is None:
            complete = False
            click.echo(f"{label}: not set ({SETTINGS[name][2]} or {SETTINGS[name][1]})")
            continue
        shown = mask(value) if name == "api_token" else value
        click.echo(f"{label}: {shown} [{source}]")

    if not complete:
        sys.exit(1)


if __name__ == "__main__":
    cli()
