"""Main entry point for the expensecli application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import logging
from datetime import date as date_type
from typing import Any, Coroutine, Dict, List, Optional

import click
import typer
from typing_extensions import Annotated

# --- Core Layer ---
from expensecli.core.command_handler import CommandHandler
from expensecli.core.reconciler import Reconciler
from expensecli.core.reports import SORT_BY_DATE, SORT_KEYS
from expensecli.core.services.expense_service import ExpenseService

# --- Domain Layer ---
from expensecli.domain.interfaces.query_client import RemoteQueryClient

# --- Infrastructure Layer ---
# Config
from expensecli.infrastructure.config.settings import (
    BACKEND_APPSYNC, load_configuration, get_config, get_backend, get_appsync_endpoint,
    get_appsync_api_key, get_request_timeout, get_default_user_id, get_cache_ttl_seconds,
    get_max_retries,
)
# UI
from expensecli.infrastructure.cli.display import ConsoleDisplay
# Cache
from expensecli.infrastructure.cache.memory_cache import InMemoryCacheStore
# GraphQL transports
from expensecli.infrastructure.graphql.appsync_client import AppSyncClient
from expensecli.infrastructure.graphql.memory_client import InMemoryQueryClient
# Resilience
from expensecli.infrastructure.resilience.list_fetcher import ResilientListFetcher
# Monitoring
from expensecli.infrastructure.monitoring.logger_setup import setup_logging, resolve_log_level

logger = logging.getLogger(__name__)

# --- Dependency Injection Container (Manual) ---

def create_query_client() -> RemoteQueryClient:
    """Builds the configured GraphQL transport."""
    backend = get_backend()
    if backend == BACKEND_APPSYNC:
        return AppSyncClient(
            endpoint=get_appsync_endpoint(),
            api_key=get_appsync_api_key(),
            timeout=get_request_timeout(),
        )
    logger.info("Using in-memory expense backend.")
    return InMemoryQueryClient()


def create_dependencies() -> Dict[str, Any]:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root.
    """
    # 1. Load Configuration First
    load_configuration()
    setup_logging(
        log_level=resolve_log_level(get_config('logging.level', 'WARNING')),
        log_format=get_config('logging.format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
        log_file=get_config('logging.file'),
    )
    logger.info("Initializing application dependencies...")

    dependencies: Dict[str, Any] = {}

    # 2. Instantiate Infrastructure Adapters & Services
    dependencies['ui'] = ConsoleDisplay()
    dependencies['cache'] = InMemoryCacheStore()
    dependencies['query_client'] = create_query_client()

    # 3. Instantiate Resilience Services
    dependencies['list_fetcher'] = ResilientListFetcher(
        client=dependencies['query_client'],
        cache=dependencies['cache'],
        reconciler=Reconciler(),
        max_retries=get_max_retries(),
        cache_ttl_s=get_cache_ttl_seconds(),
        default_user_id=get_default_user_id(),
    )

    # 4. Instantiate Core Services (injecting dependencies)
    dependencies['expense_service'] = ExpenseService(
        client=dependencies['query_client'],
        fetcher=dependencies['list_fetcher'],
    )

    # 5. Instantiate Command Handler
    dependencies['command_handler'] = CommandHandler(
        expense_service=dependencies['expense_service'],
        ui=dependencies['ui'],
    )
    logger.info("All dependencies initialized successfully.")
    return dependencies

# --- Get Wired-up Dependencies ---
# Built on first use so importing the module has no side effects
_dependencies: Optional[Dict[str, Any]] = None


def get_dependencies() -> Dict[str, Any]:
    global _dependencies
    if _dependencies is None:
        _dependencies = create_dependencies()
    return _dependencies


def reset_dependencies() -> None:
    """Drops the wired-up dependencies (used by tests)."""
    global _dependencies
    _dependencies = None

# --- Typer App Definition ---
app = typer.Typer(
    name="expensecli",
    help="expensecli: list and manage expenses stored behind a GraphQL API, with retries and caching.",
    add_completion=False,
)

# --- Helper for Running Async Commands ---
def run_async(coro: Coroutine[Any, Any, Any]) -> Any:
    """Runs an async use case from a sync Typer command, closing the transport afterwards."""
    client: RemoteQueryClient = get_dependencies()['query_client']

    async def _run() -> Any:
        try:
            return await coro
        finally:
            await client.aclose()

    return asyncio.run(_run())


def _handler() -> CommandHandler:
    return get_dependencies()['command_handler']


def _exit_on_failure(ok: bool) -> None:
    if not ok:
        raise typer.Exit(code=1)

# --- CLI Commands ---

UserOption = Annotated[
    Optional[str],
    typer.Option("--user", "-u", help="User whose expenses to use. Uses the configured default if not set.")
]


@app.command(name="list")
def list_command(
    user: UserOption = None,
    search: Annotated[Optional[str], typer.Option("--search", "-s", help="Only expenses whose name contains this text.")] = None,
    category: Annotated[Optional[str], typer.Option("--category", "-c", help="Only expenses in this category ('all' for every category).")] = None,
    sort: Annotated[str, typer.Option("--sort", help=f"Sort order: {', '.join(SORT_KEYS)}.")] = SORT_BY_DATE,
):
    """List expenses for a user, optionally filtered and sorted."""
    run_async(_handler().handle_list(user, search=search, category=category, sort_by=sort))


@app.command()
def summary(user: UserOption = None):
    """Show total spending, a category breakdown and the last six months."""
    run_async(_handler().handle_summary(user))


@app.command()
def show(expense_id: Annotated[str, typer.Argument(help="Id of the expense to show.")]):
    """Show a single expense."""
    _exit_on_failure(run_async(_handler().handle_show(expense_id)))


@app.command()
def add(
    name: Annotated[str, typer.Option("--name", "-n", help="Name of the expense.")],
    amount: Annotated[str, typer.Option("--amount", "-a", help="Amount (non-negative number).")],
    category: Annotated[str, typer.Option("--category", "-c", help="Category, e.g. Food.")],
    date: Annotated[Optional[str], typer.Option("--date", "-d", help="ISO date; defaults to today.")] = None,
    description: Annotated[str, typer.Option("--description", help="Optional free text.")] = "",
    user: UserOption = None,
):
    """Add a new expense."""
    effective_date = date or date_type.today().isoformat()
    _exit_on_failure(run_async(_handler().handle_add(
        name=name, amount=amount, category=category, date=effective_date,
        user_id=user, description=description,
    )))


@app.command()
def update(
    expense_id: Annotated[str, typer.Argument(help="Id of the expense to update.")],
    name: Annotated[Optional[str], typer.Option("--name", "-n")] = None,
    amount: Annotated[Optional[str], typer.Option("--amount", "-a")] = None,
    category: Annotated[Optional[str], typer.Option("--category", "-c")] = None,
    date: Annotated[Optional[str], typer.Option("--date", "-d")] = None,
    description: Annotated[Optional[str], typer.Option("--description")] = None,
):
    """Update fields of an existing expense."""
    _exit_on_failure(run_async(_handler().handle_update(
        expense_id, name=name, amount=amount, category=category, date=date, description=description,
    )))


@app.command()
def delete(expense_id: Annotated[str, typer.Argument(help="Id of the expense to delete.")]):
    """Delete an expense."""
    _exit_on_failure(run_async(_handler().handle_delete(expense_id)))


@app.command(name="clear-cache")
def clear_cache_command():
    """Clears the expense listing cache."""
    _handler().handle_clear_cache()

# --- Interactive Shell ---

def run_shell_command(args: List[str]) -> None:
    """Runs one shell line as a CLI command in this process, keeping the shell alive on errors."""
    command = typer.main.get_command(app)
    try:
        command.main(args=args, prog_name="expensecli", standalone_mode=False)
    except click.exceptions.Abort:
        _handler().ui.display_info("Command aborted.")
    except click.ClickException as e:
        logger.debug(f"Shell command {args} rejected: {e.format_message()}")
        _handler().ui.display_error(e.format_message())


@app.callback(invoke_without_command=True)
def main_callback(ctx: typer.Context):
    """Starts the interactive shell if no command is given."""
    if ctx.invoked_subcommand is None:
        logger.info("No command invoked, starting interactive shell.")
        _handler().start_shell(run_shell_command)

# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
