"""Command-line interface for bookcircle.

Built with Typer for commands and Rich for output.
"""

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from .config import Config
from .errors import BookCircleError
from .logging_setup import setup_logging
from .services import Services, build_services

app = typer.Typer(
    name="bookcircle",
    help="Run and administer a friends' lending library.",
    no_args_is_help=True,
)

console = Console()


# ============================================================================
# Helper Functions
# ============================================================================


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[bold red]Error:[/bold red] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[bold green]Success:[/bold green] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[bold yellow]Warning:[/bold yellow] {message}")


def _load_config() -> Config:
    config = Config.from_env()
    setup_logging(config.log_level)
    for problem in config.validate():
        print_warning(problem)
    return config


def _services(synchronous: bool = True) -> Services:
    """Build services for a one-off command."""
    return build_services(_load_config(), synchronous=synchronous)


STATUS_STYLES = {
    "PENDING": "yellow",
    "APPROVED": "cyan",
    "DELIVERED": "magenta",
    "RETURNED": "green",
    "REJECTED": "red",
    "CANCELLED": "dim",
    "ACTIVE": "green",
}


def _status(value: str) -> str:
    style = STATUS_STYLES.get(value, "white")
    return f"[{style}]{value}[/{style}]"


# ============================================================================
# Commands
# ============================================================================


@app.command("init-db")
def init_db() -> None:
    """Create the database tables."""
    services = _services()
    try:
        print_success(f"Database ready at {services.config.db_path}")
    finally:
        services.close()


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", "-h", help="Interface to bind"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port to listen on"),
    debug: bool = typer.Option(False, "--debug", help="Enable Flask debug mode"),
) -> None:
    """Run the HTTP API."""
    from .api import run_server

    services = _services(synchronous=False)
    if not services.config.api_tokens:
        print_warning("BOOKCIRCLE_API_TOKENS is empty; every request will be rejected")
    try:
        run_server(
            services,
            host=host or services.config.api_host,
            port=port or services.config.api_port,
            debug=debug,
        )
    finally:
        services.close()


@app.command()
def books(
    exclude_owner: Optional[str] = typer.Option(
        None, "--exclude-owner", help="Hide books owned by this user ID"
    ),
) -> None:
    """List the catalog."""
    services = _services()
    try:
        results = services.catalog.list_books(exclude_owner_id=exclude_owner)
    finally:
        services.close()

    if not results:
        console.print("[dim]No books in the catalog[/dim]")
        return

    table = Table(title="Books", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim", max_width=8)
    table.add_column("Title", style="cyan", max_width=40)
    table.add_column("Author", style="green", max_width=25)
    table.add_column("Owner")
    table.add_column("Holder")
    table.add_column("Available", justify="center")

    for book in results:
        table.add_row(
            book.id[:8],
            book.title,
            book.author,
            book.owner.name if book.owner else book.owner_id,
            book.current_holder.name if book.current_holder else book.current_holder_id,
            "[green]yes[/green]" if book.is_available else "[red]no[/red]",
        )

    console.print(table)


@app.command()
def requests(
    user: str = typer.Option(..., "--user", "-u", help="User ID"),
    owner: bool = typer.Option(
        False, "--owner", "-o", help="Show requests for the user's books instead"
    ),
) -> None:
    """List lending requests made by, or made to, a user."""
    services = _services()
    try:
        if owner:
            results = services.lending.list_for_my_books(user)
        else:
            results = services.lending.list_mine(user)
    finally:
        services.close()

    if not results:
        console.print("[dim]No requests found[/dim]")
        return

    title = "Requests for my books" if owner else "My requests"
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim", max_width=8)
    table.add_column("Book", style="cyan", max_width=30)
    table.add_column("Requester")
    table.add_column("Status")
    table.add_column("Created")

    for req in results:
        table.add_row(
            req.id[:8],
            req.book.title if req.book else req.book_id,
            req.requester.name if req.requester else req.requester_id,
            _status(req.status.value),
            req.created_at.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)


@app.command()
def users() -> None:
    """List all members."""
    services = _services()
    try:
        results = services.users.list_all()
    finally:
        services.close()

    if not results:
        console.print("[dim]No members yet[/dim]")
        return

    table = Table(title="Members", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Email")
    table.add_column("Role")
    table.add_column("Status")

    for u in results:
        table.add_row(u.id, u.name or "-", u.email or "-", u.role.value, _status(u.status.value))

    console.print(table)


@app.command()
def activate(
    user_id: str = typer.Argument(..., help="User ID to admit"),
    admin: bool = typer.Option(False, "--admin", help="Also grant the ADMIN role"),
) -> None:
    """Approve a member's access."""
    services = _services()
    try:
        user = services.users.admit(user_id, make_admin=admin)
    except BookCircleError as e:
        print_error(e.message)
        raise typer.Exit(1)
    finally:
        services.close()

    print_success(f"{user.name or user.id} is now {user.status.value} ({user.role.value})")


@app.command()
def version() -> None:
    """Show version information."""
    from . import __version__

    console.print(f"bookcircle version {__version__}")


# ============================================================================
# Main Entry Point
# ============================================================================


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
