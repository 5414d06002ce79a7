"""Command-line client: authenticate a user against the remote server."""

import argparse
import logging
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Prompt

from remoteauth.authenticator import RemoteAuthenticator
from remoteauth.config import RemoteAuthConfig
from remoteauth.storage.db import InMemoryUserDirectory, LocalUser, MySQLUserDirectory
from remoteauth.verdict import Authenticated, NotFound

console = Console()


def configure_logging(verbose: bool = False):
    """Route library logging through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Authenticate against a remote identity server")
    parser.add_argument("--username", help="Username (prompted if omitted)")
    parser.add_argument(
        "--user",
        action="append",
        default=[],
        metavar="NAME",
        help="Local user known to this installation (repeatable)",
    )
    parser.add_argument("--mysql", action="store_true", help="Resolve local users from the MySQL users table")
    parser.add_argument("--env-file", help="Path to a .env file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log cryptographic details")
    return parser


def render_verdict(verdict) -> bool:
    """Print the verdict. Returns True when authenticated."""
    if isinstance(verdict, Authenticated):
        console.print(f"[green]✓[/green] Authenticated as [bold]{verdict.username}[/bold]")
        return True
    if isinstance(verdict, NotFound):
        console.print("[yellow]✗ User not found by remote server[/yellow]")
        return False

    text = f"[red]✗ {verdict.reason.value}[/red]"
    if verdict.code is not None:
        text += f" (code {verdict.code}: {verdict.message})"
    elif verdict.detail:
        text += f": {verdict.detail}"
    console.print(text)
    return False


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    config = RemoteAuthConfig.from_env(args.env_file)
    console.print(Panel.fit(
        "[bold cyan]Remote Authentication[/bold cyan]\n"
        f"Server: {config.endpoint_url if config.server else '(not configured)'}",
        style="cyan"
    ))

    if args.mysql:
        resolver = MySQLUserDirectory()
    else:
        resolver = InMemoryUserDirectory(LocalUser(username=name) for name in args.user)

    username = args.username or Prompt.ask("Username")
    password = Prompt.ask("Password", password=True)

    authenticator = RemoteAuthenticator(config, resolver)
    verdict = authenticator.attempt(username, password)
    return 0 if render_verdict(verdict) else 1


if __name__ == "__main__":
    sys.exit(main())
