from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Optional

from rich.console import Console

from .core.config import Settings, get_settings
from .core.db import create_engine, create_schema, verify_connection

console = Console()


def main(argv: Optional[list[str]] = None) -> None:
    """The main entry point for the CLI.

    Args:
        argv: The command-line arguments.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if getattr(args, "check", False):
        _run_environment_check(get_settings())
        return

    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    args.func(args)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="cliphub server")
    parser.add_argument("--check", action="store_true", help="Validate database connectivity and provider credentials")

    subparsers = parser.add_subparsers(dest="command")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP server")
    serve_parser.add_argument("--host", default=None, help="Override CLIPHUB_LISTEN_HOST")
    serve_parser.add_argument("--port", type=int, default=None, help="Override CLIPHUB_LISTEN_PORT")
    serve_parser.set_defaults(func=_cmd_serve)

    init_parser = subparsers.add_parser("init-db", help="Create the clips schema if it is missing")
    init_parser.set_defaults(func=_cmd_init_db)
    return parser


def _cmd_serve(args: argparse.Namespace) -> None:
    """Run the API under uvicorn.

    Args:
        args: The command-line arguments.
    """
    import uvicorn

    settings = get_settings()
    host = args.host or settings.listen_host
    port = args.port or settings.listen_port
    console.print(f"[bold]cliphub[/] listening on {host}:{port}")
    uvicorn.run("cliphub.main:create_app", factory=True, host=host, port=port, log_config=None)


def _cmd_init_db(args: argparse.Namespace) -> None:
    settings = get_settings()
    try:
        asyncio.run(_init_db(settings))
    except Exception as exc:
        console.print(f"[red]Unable to initialise database:[/] {exc}")
        sys.exit(2)
    console.print(f"[green]Schema ensured at {settings.database_url}[/]")


async def _init_db(settings: Settings) -> None:
    engine = create_engine(settings)
    try:
        await create_schema(engine)
    finally:
        await engine.dispose()


async def _database_reachable(settings: Settings) -> bool:
    engine = create_engine(settings)
    try:
        await verify_connection(engine)
        return True
    except Exception:
        return False
    finally:
        await engine.dispose()


def _run_environment_check(settings: Settings) -> None:
    """Check the external collaborators the server needs at startup."""
    results = {
        "database": asyncio.run(_database_reachable(settings)),
        "mux credentials": bool(settings.secrets.mux_token_id and settings.secrets.mux_token_secret),
        "discord client": bool(settings.discord_client_id and settings.secrets.discord_client_secret)
        or not settings.auth_enabled,
    }

    console.rule("[bold]Environment Check")
    for label, ok in results.items():
        console.print(f"[bold]{label}[/]: {'✅' if ok else '❌'}")

    if not all(results.values()):
        console.print("[red]Missing configuration detected. Check your .env file.[/]")
        sys.exit(1)
    console.print("[green]Environment looks good![/]")


if __name__ == "__main__":
    main()
