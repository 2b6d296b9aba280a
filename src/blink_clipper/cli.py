"""CLI/bootstrap helpers for the Blink clipper."""

from __future__ import annotations

import argparse
import asyncio
import logging
import logging.handlers
import sys
from collections.abc import Callable
from dataclasses import replace
from pathlib import Path
from typing import Any

import httpx

from blink_clipper.action_messages import build_actionable_error
from blink_clipper.config import get_config_dir, get_config_path, load_config, save_config
from blink_clipper.errors import AppendConflict, AuthExpired, ClipperError
from blink_clipper.firestore import FirestoreEndpoints
from blink_clipper.models import ActivePage, ClipperConfig, Session
from blink_clipper.services.interfaces import AppServices, build_default_app_services
from blink_clipper.services.session_guard import SessionGuard
from blink_clipper.session_store import SessionStore

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool) -> None:
    """Configure logging. When debug=True, logs to file at DEBUG level."""
    if not debug:
        # Default: suppress all logging (TUI captures stderr)
        logging.disable(logging.CRITICAL)
        return

    log_dir = get_config_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "debug.log"

    handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    logging.root.addHandler(handler)
    logging.root.setLevel(logging.DEBUG)
    # httpx logs full request URLs, which carry the API key
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _validate_interactive_tty() -> bool:
    """Return True when stdin/stdout are interactive terminals."""
    return bool(sys.stdin.isatty() and sys.stdout.isatty())


def _apply_overrides(args: argparse.Namespace, config: ClipperConfig) -> ClipperConfig:
    """Layer --project-id / --api-key over the loaded config for this run."""
    overrides: dict[str, Any] = {}
    if args.project_id:
        overrides["project_id"] = args.project_id.strip()
    if args.api_key:
        overrides["api_key"] = args.api_key.strip()
    return replace(config, **overrides) if overrides else config


def _print_error(action: str, error: ClipperError) -> None:
    if isinstance(error, AppendConflict):
        next_step = "run the command again"
    elif isinstance(error, AuthExpired):
        next_step = "sign in again by running blink-clipper --url URL in a terminal"
    else:
        next_step = "check your connection and configuration, then retry"
    print(build_actionable_error(action, why=error.message, next_step=next_step), file=sys.stderr)


def _require_session(store: SessionStore, action: str) -> Session | None:
    session = store.load()
    if session is None:
        print(
            build_actionable_error(
                action,
                why="you are not signed in",
                next_step="run blink-clipper --url URL in a terminal and sign in",
            ),
            file=sys.stderr,
        )
    return session


async def _list_vaults_command(
    config: ClipperConfig, store: SessionStore, services: AppServices
) -> int:
    session = _require_session(store, "list vaults")
    if session is None:
        return 1
    async with httpx.AsyncClient() as client:
        try:
            vaults = await services.vaults.list_vaults(
                client=client,
                endpoints=FirestoreEndpoints.from_config(config),
                session=session,
                guard=SessionGuard(store),
                timeout_seconds=config.request_timeout_seconds,
            )
        except ClipperError as e:
            _print_error("list vaults", e)
            return 1
    if not vaults:
        print("No containers found", file=sys.stderr)
        return 0
    for vault in vaults:
        print(f"{vault.id}\t{vault.name}")
    return 0


async def _save_command(
    config: ClipperConfig,
    store: SessionStore,
    services: AppServices,
    page: ActivePage,
    vault_id: str,
) -> int:
    session = _require_session(store, "save the page")
    if session is None:
        return 1
    async with httpx.AsyncClient() as client:
        try:
            link = await services.links.append_link(
                client=client,
                endpoints=FirestoreEndpoints.from_config(config),
                session=session,
                guard=SessionGuard(store),
                vault_id=vault_id,
                page=page,
                timeout_seconds=config.request_timeout_seconds,
                guard_concurrent_writes=config.guard_concurrent_writes,
            )
        except ClipperError as e:
            _print_error("save the page", e)
            return 1
    print(link.id)
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Save a web page into one of your Blink containers"
    )
    parser.add_argument("--url", type=str, default=None, help="URL of the page to save")
    parser.add_argument(
        "--title",
        type=str,
        default="",
        help="Title of the page to save (default: the URL)",
    )
    parser.add_argument(
        "--list-vaults",
        action="store_true",
        help="Print the id and name of each container you own and exit",
    )
    parser.add_argument(
        "--save-to",
        metavar="VAULT_ID",
        type=str,
        default=None,
        help="Save the page into this container without opening the popup",
    )
    parser.add_argument(
        "--logout",
        action="store_true",
        help="Forget the stored session and exit",
    )
    parser.add_argument("--project-id", type=str, default=None, help="Firebase project id")
    parser.add_argument(
        "--api-key",
        type=str,
        default=None,
        help=f"Firebase web API key (default: api_key in {get_config_path()})",
    )
    parser.add_argument(
        "--save-config",
        action="store_true",
        help="Write --project-id / --api-key into the config file and exit",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging to file (in the blink-clipper config directory)",
    )
    return parser


def main(
    argv: list[str] | None = None,
    *,
    load_config_fn: Callable[[], ClipperConfig] = load_config,
    save_config_fn: Callable[[ClipperConfig], bool] = save_config,
    store_factory: Callable[[], SessionStore] = SessionStore,
    services_factory: Callable[[], AppServices] = build_default_app_services,
    configure_logging_fn: Callable[[bool], None] = _configure_logging,
    validate_interactive_tty_fn: Callable[[], bool] = _validate_interactive_tty,
    app_factory: Callable[..., Any] | None = None,
) -> int:
    """Main entry point. Returns exit code."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging_fn(args.debug)
    logger.debug("blink-clipper starting, cwd=%s", Path.cwd())

    store = store_factory()

    if args.logout:
        if args.list_vaults or args.save_to or args.save_config:
            print("Error: --logout cannot be combined with other commands", file=sys.stderr)
            return 1
        try:
            store.clear()
        except OSError as e:
            print(f"Error: could not remove the stored session: {e}", file=sys.stderr)
            return 1
        print("Logged out")
        return 0

    config = _apply_overrides(args, load_config_fn())
    if args.save_config:
        if args.list_vaults or args.save_to is not None:
            print("Error: --save-config cannot be combined with other commands", file=sys.stderr)
            return 1
        if not save_config_fn(config):
            print(f"Error: could not write {get_config_path()}", file=sys.stderr)
            return 1
        print(f"Saved configuration to {get_config_path()}")
        return 0

    if not config.api_key:
        print(
            build_actionable_error(
                "contact Blink",
                why="no Firebase API key is configured",
                next_step=f"pass --api-key or set api_key in {get_config_path()}",
            ),
            file=sys.stderr,
        )
        return 1

    if args.list_vaults:
        return asyncio.run(_list_vaults_command(config, store, services_factory()))

    url = (args.url or "").strip()
    if not url:
        print("Error: --url is required to save a page", file=sys.stderr)
        return 1
    page = ActivePage(title=args.title.strip(), url=url)

    if args.save_to is not None:
        return asyncio.run(
            _save_command(config, store, services_factory(), page, args.save_to.strip())
        )

    if not validate_interactive_tty_fn():
        print(
            "Error: blink-clipper requires an interactive TTY for the popup.",
            file=sys.stderr,
        )
        print("Next steps:", file=sys.stderr)
        print("  - Run blink-clipper directly in a terminal session", file=sys.stderr)
        print("  - Use --save-to VAULT_ID for non-interactive saving", file=sys.stderr)
        print("  - Use --list-vaults to find container ids", file=sys.stderr)
        return 2

    if app_factory is None:
        from blink_clipper.app import ClipperApp as _ClipperApp

        app_factory = _ClipperApp

    app = app_factory(page, config=config, store=store, services=services_factory())
    app.run()
    return 0


__all__ = [
    "_configure_logging",
    "_validate_interactive_tty",
    "main",
]
