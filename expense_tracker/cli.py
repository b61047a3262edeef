"""Command-line interface for running and administering the expense tracker."""

from __future__ import annotations

import argparse

from . import __version__
from .config import get_settings
from .logging import configure_logging

DESCRIPTION = "Expense Tracker API"


def _add_common_logging(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Also write JSON-lines logs under logs/",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (DEBUG, INFO, WARNING, ...); EXPENSE_TRACKER_LOG_LEVEL takes precedence",
    )


def _add_serve_subparser(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    settings = get_settings()
    serve = subparsers.add_parser("serve", help="Run the REST API with uvicorn")
    serve.add_argument("--host", default=settings.host, help="Interface to bind")
    serve.add_argument("--port", type=int, default=settings.port, help="Port to listen on")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development)")
    _add_common_logging(serve)


def _add_init_db_subparser(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    init_db = subparsers.add_parser("init-db", help="Create the database tables")
    _add_common_logging(init_db)


def _add_set_active_subparser(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    set_active = subparsers.add_parser("set-active", help="Activate or deactivate a user account")
    set_active.add_argument("--email", required=True, help="Email of the account to update")
    state = set_active.add_mutually_exclusive_group(required=True)
    state.add_argument("--active", dest="active", action="store_true", help="Allow the user to log in")
    state.add_argument("--inactive", dest="active", action="store_false", help="Block the user from logging in")
    _add_common_logging(set_active)


def _add_gui_subparser(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    gui = subparsers.add_parser("gui", help="Open the desktop client")
    gui.add_argument("--api-url", help="Base URL of the expense tracker API")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="expense-tracker", description=DESCRIPTION)
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_serve_subparser(subparsers)
    _add_init_db_subparser(subparsers)
    _add_set_active_subparser(subparsers)
    _add_gui_subparser(subparsers)
    return parser


def _handle_serve(args: argparse.Namespace) -> int:
    import uvicorn

    logger = configure_logging(json_logs=args.json_logs, level=args.log_level)
    logger.info("Serving on http://%s:%s", args.host, args.port)
    uvicorn.run(
        "expense_tracker.server:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=(args.log_level or "info").lower(),
    )
    return 0


def _handle_init_db(args: argparse.Namespace) -> int:
    from . import database

    configure_logging(json_logs=args.json_logs, level=args.log_level)
    database.init_db()
    print(f"[expense-tracker] database ready at {get_settings().database_url}")
    return 0


def _handle_set_active(args: argparse.Namespace) -> int:
    from . import auth, database, errors

    configure_logging(json_logs=args.json_logs, level=args.log_level)
    try:
        with database.session_scope() as session:
            user = auth.set_active(session, args.email, args.active)
            state = "active" if user.is_active else "inactive"
            print(f"[expense-tracker] {user.email} is now {state}")
    except errors.UserNotFoundError:
        print(f"[expense-tracker] no user registered with {args.email}")
        return 1
    return 0


def _handle_gui(args: argparse.Namespace) -> int:
    from .gui import launch_gui

    return 0 if launch_gui(args.api_url) else 1


_HANDLERS = {
    "serve": _handle_serve,
    "init-db": _handle_init_db,
    "set-active": _handle_set_active,
    "gui": _handle_gui,
}


def main(argv: list[str] | None = None) -> int:
    """Console script entry point used by `expense-tracker`."""

    parser = build_parser()
    args = parser.parse_args(argv)
    return _HANDLERS[args.command](args)


__all__ = ["build_parser", "main"]
