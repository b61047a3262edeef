"""Entry point for the optional PySide6 desktop client."""

from __future__ import annotations

import argparse
import logging
import sys

from ..client import ExpenseClient

LOG = logging.getLogger(__name__)

_INSTALL_HINT = "pip install .[gui]"


def _ensure_qt() -> tuple[object, object, object] | None:
    """Attempt to import the Qt bindings used by the GUI."""

    try:  # pragma: no cover - optional dependency resolution
        from PySide6 import QtCore, QtGui, QtWidgets
    except ImportError as exc:  # pragma: no cover - optional dependency resolution
        LOG.error(
            "PySide6 is not installed. Install the GUI extras via `%s`. (%s)",
            _INSTALL_HINT,
            exc,
        )
        return None
    return QtCore, QtGui, QtWidgets


def launch_gui(
    api_url: str | None = None,
    *,
    auto_exec: bool = True,
) -> bool:
    """Launch the desktop client if the Qt bindings are available."""

    qt_modules = _ensure_qt()
    if qt_modules is None:
        return False
    _QtCore, _QtGui, QtWidgets = qt_modules
    from .mainwindow import ExpenseMainWindow
    from .theme import build_stylesheet

    app = QtWidgets.QApplication.instance()
    if app is None:
        app = QtWidgets.QApplication(sys.argv or ["expense-tracker-gui"])
    app.setStyleSheet(build_stylesheet())

    window = ExpenseMainWindow(client=ExpenseClient(base_url=api_url))
    window.show()
    if auto_exec:
        app.exec()
    return True


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Expense tracker desktop client")
    parser.add_argument("--api-url", help="Base URL of the expense tracker API")
    parser.add_argument(
        "--no-exec",
        action="store_true",
        help="Initialise the GUI without starting the Qt event loop (testing)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Console script entry point used by `expense-tracker-gui`."""

    parser = _build_parser()
    args = parser.parse_args(argv)
    launched = launch_gui(args.api_url, auto_exec=not args.no_exec)
    return 0 if launched else 1


__all__ = ["launch_gui", "main"]
