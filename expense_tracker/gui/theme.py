"""Carbon-inspired QSS stylesheet for the desktop client."""

from __future__ import annotations

from typing import Any, Mapping

DEFAULT_TOKENS: dict[str, str] = {
    "color.primary": "#0f62fe",
    "color.danger": "#da1e28",
    "color.surface": "#f4f4f4",
    "color.card": "white",
    "color.text": "#161616",
    "color.muted": "#8d8d8d",
    "font.family": '"Segoe UI", "IBM Plex Sans", sans-serif',
    "radius.small": "8",
    "radius.large": "12",
}


def build_stylesheet(overrides: Mapping[str, Any] | None = None) -> str:
    """Return the QSS stylesheet, optionally overriding individual tokens."""

    tokens = {**DEFAULT_TOKENS, **{key: str(value) for key, value in (overrides or {}).items()}}
    return f"""
    QWidget {{
        background: {tokens["color.surface"]};
        color: {tokens["color.text"]};
        font-family: {tokens["font.family"]};
    }}

    QTableWidget {{
        background: {tokens["color.card"]};
        border: 1px solid #d0d0d0;
        border-radius: {tokens["radius.small"]}px;
        gridline-color: #e0e0e0;
        selection-background-color: {tokens["color.primary"]};
        selection-color: white;
        alternate-background-color: #f2f2f2;
    }}

    QHeaderView::section {{
        background: #e5e5e5;
        font-weight: 600;
        padding: 8px;
        border: none;
    }}

    QGroupBox {{
        background: {tokens["color.card"]};
        border: 1px solid #d0d0d0;
        border-radius: {tokens["radius.large"]}px;
        margin-top: 16px;
        padding: 16px;
        font-weight: 600;
    }}

    QGroupBox:title {{
        subcontrol-origin: margin;
        subcontrol-position: top left;
        padding: 0 8px;
        color: {tokens["color.primary"]};
    }}

    QPushButton {{
        background: {tokens["color.primary"]};
        color: white;
        padding: 10px 18px;
        border-radius: {tokens["radius.small"]}px;
        font-weight: 600;
    }}

    QPushButton#DangerButton {{
        background: {tokens["color.danger"]};
    }}

    QPushButton:disabled {{
        background: {tokens["color.muted"]};
        color: #c6c6c6;
    }}

    QLabel#SummaryLabel {{
        font-size: 14pt;
        font-weight: 600;
    }}
    """


__all__ = ["DEFAULT_TOKENS", "build_stylesheet"]
