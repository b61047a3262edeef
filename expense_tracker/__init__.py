"""Expense tracker: REST API, API client and desktop client for personal expenses."""

__version__ = "1.0.0"

__all__ = [
    "auth",
    "client",
    "config",
    "crud",
    "database",
    "models",
    "schemas",
    "server",
    "tokens",
]
