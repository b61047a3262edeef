"""HTTP client for the expense tracker REST API.

The client keeps the bearer token in a small JSON file (the desktop
counterpart of browser local storage). Any 401 answer clears that file, so
the next call has to authenticate again; authenticated calls then raise
:class:`SessionExpiredError` for the UI to return to the login screen.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

import requests

LOG = logging.getLogger(__name__)

API_URL_ENV = "EXPENSE_TRACKER_API_URL"
HOME_ENV = "EXPENSE_TRACKER_HOME"
DEFAULT_API_URL = "http://127.0.0.1:8000"


class ApiError(RuntimeError):
    """Raised for any non-2xx answer from the API."""

    def __init__(self, status_code: int, message: str, details: Optional[list[Any]] = None) -> None:
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.details = details or []


class SessionExpiredError(ApiError):
    """Raised when an authenticated call is refused; the stored token is gone."""


def _default_home() -> Path:
    override = os.environ.get(HOME_ENV)
    return Path(override).expanduser() if override else Path.home() / ".expense_tracker"


class TokenStore:
    """Persist the current bearer token between client sessions."""

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path) if path is not None else _default_home() / "session.json"

    def load(self) -> Optional[str]:
        if not self.path.exists():
            return None
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            LOG.warning("Discarding unreadable session file %s", self.path)
            return None
        token = payload.get("token") if isinstance(payload, dict) else None
        return token or None

    def save(self, token: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps({"token": token}), encoding="utf-8")

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


def build_expense_payload(
    *,
    amount: Decimal | float | str | None = None,
    category: Optional[str] = None,
    payment_mode: Optional[str] = None,
    when: date | datetime | str | None = None,
    notes: Optional[str] = None,
) -> dict[str, Any]:
    """Translate keyword arguments into the camelCase body the API expects.

    Arguments left as ``None`` are omitted so the same helper serves partial
    updates.
    """

    payload: dict[str, Any] = {}
    if amount is not None:
        payload["amount"] = str(amount)
    if category is not None:
        payload["category"] = str(category)
    if payment_mode is not None:
        payload["paymentMode"] = str(payment_mode)
    if when is not None:
        payload["date"] = when if isinstance(when, str) else when.isoformat()
    if notes is not None:
        payload["notes"] = notes
    return payload


class ExpenseClient:
    """Thin wrapper over the REST endpoints."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        token_store: Optional[TokenStore] = None,
        session: Any = None,
        timeout: float = 5.0,
    ) -> None:
        self.base_url = (base_url or os.environ.get(API_URL_ENV) or DEFAULT_API_URL).rstrip("/")
        self.token_store = token_store or TokenStore()
        self._session = session if session is not None else requests.Session()
        self._timeout = timeout

    @property
    def is_authenticated(self) -> bool:
        return self.token_store.load() is not None

    # ------------------------------------------------------------------
    def _request(
        self,
        method: str,
        path: str,
        *,
        json_body: Optional[Mapping[str, Any]] = None,
        params: Optional[Mapping[str, Any]] = None,
        authenticated: bool = True,
    ) -> Any:
        headers: dict[str, str] = {}
        if authenticated:
            token = self.token_store.load()
            if token is None:
                raise SessionExpiredError(401, "Not logged in")
            headers["Authorization"] = f"Bearer {token}"

        response = self._session.request(
            method,
            f"{self.base_url}{path}",
            json=json_body,
            params=params,
            headers=headers,
            timeout=self._timeout,
        )
        if response.status_code >= 400:
            message, details = _error_body(response)
            if response.status_code == 401:
                self.token_store.clear()
                if authenticated:
                    LOG.info("Session expired on %s %s", method, path)
                    raise SessionExpiredError(401, message, details)
            raise ApiError(response.status_code, message, details)
        if not response.content:
            return None
        return response.json()

    def _store_token(self, data: Mapping[str, Any]) -> None:
        self.token_store.save(data["token"])

    # ------------------------------------------------------------------
    def health(self) -> dict[str, Any]:
        return self._request("GET", "/health", authenticated=False)

    def register(self, name: str, email: str, password: str) -> dict[str, Any]:
        data = self._request(
            "POST",
            "/auth/register",
            json_body={"name": name, "email": email, "password": password},
            authenticated=False,
        )
        self._store_token(data)
        return data["user"]

    def login(self, email: str, password: str) -> dict[str, Any]:
        data = self._request(
            "POST",
            "/auth/login",
            json_body={"email": email, "password": password},
            authenticated=False,
        )
        self._store_token(data)
        return data["user"]

    def logout(self) -> None:
        try:
            self._request("POST", "/auth/logout")
        finally:
            self.token_store.clear()

    def refresh(self) -> str:
        data = self._request("POST", "/auth/refresh")
        self._store_token(data)
        return data["token"]

    def profile(self) -> dict[str, Any]:
        return self._request("GET", "/auth/profile")

    def update_profile(self, *, name: Optional[str] = None, profile_picture: Optional[str] = None) -> dict[str, Any]:
        body: dict[str, Any] = {}
        if name is not None:
            body["name"] = name
        if profile_picture is not None:
            body["profilePicture"] = profile_picture
        return self._request("PUT", "/auth/profile", json_body=body)

    def change_password(self, old_password: str, new_password: str) -> None:
        self._request(
            "POST",
            "/auth/change-password",
            json_body={"oldPassword": old_password, "newPassword": new_password},
        )

    def list_expenses(
        self,
        *,
        date_filter: Optional[str] = None,
        categories: Iterable[str] = (),
        payment_modes: Iterable[str] = (),
        page: int = 1,
        limit: int = 20,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {"page": page, "limit": limit}
        if date_filter:
            params["dateFilter"] = date_filter
        if categories:
            params["categories"] = [str(item) for item in categories]
        if payment_modes:
            params["paymentModes"] = [str(item) for item in payment_modes]
        return self._request("GET", "/expenses", params=params)

    def get_expense(self, expense_id: int) -> dict[str, Any]:
        return self._request("GET", f"/expenses/{expense_id}")

    def create_expense(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        return self._request("POST", "/expenses", json_body=payload)

    def update_expense(self, expense_id: int, payload: Mapping[str, Any]) -> dict[str, Any]:
        return self._request("PUT", f"/expenses/{expense_id}", json_body=payload)

    def delete_expense(self, expense_id: int) -> None:
        self._request("DELETE", f"/expenses/{expense_id}")

    def analytics(self) -> dict[str, Any]:
        return self._request("GET", "/expenses/analytics")


def _error_body(response: Any) -> tuple[str, list[Any]]:
    try:
        payload = response.json()
    except ValueError:
        return (response.text or f"HTTP {response.status_code}"), []
    if isinstance(payload, dict):
        return str(payload.get("error", f"HTTP {response.status_code}")), list(payload.get("details") or [])
    return f"HTTP {response.status_code}", []


__all__ = [
    "ApiError",
    "ExpenseClient",
    "SessionExpiredError",
    "TokenStore",
    "build_expense_payload",
]
