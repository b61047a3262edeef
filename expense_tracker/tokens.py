"""Signed, time-limited bearer tokens binding a request to a user id."""
from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Final

import jwt

from .config import DEFAULT_TOKEN_TTL_DAYS, Settings
from .errors import InvalidTokenError

LOG = logging.getLogger(__name__)

ALGORITHM: Final[str] = "HS256"
USER_CLAIM: Final[str] = "userId"


class TokenIssuer:
    """Issue and verify HS256 JWTs carrying a ``userId`` claim.

    The issuer holds no state beyond the signing secret and the token
    lifetime, so a single instance is shared by every request.
    """

    def __init__(
        self,
        secret: str,
        ttl: timedelta = timedelta(days=DEFAULT_TOKEN_TTL_DAYS),
        algorithm: str = ALGORITHM,
    ) -> None:
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        self._secret = secret
        self._ttl = ttl
        self._algorithm = algorithm

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenIssuer":
        return cls(settings.jwt_secret, settings.token_ttl)

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def issue(self, user_id: int, *, now: datetime | None = None) -> str:
        """Return a signed token for ``user_id`` valid for ``ttl`` from ``now``."""

        issued_at = now or datetime.now(UTC)
        payload = {
            USER_CLAIM: int(user_id),
            "iat": issued_at,
            "exp": issued_at + self._ttl,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> int:
        """Return the user id embedded in ``token``.

        Raises:
            InvalidTokenError: If the signature is invalid, the token expired,
                it cannot be decoded or it does not carry an integer user id.
        """

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "iat"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise InvalidTokenError("Token has expired") from exc
        except jwt.PyJWTError as exc:
            LOG.debug("Rejected bearer token: %s", exc)
            raise InvalidTokenError() from exc
        user_id = payload.get(USER_CLAIM)
        if isinstance(user_id, bool) or not isinstance(user_id, int):
            raise InvalidTokenError("Token does not identify a user")
        return user_id


__all__ = ["TokenIssuer"]
