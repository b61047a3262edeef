"""Registration, login and profile services backed by the users table."""
from __future__ import annotations

import logging
from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import errors, models, schemas
from .enums import Role
from .tokens import TokenIssuer

LOG = logging.getLogger(__name__)

_hasher = PasswordHasher()


def hash_password(password: str) -> str:
    return _hasher.hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    """Return True when ``password`` matches the stored argon2 hash."""
    try:
        return _hasher.verify(password_hash, password)
    except (VerifyMismatchError, InvalidHash, VerificationError):
        return False


def get_user_by_email(session: Session, email: str) -> Optional[models.User]:
    stmt = select(models.User).where(models.User.email == email.strip().lower())
    return session.scalars(stmt).first()


def _get_user(session: Session, user_id: int) -> models.User:
    user = session.get(models.User, user_id)
    if user is None:
        raise errors.UserNotFoundError()
    return user


def _auth_result(user: models.User, issuer: TokenIssuer) -> schemas.AuthResult:
    return schemas.AuthResult(
        token=issuer.issue(user.id),
        user=schemas.UserRead.model_validate(user),
    )


def register(session: Session, user_in: schemas.UserCreate, issuer: TokenIssuer) -> schemas.AuthResult:
    if get_user_by_email(session, user_in.email) is not None:
        raise errors.DuplicateEmailError()
    user = models.User(
        name=user_in.name,
        email=user_in.email,
        password_hash=hash_password(user_in.password),
        role=Role.USER,
        is_active=True,
    )
    session.add(user)
    try:
        session.flush()
    except IntegrityError as exc:  # pragma: no cover - concurrent registration race
        raise errors.DuplicateEmailError() from exc
    session.refresh(user)
    LOG.info("User registered: %s", user.email, extra={"user_id": user.id})
    return _auth_result(user, issuer)


def login(session: Session, credentials: schemas.UserLogin, issuer: TokenIssuer) -> schemas.AuthResult:
    """Authenticate by email and password.

    Unknown emails and wrong passwords raise the same error so that callers
    cannot tell which addresses are registered. The activity flag is only
    reported once the password has been proven.
    """
    user = get_user_by_email(session, credentials.email)
    if user is None or not verify_password(user.password_hash, credentials.password):
        LOG.warning("Failed login attempt for %s", credentials.email)
        raise errors.InvalidCredentialsError()
    if not user.is_active:
        LOG.warning("Login refused for deactivated account", extra={"user_id": user.id})
        raise errors.AccountDeactivatedError()

    user.last_login = models.utcnow()
    session.flush()
    session.refresh(user)
    LOG.info("User logged in: %s", user.email, extra={"user_id": user.id})
    return _auth_result(user, issuer)


def verify_token(session: Session, token: str, issuer: TokenIssuer) -> models.User:
    """Resolve a bearer token to an active user.

    Bad tokens, missing users and deactivated users all surface as the same
    ``InvalidOrExpiredTokenError``.
    """
    try:
        user_id = issuer.verify(token)
    except errors.InvalidTokenError as exc:
        raise errors.InvalidOrExpiredTokenError() from exc
    user = session.get(models.User, user_id)
    if user is None or not user.is_active:
        LOG.info("Token rejected for missing or inactive user", extra={"user_id": user_id})
        raise errors.InvalidOrExpiredTokenError()
    return user


def refresh_token(user: models.User, issuer: TokenIssuer) -> str:
    return issuer.issue(user.id)


def get_profile(session: Session, user_id: int) -> models.User:
    return _get_user(session, user_id)


def update_profile(session: Session, user_id: int, update_in: schemas.ProfileUpdate) -> models.User:
    user = _get_user(session, user_id)
    for field, value in schemas.project(update_in, schemas.PROFILE_FIELDS).items():
        if field == "name" and value is None:
            continue
        setattr(user, field, value)
    session.flush()
    session.refresh(user)
    LOG.info("Profile updated", extra={"user_id": user_id})
    return user


def change_password(session: Session, user_id: int, change: schemas.PasswordChange) -> None:
    user = _get_user(session, user_id)
    if not verify_password(user.password_hash, change.old_password):
        raise errors.IncorrectPasswordError()
    user.password_hash = hash_password(change.new_password)
    session.flush()
    LOG.info("Password changed", extra={"user_id": user_id})


def set_active(session: Session, email: str, active: bool) -> models.User:
    """Activate or deactivate the account registered under ``email``."""
    user = get_user_by_email(session, email)
    if user is None:
        raise errors.UserNotFoundError()
    user.is_active = active
    session.flush()
    session.refresh(user)
    LOG.info("Account %s", "activated" if active else "deactivated", extra={"user_id": user.id})
    return user
