"""FastAPI application exposing the expense tracker endpoints."""
from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from functools import cache
from typing import Any, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__, auth, crud, database, errors, models, schemas
from .config import get_settings
from .enums import Category, DateFilter, PaymentMode
from .tokens import TokenIssuer

LOG = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    database.init_db()
    LOG.info("Expense tracker API ready (v%s)", __version__)
    yield


settings = get_settings()
app = FastAPI(title="Expense Tracker API", version=__version__, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.allowed_origins),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

bearer_scheme = HTTPBearer(auto_error=False)


@cache
def get_token_issuer() -> TokenIssuer:
    return TokenIssuer.from_settings(get_settings())


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(database.get_db),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> models.User:
    """Authentication gate placed in front of every protected route."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access denied. No token provided.",
        )
    return auth.verify_token(db, credentials.credentials, issuer)


# ---------------------------------------------------------------------------
# Error mapping


def _error_response(status_code: int, message: str, details: Optional[List[Any]] = None) -> JSONResponse:
    body: dict[str, Any] = {"error": message}
    if details:
        body["details"] = details
    headers = {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(status_code=status_code, content=body, headers=headers)


@app.exception_handler(errors.ExpenseTrackerError)
async def handle_domain_error(request: Request, exc: errors.ExpenseTrackerError) -> JSONResponse:
    return _error_response(exc.status_code, exc.message, exc.details)


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ())[1:]) or "body",
            "message": error.get("msg", "Invalid value"),
        }
        for error in exc.errors()
    ]
    return _error_response(status.HTTP_400_BAD_REQUEST, "Validation failed", details)


@app.exception_handler(StarletteHTTPException)
async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = str(exc.detail)
    if exc.status_code == status.HTTP_404_NOT_FOUND and message == "Not Found":
        message = "Route not found"
    return _error_response(exc.status_code, message)


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    LOG.exception(
        "Unhandled error on %s %s",
        request.method,
        request.url.path,
        extra={"method": request.method, "path": request.url.path},
    )
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error")


def _log_request(request: Request, status_code: int, started: float) -> None:
    elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
    LOG.info(
        "%s %s -> %s",
        request.method,
        request.url.path,
        status_code,
        extra={
            "method": request.method,
            "path": request.url.path,
            "status_code": status_code,
            "duration_ms": elapsed_ms,
        },
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        # The catch-all handler answers outside this middleware.
        _log_request(request, status.HTTP_500_INTERNAL_SERVER_ERROR, started)
        raise
    _log_request(request, response.status_code, started)
    return response


# ---------------------------------------------------------------------------
# Authentication


@app.post(
    "/auth/register",
    response_model=schemas.AuthResult,
    status_code=status.HTTP_201_CREATED,
    tags=["auth"],
)
def register(
    user_in: schemas.UserCreate,
    db: Session = Depends(database.get_db),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> schemas.AuthResult:
    return auth.register(db, user_in, issuer)


@app.post("/auth/login", response_model=schemas.AuthResult, tags=["auth"])
def login(
    credentials: schemas.UserLogin,
    db: Session = Depends(database.get_db),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> schemas.AuthResult:
    return auth.login(db, credentials, issuer)


@app.get("/auth/profile", response_model=schemas.UserRead, tags=["auth"])
def get_profile(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
) -> schemas.UserRead:
    return auth.get_profile(db, current_user.id)


@app.put("/auth/profile", response_model=schemas.UserRead, tags=["auth"])
def update_profile(
    update_in: schemas.ProfileUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
) -> schemas.UserRead:
    return auth.update_profile(db, current_user.id, update_in)


@app.post("/auth/change-password", response_model=schemas.MessageRead, tags=["auth"])
def change_password(
    change: schemas.PasswordChange,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
) -> schemas.MessageRead:
    try:
        auth.change_password(db, current_user.id, change)
    except (errors.UserNotFoundError, errors.IncorrectPasswordError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message) from exc
    return schemas.MessageRead(message="Password changed successfully")


@app.post("/auth/logout", response_model=schemas.MessageRead, tags=["auth"])
def logout(current_user: models.User = Depends(get_current_user)) -> schemas.MessageRead:
    # Tokens are stateless; the client discards its copy.
    LOG.info("User logged out", extra={"user_id": current_user.id})
    return schemas.MessageRead(message="Logout successful")


@app.post("/auth/refresh", response_model=schemas.TokenRead, tags=["auth"])
def refresh(
    current_user: models.User = Depends(get_current_user),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> schemas.TokenRead:
    return schemas.TokenRead(token=auth.refresh_token(current_user, issuer))


# ---------------------------------------------------------------------------
# Expenses


@app.post(
    "/expenses",
    response_model=schemas.ExpenseRead,
    status_code=status.HTTP_201_CREATED,
    tags=["expenses"],
)
def create_expense(
    expense_in: schemas.ExpenseCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
) -> schemas.ExpenseRead:
    return crud.create_expense(db, current_user.id, expense_in)


@app.get("/expenses", response_model=schemas.ExpensePage, tags=["expenses"])
def list_expenses(
    date_filter: Optional[DateFilter] = Query(None, alias="dateFilter"),
    categories: Optional[List[Category]] = Query(None),
    payment_modes: Optional[List[PaymentMode]] = Query(None, alias="paymentModes"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
) -> schemas.ExpensePage:
    filters = schemas.ExpenseFilters(
        date_filter=date_filter,
        categories=categories or [],
        payment_modes=payment_modes or [],
    )
    return crud.list_expenses(db, current_user.id, filters, page, limit)


@app.get("/expenses/analytics", response_model=schemas.AnalyticsRead, tags=["expenses"])
def get_analytics(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
) -> schemas.AnalyticsRead:
    return crud.expense_analytics(db, current_user.id)


@app.get("/expenses/{expense_id}", response_model=schemas.ExpenseRead, tags=["expenses"])
def get_expense(
    expense_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
) -> schemas.ExpenseRead:
    return crud.get_expense(db, current_user.id, expense_id)


@app.put("/expenses/{expense_id}", response_model=schemas.ExpenseRead, tags=["expenses"])
def update_expense(
    expense_id: int,
    update_in: schemas.ExpenseUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
) -> schemas.ExpenseRead:
    return crud.update_expense(db, current_user.id, expense_id, update_in)


@app.delete("/expenses/{expense_id}", response_model=schemas.MessageRead, tags=["expenses"])
def delete_expense(
    expense_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
) -> schemas.MessageRead:
    crud.delete_expense(db, current_user.id, expense_id)
    return schemas.MessageRead(message="Expense deleted successfully")


@app.get("/health", response_model=schemas.HealthRead, tags=["system"])
def healthcheck() -> schemas.HealthRead:
    return schemas.HealthRead(status="OK", timestamp=datetime.now(UTC))
