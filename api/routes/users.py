"""
api/routes/users.py -- User registration, session and CRUD endpoints.

Routes (registration order matters: literal paths before /users/{user_id}):
  POST   /api/users               -- register a user
  POST   /api/users/login         -- password login; sets "token" cookie
  POST   /api/users/logout        -- revoke the presented token; clears cookie
  GET    /api/users               -- filtered, paginated list (requires session)
  GET    /api/users/filter        -- same listing, public
  GET    /api/users/{user_id}     -- fetch one user
  PUT    /api/users/{user_id}     -- partial update
  DELETE /api/users/{user_id}     -- delete

Auth policy:
  - POST /users, POST /users/login, GET /users/filter: public
  - GET /users, POST /users/logout: require_session (401 no token, 403 bad token)
  - GET/PUT/DELETE /users/{user_id}: route_guard -- public unless
    REQUIRE_AUTH_FOR_USER_ROUTES=true

Store failures on the CRUD routes surface as 500 internal_error with the
driver message in "detail".
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from api.models import (
    LoginRequest,
    LoginResponse,
    MessageResponse,
    UserCreate,
    UserListResponse,
    UserResponse,
    UserUpdate,
)
from auth import session
from auth.dependencies import require_logout_token, require_session, route_guard
from auth.filters import Page, UserFilter
from auth.models import Identity, User
from auth.store import TokenStore, UserStore
from auth.tokens import clear_session_cookie, hash_password, set_session_cookie
from core.errors import Conflict, InternalError, InvalidCredentials, NotFound, UserNotFound, ValidationError

router = APIRouter()

# Nullable columns that PUT may reset with an explicit JSON null.
_CLEARABLE = frozenset({"age", "phone"})


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    """Translate SQLAlchemy failures into service errors."""
    try:
        yield
    except IntegrityError as exc:
        raise Conflict("A user with that email already exists.") from exc
    except SQLAlchemyError as exc:
        raise InternalError(f"Could not {action}.", detail=str(exc)) from exc


def _list_page(request: Request, flt: UserFilter, page: Page) -> UserListResponse:
    user_store: UserStore = request.app.state.user_store
    users, total = user_store.list_users(flt, page)
    return UserListResponse(
        users=[UserResponse.from_user(u) for u in users],
        total=total,
        page=page.number,
        page_size=page.size,
        total_pages=page.total_pages(total),
    )


# ---------------------------------------------------------------------------
# Registration and sessions
# ---------------------------------------------------------------------------


@router.post("/users", response_model=UserResponse, status_code=201)
def create_user(request: Request, body: UserCreate) -> UserResponse:
    """Register a new account. The password is stored as a bcrypt hash."""
    user_store: UserStore = request.app.state.user_store
    new_user = User(
        email=body.email,
        password=hash_password(body.password),
        firstname=body.firstname,
        lastname=body.lastname,
        age=body.age,
        phone=body.phone,
        role=body.role,
    )
    with _store_errors("create user"):
        user_id = user_store.create_user(new_user)
        created = user_store.get_by_id(user_id)
    if created is None:
        raise InternalError("User not found after write.")
    return UserResponse.from_user(created)


@router.post("/users/login", response_model=LoginResponse)
def login(request: Request, response: Response, body: LoginRequest) -> LoginResponse:
    """Authenticate with email and password; return the token and set it as a cookie.

    Unknown email and wrong password both answer 401.
    """
    user_store: UserStore = request.app.state.user_store
    token_store: TokenStore = request.app.state.token_store
    try:
        token, user = session.login(user_store, token_store, body.email, body.password)
    except UserNotFound as exc:
        raise InvalidCredentials(exc.message) from exc

    set_session_cookie(response, token)
    response.headers["Cache-Control"] = "no-store"
    return LoginResponse(token=token, user=UserResponse.from_user(user))


@router.post("/users/logout", response_model=MessageResponse)
def logout(request: Request, response: Response, token: str = Depends(require_logout_token)) -> MessageResponse:
    """Revoke the presented token and clear the cookie. Repeating it is harmless."""
    token_store: TokenStore = request.app.state.token_store
    session.logout(token_store, token)
    clear_session_cookie(response)
    return MessageResponse(message="Logged out successfully")


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


@router.get("/users", response_model=UserListResponse)
def list_users(
    request: Request,
    identity: Identity = Depends(require_session),
    name: Optional[str] = None,
    age: Optional[str] = None,
    role: Optional[str] = None,
    is_active: Optional[str] = Query(default=None, alias="isActive"),
    page: Optional[str] = None,
    limit: Optional[str] = None,
) -> UserListResponse:
    """List users with optional filters. name matches first or last name, any case."""
    flt = UserFilter.from_query(name=name, age=age, role=role, is_active=is_active)
    return _list_page(request, flt, Page.from_query(page, limit))


@router.get("/users/filter", response_model=UserListResponse)
def filter_users(
    request: Request,
    name: Optional[str] = None,
    age: Optional[str] = None,
    role: Optional[str] = None,
    is_active: Optional[str] = Query(default=None, alias="isActive"),
    page: Optional[str] = None,
    limit: Optional[str] = None,
) -> UserListResponse:
    """Public variant of GET /users with the same filters and pagination."""
    flt = UserFilter.from_query(name=name, age=age, role=role, is_active=is_active)
    return _list_page(request, flt, Page.from_query(page, limit))


# ---------------------------------------------------------------------------
# Single-user CRUD
# ---------------------------------------------------------------------------


@router.get("/users/{user_id}", response_model=UserResponse, dependencies=[Depends(route_guard)])
def get_user(request: Request, user_id: str) -> UserResponse:
    user_store: UserStore = request.app.state.user_store
    with _store_errors("fetch user"):
        user = user_store.get_by_id(user_id)
    if user is None:
        raise NotFound("User not found")
    return UserResponse.from_user(user)


@router.put("/users/{user_id}", response_model=UserResponse, dependencies=[Depends(route_guard)])
def update_user(request: Request, user_id: str, body: UserUpdate) -> UserResponse:
    """Apply the supplied fields. A new password is hashed before storage.

    An explicit null clears age or phone; null for any other field is ignored.
    """
    user_store: UserStore = request.app.state.user_store

    updates = {
        k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None or k in _CLEARABLE
    }
    if not updates:
        raise ValidationError("No fields to update.")
    if "password" in updates:
        updates["password"] = hash_password(updates["password"])

    with _store_errors("update user"):
        updated = user_store.update_user(user_id, **updates)
        user = user_store.get_by_id(user_id) if updated else None
    if user is None:
        raise NotFound("User not found")
    return UserResponse.from_user(user)


@router.delete("/users/{user_id}", response_model=MessageResponse, dependencies=[Depends(route_guard)])
def delete_user(request: Request, user_id: str) -> MessageResponse:
    user_store: UserStore = request.app.state.user_store
    with _store_errors("delete user"):
        deleted = user_store.delete_user(user_id)
    if not deleted:
        raise NotFound("User not found")
    return MessageResponse(message="User deleted successfully")
