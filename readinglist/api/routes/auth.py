"""
Authentication API Routes.

Handles:
- Registration and login (session cookie issued)
- Logout (session invalidated, cookie cleared)
- Session status and current account
"""

from typing import Optional

from fastapi import APIRouter, Depends, Response, status

from readinglist.api.dependencies import (
    ServiceContainer,
    get_current_session,
    get_service_container,
    get_session_token,
)
from readinglist.api.schemas import (
    AccountResponse,
    ErrorResponse,
    LoginRequest,
    MeResponse,
    MessageResponse,
    RegisterRequest,
    SessionStatusResponse,
)
from readinglist.sessions import SessionData

router = APIRouter(prefix="/auth", tags=["auth"])


def _set_session_cookie(response: Response, container: ServiceContainer, session: SessionData) -> None:
    settings = container.settings
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session.token,
        max_age=int(settings.session_ttl.total_seconds()),
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
        path="/",
    )


def _clear_session_cookie(response: Response, container: ServiceContainer) -> None:
    settings = container.settings
    response.delete_cookie(
        key=settings.session_cookie_name,
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
        path="/",
    )


@router.post(
    "/register",
    response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid username or password"},
        409: {"model": ErrorResponse, "description": "Username already exists"},
    },
)
def register(
    body: RegisterRequest,
    response: Response,
    container: ServiceContainer = Depends(get_service_container),
):
    """Create an account and sign it in."""
    result = container.auth_service.register(
        body.username,
        body.password,
        body.password_confirmation,
    )
    _set_session_cookie(response, container, result.session)
    return AccountResponse(id=result.account_id, username=result.username)


@router.post(
    "/login",
    response_model=AccountResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Missing credentials"},
        401: {"model": ErrorResponse, "description": "Invalid username or password"},
    },
)
def login(
    body: LoginRequest,
    response: Response,
    token: Optional[str] = Depends(get_session_token),
    container: ServiceContainer = Depends(get_service_container),
):
    """Sign in with username and password."""
    result = container.auth_service.login(body.username, body.password, previous_token=token)
    _set_session_cookie(response, container, result.session)
    return AccountResponse(id=result.account_id, username=result.username)


@router.post("/logout", response_model=MessageResponse)
def logout(
    response: Response,
    token: Optional[str] = Depends(get_session_token),
    container: ServiceContainer = Depends(get_service_container),
):
    """Sign out. Succeeds even without a session."""
    container.auth_service.logout(token)
    _clear_session_cookie(response, container)
    return MessageResponse(message="Logged out successfully")


@router.get(
    "/session",
    response_model=SessionStatusResponse,
    response_model_exclude_none=True,
)
def session_status(
    token: Optional[str] = Depends(get_session_token),
    container: ServiceContainer = Depends(get_service_container),
):
    """Report whether the caller is signed in."""
    current = container.auth_service.current_session(token)
    return SessionStatusResponse(**current.to_dict())


@router.get(
    "/me",
    response_model=MeResponse,
    responses={401: {"model": ErrorResponse, "description": "Not signed in"}},
)
def me(
    session: Optional[SessionData] = Depends(get_current_session),
    container: ServiceContainer = Depends(get_service_container),
):
    """Profile of the signed-in account."""
    account = container.auth_service.get_account(session)
    return MeResponse.from_stored(account)
