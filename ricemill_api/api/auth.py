"""Authentication endpoints (OAuth2 password flow with JWT)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm

from ricemill import user_service
from ricemill.errors import LedgerError
from ricemill_api.dependencies.security import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    AuthenticatedUser,
    get_current_user,
    issue_access_token,
    oauth2_scheme,
    require_admin,
    revoke_token,
)
from ricemill_api.errors import to_http_exception
from ricemill_api.schemas.auth import AuthenticatedUserPayload, RegisterRequest, TokenResponse, UserOut


router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/token", response_model=TokenResponse)
def issue_token(form_data: OAuth2PasswordRequestForm = Depends()) -> TokenResponse:
    user = user_service.authenticate_user(form_data.username, form_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return TokenResponse(
        access_token=issue_access_token(user),
        expires_in=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=AuthenticatedUserPayload(id=user.id, username=user.username, role=user.role),
    )


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    _: AuthenticatedUser = Depends(require_admin),
) -> UserOut:
    try:
        user = user_service.register_user(payload.username, payload.password, payload.role)
    except LedgerError as exc:
        raise to_http_exception(exc) from exc
    return UserOut.model_validate(user)


@router.get("/me", response_model=UserOut)
def me(current: AuthenticatedUser = Depends(get_current_user)) -> UserOut:
    try:
        user = user_service.get_user(current.id)
    except LedgerError as exc:
        raise to_http_exception(exc) from exc
    return UserOut.model_validate(user)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(
    token: str = Depends(oauth2_scheme),
    _: AuthenticatedUser = Depends(get_current_user),
) -> None:
    revoke_token(token)
