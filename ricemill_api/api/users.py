"""User administration endpoints (admin only)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ricemill import user_service
from ricemill.errors import LedgerError
from ricemill_api.dependencies.security import AuthenticatedUser, require_admin
from ricemill_api.errors import to_http_exception
from ricemill_api.schemas.auth import RoleUpdateRequest, UserOut


router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=list[UserOut])
def list_users(_: AuthenticatedUser = Depends(require_admin)) -> list[UserOut]:
    return [UserOut.model_validate(user) for user in user_service.list_users()]


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: int, _: AuthenticatedUser = Depends(require_admin)) -> UserOut:
    try:
        return UserOut.model_validate(user_service.get_user(user_id))
    except LedgerError as exc:
        raise to_http_exception(exc) from exc


@router.patch("/{user_id}/role", response_model=UserOut)
def change_role(
    user_id: int,
    payload: RoleUpdateRequest,
    _: AuthenticatedUser = Depends(require_admin),
) -> UserOut:
    try:
        return UserOut.model_validate(user_service.update_user_role(user_id, payload.role))
    except LedgerError as exc:
        raise to_http_exception(exc) from exc


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    current: AuthenticatedUser = Depends(require_admin),
) -> None:
    try:
        user_service.delete_user(user_id, acting_user_id=current.id)
    except LedgerError as exc:
        raise to_http_exception(exc) from exc
