"""Gestion des utilisateurs (admin / manager) et vérification des mots de passe."""

from __future__ import annotations

import hashlib
import hmac
import logging
import os
import secrets

from sqlalchemy import exc as sa_exc

from .data_repository import get_engine
from .errors import (
    DuplicateUsername,
    LastAdminRemoval,
    SelfDeletion,
    UserNotFound,
    ValidationFailed,
)
from .repositories.base import SqlUnitOfWork
from .repositories.users import User
from .settings import AppSettings

_PASSWORD_ITERATIONS = 390_000
_HASH_ALGO = "pbkdf2_sha256"
ALLOWED_ROLES: tuple[str, ...] = ("admin", "manager")
MIN_PASSWORD_LENGTH = 6

logger = logging.getLogger(__name__)


def _unit_of_work() -> SqlUnitOfWork:
    return SqlUnitOfWork(get_engine())


def _hash_password(password: str) -> str:
    """Hache via PBKDF2 (format ``algo$iterations$salt$digest``)."""
    salt = secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, _PASSWORD_ITERATIONS)
    return f"{_HASH_ALGO}${_PASSWORD_ITERATIONS}${salt.hex()}${digest.hex()}"


def _verify_password(password: str, encoded: str) -> bool:
    try:
        algorithm, iter_str, salt_hex, digest_hex = encoded.split("$")
    except ValueError:
        return False

    if algorithm != _HASH_ALGO:
        return False

    try:
        iterations = int(iter_str)
        salt = bytes.fromhex(salt_hex)
        expected = bytes.fromhex(digest_hex)
    except ValueError:
        return False

    computed = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return hmac.compare_digest(computed, expected)


def _clean_role(role: str | None) -> str:
    cleaned = (role or "manager").strip().lower()
    if cleaned not in ALLOWED_ROLES:
        raise ValidationFailed(
            f"Invalid role. Choose one of {', '.join(ALLOWED_ROLES)}", field="role"
        )
    return cleaned


def register_user(username: str, password: str, role: str = "manager") -> User:
    username = (username or "").strip()
    password = password or ""
    if len(username) < 3 or len(username) > 50:
        raise ValidationFailed("Username must be between 3 and 50 characters", field="username")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationFailed(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long", field="password"
        )
    role = _clean_role(role)

    try:
        with _unit_of_work() as uow:
            if uow.users.get_by_username(username) is not None:
                raise DuplicateUsername(username)
            created = uow.users.add(User(id=None, username=username, role=role), _hash_password(password))
            uow.commit()
    except sa_exc.IntegrityError as exc:
        raise DuplicateUsername(username) from exc

    logger.info("User %s registered with role %s", created.username, created.role)
    return created


def authenticate_user(username: str, password: str) -> User | None:
    """Retourne l'utilisateur si les identifiants sont valides, sinon None."""

    if not username or not password:
        return None
    with _unit_of_work() as uow:
        found = uow.users.get_password_hash(username)
    if found is None:
        return None
    user, password_hash = found
    if not _verify_password(password, password_hash):
        logger.warning("Failed login for %s", username)
        return None
    return user


def get_user(user_id: int) -> User:
    with _unit_of_work() as uow:
        user = uow.users.get_by_id(user_id)
    if user is None:
        raise UserNotFound(user_id)
    return user


def list_users() -> list[User]:
    with _unit_of_work() as uow:
        return list(uow.users.list_all())


def update_user_role(user_id: int, role: str) -> User:
    """Modifie le rôle d'un utilisateur tout en protégeant le dernier admin."""

    role = _clean_role(role)
    with _unit_of_work() as uow:
        user = uow.users.get_by_id(user_id)
        if user is None:
            raise UserNotFound(user_id)
        if user.role == role:
            return user
        if user.role == "admin" and uow.users.count_admins() <= 1:
            raise LastAdminRemoval(user_id)
        uow.users.update_role(user_id, role)
        updated = uow.users.get_by_id(user_id)
        uow.commit()

    logger.info("User %s role changed to %s", user_id, role)
    return updated


def delete_user(user_id: int, *, acting_user_id: int | None = None) -> None:
    if acting_user_id is not None and int(acting_user_id) == int(user_id):
        raise SelfDeletion(user_id)
    with _unit_of_work() as uow:
        user = uow.users.get_by_id(user_id)
        if user is None:
            raise UserNotFound(user_id)
        if user.role == "admin" and uow.users.count_admins() <= 1:
            raise LastAdminRemoval(user_id)
        uow.users.delete(user_id)
        uow.commit()
    logger.info("User %s deleted", user_id)


def bootstrap_default_admin() -> User | None:
    """Crée un compte admin par défaut si aucun utilisateur n'existe."""

    if AppSettings.load().is_test or os.getenv("SKIP_USER_BOOTSTRAP"):
        return None

    with _unit_of_work() as uow:
        if uow.users.count() > 0:
            return None

    username = os.getenv("DEFAULT_ADMIN_USERNAME", "admin")
    password = os.getenv("DEFAULT_ADMIN_PASSWORD")
    if not password:
        logger.warning("No users and DEFAULT_ADMIN_PASSWORD unset: admin bootstrap skipped")
        return None
    return register_user(username, password, role="admin")
