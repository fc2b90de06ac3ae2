"""Authentification JWT et contrôle d'accès de la rizerie.

Deux rôles existent :

* ``manager`` : saisit fournisseurs, achats, ventes et factures, consulte les
  rapports ;
* ``admin`` : mêmes droits, plus la gestion des comptes (``/users``,
  ``/auth/register``).

Le jeton porte ``sub`` (id utilisateur), ``username``, ``role``, ``exp`` et un
``jti`` qui permet de le révoquer à la déconnexion. Plusieurs clés peuvent être
configurées (``JWT_SECRET_KEYS``) : la première signe, toutes vérifient.
"""

from __future__ import annotations

import logging
import os
import time
import uuid
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Callable

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from pydantic import BaseModel

from ricemill.repositories.users import User
from ricemill.user_service import ALLOWED_ROLES
from ricemill_api.settings import Settings


DEFAULT_SECRET = "ricemill-development-secret-change-me-in-prod"
DEFAULT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("JWT_ACCESS_TOKEN_EXPIRE_MINUTES", "120"))

# Rôles autorisés à écrire dans les registres (achats, ventes, factures...).
LEDGER_ROLES = frozenset({"manager", "admin"})
ADMIN_ROLE = "admin"

logger = logging.getLogger(__name__)


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


class AuthenticatedUser(BaseModel):
    """Utilisateur reconstruit à partir des claims du jeton."""

    id: int
    username: str
    role: str


class RevokedTokens:
    """Registre en mémoire des ``jti`` révoqués, purgé à leur expiration."""

    def __init__(self) -> None:
        self._until: dict[str, float] = {}

    def revoke(self, jti: str, expires_at: float) -> None:
        self._until[jti] = expires_at

    def is_revoked(self, jti: str) -> bool:
        expires_at = self._until.get(jti)
        if expires_at is None:
            return False
        if time.time() > expires_at:
            self._until.pop(jti, None)
            return False
        return True

    def purge(self) -> None:
        now = time.time()
        for jti in [jti for jti, expires_at in self._until.items() if expires_at <= now]:
            self._until.pop(jti, None)


revoked_tokens = RevokedTokens()


def _is_production_env(settings: Settings) -> bool:
    return settings.app_env in {"prod", "production", "staging"}


@lru_cache(maxsize=1)
def _secret_keys() -> tuple[str, ...]:
    settings = Settings.load()
    keys = list(settings.jwt_secret_keys)

    if not keys:
        if _is_production_env(settings) and not settings.allow_insecure_jwt_default:
            raise RuntimeError("JWT_SECRET_KEY missing: refusing to start in a sensitive environment")
        logger.warning("Using default JWT secret; set JWT_SECRET_KEY/JWT_SECRET_KEYS in production")
        keys = [DEFAULT_SECRET]

    if any(len(key) < 32 for key in keys):
        raise RuntimeError("JWT secret too short (<32 characters). Generate a stronger key.")
    return tuple(keys)


def _algorithm() -> str:
    return os.getenv("JWT_ALGORITHM", DEFAULT_ALGORITHM)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def create_access_token(claims: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    payload = claims.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    payload.update({"exp": expire, "jti": uuid.uuid4().hex})
    return jwt.encode(payload, _secret_keys()[0], algorithm=_algorithm())


def issue_access_token(user: User) -> str:
    """Jeton d'accès pour un compte authentifié."""

    return create_access_token({"sub": str(user.id), "username": user.username, "role": user.role})


def _decode_token(token: str) -> dict[str, Any]:
    last_error: Exception | None = None
    for key in _secret_keys():
        try:
            payload = jwt.decode(token, key, algorithms=[_algorithm()])
        except jwt.ExpiredSignatureError as exc:
            raise _unauthorized("Token expired") from exc
        except jwt.InvalidTokenError as exc:
            last_error = exc
            continue
        if revoked_tokens.is_revoked(str(payload.get("jti") or "")):
            raise _unauthorized("Token revoked")
        return payload

    raise _unauthorized("Invalid token") from last_error


def get_current_user(token: str = Depends(oauth2_scheme)) -> AuthenticatedUser:
    payload = _decode_token(token)
    try:
        user_id = int(payload["sub"])
        username = str(payload["username"])
        role = str(payload["role"]).lower()
    except (KeyError, TypeError, ValueError) as exc:
        raise _unauthorized("Token is missing required claims") from exc

    if role not in ALLOWED_ROLES:
        raise _unauthorized("Unknown role in token")

    revoked_tokens.purge()
    return AuthenticatedUser(id=user_id, username=username, role=role)


def require_roles(*roles: str) -> Callable[[AuthenticatedUser], AuthenticatedUser]:
    allowed = {role.lower() for role in roles} or set(ALLOWED_ROLES)

    def _checker(user: AuthenticatedUser = Depends(get_current_user)) -> AuthenticatedUser:
        if user.role not in allowed:
            logger.warning("User %s (%s) refused: requires %s", user.username, user.role, sorted(allowed))
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient role for this resource",
            )
        return user

    return _checker


require_admin = require_roles(ADMIN_ROLE)


def require_ledger_access(
    request: Request, user: AuthenticatedUser = Depends(get_current_user)
) -> AuthenticatedUser:
    """Garde commune des routes métier : lecture pour tout compte, écriture pour les rôles de saisie."""

    if request.method.upper() in {"POST", "PUT", "PATCH", "DELETE"} and user.role not in LEDGER_ROLES:
        logger.warning("Write %s %s refused for %s", request.method, request.url.path, user.username)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Manager or admin role required to modify data",
        )
    return user


def revoke_token(token: str) -> None:
    """Révoque un jeton (déconnexion) jusqu'à son expiration naturelle."""

    try:
        payload = jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError:
        return

    jti = payload.get("jti")
    exp = payload.get("exp")
    if jti and exp:
        revoked_tokens.revoke(str(jti), float(exp))
