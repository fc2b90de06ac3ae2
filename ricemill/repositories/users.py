"""
User Repository - Data access for app_users table.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, Sequence

import sqlalchemy as sa

from ricemill.schema import app_users

from .base import SqlRepository


@dataclass
class User:
    """User entity (sans le hash du mot de passe)."""

    id: int | None
    username: str
    role: str = "manager"
    created_at: datetime | None = None
    updated_at: datetime | None = None


class UserRepository(Protocol):
    """User repository interface."""

    def get_by_id(self, id: int) -> User | None:
        ...

    def get_by_username(self, username: str) -> User | None:
        ...

    def get_password_hash(self, username: str) -> tuple[User, str] | None:
        ...

    def list_all(self) -> Sequence[User]:
        ...

    def count(self) -> int:
        ...

    def count_admins(self) -> int:
        ...

    def add(self, user: User, password_hash: str) -> User:
        ...

    def update_role(self, user_id: int, role: str) -> None:
        ...

    def delete(self, user_id: int) -> bool:
        ...


class SqlUserRepository(SqlRepository):
    """SQLAlchemy implementation of UserRepository."""

    _columns = (
        app_users.c.id,
        app_users.c.username,
        app_users.c.role,
        app_users.c.created_at,
        app_users.c.updated_at,
    )

    def get_by_id(self, id: int) -> User | None:
        row = self._conn.execute(
            sa.select(*self._columns).where(app_users.c.id == id)
        ).mappings().first()
        return self._row_to_user(row) if row else None

    def get_by_username(self, username: str) -> User | None:
        row = self._conn.execute(
            sa.select(*self._columns).where(
                sa.func.lower(app_users.c.username) == username.strip().lower()
            )
        ).mappings().first()
        return self._row_to_user(row) if row else None

    def get_password_hash(self, username: str) -> tuple[User, str] | None:
        row = self._conn.execute(
            sa.select(*self._columns, app_users.c.password_hash).where(
                sa.func.lower(app_users.c.username) == username.strip().lower()
            )
        ).mappings().first()
        if not row:
            return None
        return self._row_to_user(row), row["password_hash"]

    def list_all(self) -> Sequence[User]:
        rows = self._conn.execute(
            sa.select(*self._columns).order_by(app_users.c.created_at.asc(), app_users.c.username.asc())
        ).mappings()
        return [self._row_to_user(row) for row in rows]

    def count(self) -> int:
        return int(self._conn.execute(sa.select(sa.func.count()).select_from(app_users)).scalar_one())

    def count_admins(self) -> int:
        return int(
            self._conn.execute(
                sa.select(sa.func.count()).select_from(app_users).where(app_users.c.role == "admin")
            ).scalar_one()
        )

    def add(self, user: User, password_hash: str) -> User:
        result = self._conn.execute(
            app_users.insert().values(
                username=user.username,
                password_hash=password_hash,
                role=user.role,
            )
        )
        return self.get_by_id(result.inserted_primary_key[0])

    def update_role(self, user_id: int, role: str) -> None:
        self._conn.execute(
            app_users.update()
            .where(app_users.c.id == user_id)
            .values(role=role, updated_at=sa.func.current_timestamp())
        )

    def delete(self, user_id: int) -> bool:
        result = self._conn.execute(app_users.delete().where(app_users.c.id == user_id))
        return result.rowcount > 0

    @staticmethod
    def _row_to_user(row) -> User:
        return User(
            id=int(row["id"]),
            username=row["username"],
            role=row["role"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
