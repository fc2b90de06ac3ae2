"""Configuration centralisée (core) avec validation minimale."""

from __future__ import annotations

import os
from dataclasses import dataclass, field


def _bool_env(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _list_env(*names: str) -> list[str]:
    for name in names:
        raw = os.getenv(name)
        if raw:
            return [entry.strip() for entry in raw.split(",") if entry.strip()]
    return []


@dataclass(frozen=True)
class AppSettings:
    app_env: str = "development"
    db_pool_size: int = 10
    db_pool_max_overflow: int = 20
    db_echo: bool = False
    cors_allowed_origins: list[str] = field(default_factory=list)
    jwt_secret_keys: list[str] = field(default_factory=list)

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @staticmethod
    def load() -> "AppSettings":
        # Lecture à l'appel (et non à l'import) pour que les tests puissent basculer de base.
        return AppSettings(
            app_env=os.getenv("APP_ENV", os.getenv("ENV", "development")).strip().lower(),
            db_pool_size=int(os.getenv("DB_POOL_SIZE", "10")),
            db_pool_max_overflow=int(os.getenv("DB_POOL_MAX_OVERFLOW", "20")),
            db_echo=_bool_env("DB_ECHO"),
            cors_allowed_origins=_list_env("CORS_ALLOWED_ORIGINS"),
            jwt_secret_keys=_list_env("JWT_SECRET_KEYS", "JWT_SECRET_KEY"),
        )
