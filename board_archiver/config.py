"""Configuration and environment settings for the archiver."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from datetime import timedelta
from typing import Any

from .policy import ArchivalPolicy


def _env_seconds(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number of seconds, got {raw!r}") from None
    return value


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class DatabaseConfig:
    host: str = "localhost"
    port: int = 5432
    dbname: str = "board"
    user: str = "board"
    password: str = "board"

    @property
    def dsn(self) -> str:
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.dbname}"

    @classmethod
    def from_env(cls) -> DatabaseConfig:
        return cls(
            host=os.getenv("DB_HOST", "localhost"),
            port=int(os.getenv("DB_PORT", "5432")),
            dbname=os.getenv("DB_NAME", "board"),
            user=os.getenv("DB_USER", "board"),
            password=os.getenv("DB_PASSWORD", "board"),
        )


@dataclass(frozen=True)
class ArchiverConfig:
    """Scheduler settings.  Durations are in seconds."""
    interval: float = 60.0
    no_comment_ttl: float = 600.0  # posts nobody replied to
    comment_ttl: float = 900.0  # measured from the last comment
    dry_run: bool = False

    def __post_init__(self) -> None:
        for name in ("interval", "no_comment_ttl", "comment_ttl"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")

    def policy(self) -> ArchivalPolicy:
        return ArchivalPolicy(
            no_comment_ttl=timedelta(seconds=self.no_comment_ttl),
            comment_ttl=timedelta(seconds=self.comment_ttl),
        )

    def with_overrides(self, **overrides: Any) -> ArchiverConfig:
        """Return a copy with every override that is not None applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    @classmethod
    def from_env(cls) -> ArchiverConfig:
        return cls(
            interval=_env_seconds("ARCHIVER_INTERVAL", 60.0),
            no_comment_ttl=_env_seconds("ARCHIVER_NO_COMMENT_TTL", 600.0),
            comment_ttl=_env_seconds("ARCHIVER_COMMENT_TTL", 900.0),
            dry_run=_env_flag("ARCHIVER_DRY_RUN"),
        )

