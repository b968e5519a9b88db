"""Post and comment records as seen by the archiver."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone


def as_utc(ts: datetime) -> datetime:
    """Treat naive timestamps as UTC so they compare with aware ones."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


@dataclass(frozen=True)
class Post:
    id: int
    created_at: datetime
    archived: bool = False
    archived_at: datetime | None = None
    title: str = ""
    content: str = ""
    image_url: str | None = None
    user_id: int | None = None
    user_name: str = "Anonymous"
    avatar_url: str | None = None


@dataclass(frozen=True)
class Comment:
    id: int
    post_id: int
    created_at: datetime
    parent_id: int | None = None
    user_id: int | None = None
    user_name: str = "Anonymous"
    avatar_url: str | None = None
    content: str = ""
