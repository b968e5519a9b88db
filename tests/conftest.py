"""Shared fixtures for archiver tests."""

from datetime import datetime, timedelta, timezone

import pytest

from board_archiver.models import Comment, Post
from board_archiver.store import InMemoryCommentStore, InMemoryPostStore

NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    """Fixed reference time for policy decisions."""
    return NOW


@pytest.fixture
def clock(now):
    """Clock callable pinned to ``now``."""
    return lambda: now


@pytest.fixture
def make_post(now):
    """Factory for posts created ``minutes`` before ``now``."""

    def _make(post_id: int, minutes: float, archived: bool = False) -> Post:
        return Post(
            id=post_id,
            title=f"Post {post_id}",
            created_at=now - timedelta(minutes=minutes),
            archived=archived,
        )

    return _make


@pytest.fixture
def make_comment(now):
    """Factory for comments created ``minutes`` before ``now``."""

    def _make(comment_id: int, post_id: int, minutes: float) -> Comment:
        return Comment(
            id=comment_id,
            post_id=post_id,
            created_at=now - timedelta(minutes=minutes),
            content=f"Comment {comment_id}",
        )

    return _make


@pytest.fixture
def posts():
    return InMemoryPostStore()


@pytest.fixture
def comments():
    return InMemoryCommentStore()
