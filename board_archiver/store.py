"""Store contracts consumed by the archiver, plus in-memory implementations."""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Protocol

from .models import Comment, Post, as_utc

logger = logging.getLogger("archiver.store")


class PostStore(Protocol):
    def list_unarchived(self) -> list[Post]:
        """Return every post whose archived flag is still false."""
        ...

    def archive(self, post_id: int) -> None:
        """Flip a post to archived.  Missing or already-archived posts are a no-op."""
        ...


class CommentStore(Protocol):
    def last_comment_for(self, post_id: int) -> Comment | None:
        """Return the most recent comment on a post, or None if it has none."""
        ...


class InMemoryPostStore:
    """Thread-safe dict-backed post store.  Listing keeps insertion order."""

    def __init__(self, posts: list[Post] | None = None) -> None:
        self._lock = threading.Lock()
        self._posts: dict[int, Post] = {}
        for post in posts or []:
            self.add(post)

    def add(self, post: Post) -> None:
        with self._lock:
            self._posts[post.id] = post

    def get(self, post_id: int) -> Post | None:
        with self._lock:
            return self._posts.get(post_id)

    def list_unarchived(self) -> list[Post]:
        with self._lock:
            return [p for p in self._posts.values() if not p.archived]

    def list_archived(self) -> list[Post]:
        with self._lock:
            return [p for p in self._posts.values() if p.archived]

    def archive(self, post_id: int) -> None:
        with self._lock:
            post = self._posts.get(post_id)
            if post is None or post.archived:
                logger.debug("Post %d missing or already archived", post_id)
                return
            self._posts[post_id] = replace(
                post, archived=True, archived_at=datetime.now(timezone.utc)
            )


class InMemoryCommentStore:
    """Thread-safe comment store keyed by post."""

    def __init__(self, comments: list[Comment] | None = None) -> None:
        self._lock = threading.Lock()
        self._by_post: dict[int, list[Comment]] = {}
        for comment in comments or []:
            self.add(comment)

    def add(self, comment: Comment) -> None:
        with self._lock:
            self._by_post.setdefault(comment.post_id, []).append(comment)

    def comments_for(self, post_id: int) -> list[Comment]:
        with self._lock:
            return list(self._by_post.get(post_id, []))

    def last_comment_for(self, post_id: int) -> Comment | None:
        with self._lock:
            comments = self._by_post.get(post_id)
            if not comments:
                return None
            return max(comments, key=lambda c: (as_utc(c.created_at), c.id))
