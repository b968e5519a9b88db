"""Archival policy – decides when a candidate post should be archived."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from .models import Comment, Post, as_utc

NO_COMMENTS = "no_comments"
INACTIVE = "inactive"


@dataclass(frozen=True)
class Decision:
    """Why a post is being archived and which timestamp triggered it."""
    reason: str
    reference: datetime
    idle_for: timedelta


@dataclass(frozen=True)
class ArchivalPolicy:
    """Time-threshold rule applied to each candidate post independently.

    A post without comments is archived once it is older than
    ``no_comment_ttl``.  A post with comments is archived once its most
    recent comment is older than ``comment_ttl``; the post's own age is
    ignored in that case.  Both comparisons are strictly greater-than, so a
    post sitting exactly on the threshold survives the cycle.
    """

    no_comment_ttl: timedelta = timedelta(minutes=10)
    comment_ttl: timedelta = timedelta(minutes=15)

    def evaluate(self, post: Post, last_comment: Comment | None, now: datetime) -> Decision | None:
        now = as_utc(now)
        if last_comment is None:
            reference = as_utc(post.created_at)
            idle = now - reference
            if idle > self.no_comment_ttl:
                return Decision(NO_COMMENTS, reference, idle)
            return None

        reference = as_utc(last_comment.created_at)
        idle = now - reference
        if idle > self.comment_ttl:
            return Decision(INACTIVE, reference, idle)
        return None
