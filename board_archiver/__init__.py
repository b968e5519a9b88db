"""
Board Archiver – background archival of stale imageboard posts.

Supports:
  • Periodic scans of every unarchived post on a fixed interval
  • Archiving posts with no replies after a quiet period
  • Archiving threads once the last comment has gone stale
  • Manual single-cycle runs and dry runs
  • Run statistics that survive per-post and per-cycle failures
"""

from .archiver import Archiver, ArchiverStats, CycleReport
from .errors import ArchiverError, CandidateListError, StoreError
from .models import Comment, Post
from .policy import ArchivalPolicy, Decision
from .store import CommentStore, InMemoryCommentStore, InMemoryPostStore, PostStore

__all__ = [
    "ArchivalPolicy",
    "Archiver",
    "ArchiverError",
    "ArchiverStats",
    "CandidateListError",
    "Comment",
    "CommentStore",
    "CycleReport",
    "Decision",
    "InMemoryCommentStore",
    "InMemoryPostStore",
    "Post",
    "PostStore",
    "StoreError",
]
