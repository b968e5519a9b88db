"""Core archival scheduler – periodically moves stale posts to the archive."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from .errors import ArchiverError, CandidateListError
from .models import as_utc
from .policy import ArchivalPolicy
from .store import CommentStore, PostStore

logger = logging.getLogger("archiver.core")

DEFAULT_INTERVAL = 60.0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _seconds(interval: float | timedelta) -> float:
    value = interval.total_seconds() if isinstance(interval, timedelta) else float(interval)
    if value <= 0:
        raise ValueError(f"interval must be positive, got {interval!r}")
    return value


@dataclass(frozen=True)
class ArchiverStats:
    """Point-in-time copy of the archiver's counters."""
    last_run: datetime | None
    archived_count: int
    error_count: int
    is_running: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "archived_count": self.archived_count,
            "error_count": self.error_count,
            "is_running": self.is_running,
        }


@dataclass(frozen=True)
class CycleReport:
    """Outcome of a single pass over the candidate posts."""
    started_at: datetime
    candidates: int
    archived: tuple[int, ...]
    errors: int
    dry_run: bool = False
    interrupted: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "candidates": self.candidates,
            "archived": list(self.archived),
            "errors": self.errors,
            "dry_run": self.dry_run,
            "interrupted": self.interrupted,
        }


class Archiver:
    """Background job that archives posts once they go quiet.

    Every ``interval`` seconds the loop lists all unarchived posts, looks up
    each post's latest comment and applies the :class:`ArchivalPolicy`.
    A failure on one post is logged and counted, then the cycle moves on.
    Anything unexpected escaping a cycle is caught at the tick boundary so
    the loop keeps running.

    Example:
        >>> archiver = Archiver(PostRepository(db), CommentRepository(db))
        >>> archiver.start()
        >>> archiver.stats().archived_count
        >>> archiver.stop()
    """

    def __init__(
        self,
        posts: PostStore,
        comments: CommentStore,
        *,
        interval: float | timedelta = DEFAULT_INTERVAL,
        policy: ArchivalPolicy | None = None,
        dry_run: bool = False,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._posts = posts
        self._comments = comments
        self._interval = _seconds(interval)
        self.policy = policy or ArchivalPolicy()
        self.dry_run = dry_run
        self._clock = clock or _utcnow

        # Counters only; never held across a store call
        self._stats_lock = threading.Lock()
        self._last_run: datetime | None = None
        self._archived_count = 0
        self._error_count = 0
        self._running = False

        # Manual run_cycle() calls and the loop take turns
        self._cycle_lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._stop_event: threading.Event | None = None

    # ── configuration ────────────────────────────────────────────

    @property
    def interval(self) -> float:
        return self._interval

    def set_interval(self, interval: float | timedelta) -> None:
        """Change the tick period.  A wait already in progress is not reset."""
        self._interval = _seconds(interval)
        logger.debug("Archiver interval set to %.2fs", self._interval)

    # ── stats ────────────────────────────────────────────────────

    def stats(self) -> ArchiverStats:
        with self._stats_lock:
            return ArchiverStats(
                last_run=self._last_run,
                archived_count=self._archived_count,
                error_count=self._error_count,
                is_running=self._running,
            )

    def _count_error(self) -> None:
        with self._stats_lock:
            self._error_count += 1

    def _count_archived(self) -> None:
        with self._stats_lock:
            self._archived_count += 1

    # ── lifecycle ────────────────────────────────────────────────

    def start(self, stop_event: threading.Event | None = None) -> threading.Thread:
        """Launch the recurring loop in a daemon thread and return immediately.

        ``stop_event`` is the cancellation signal; when omitted the archiver
        creates its own, which :meth:`stop` sets.  Calling ``start`` while the
        loop is running returns the existing thread; passing a different
        event to a running loop raises :class:`ArchiverError`.  A loop that
        has been told to stop but is still finishing its cycle does not count
        as running: a fresh loop is started and the old one exits on its own.
        """
        with self._stats_lock:
            current, event = self._thread, self._stop_event
            if self._running and current is not None and event is not None and not event.is_set():
                if stop_event is not None and stop_event is not event:
                    raise ArchiverError("archiver already running with a different stop event")
                logger.warning("Archiver already running")
                return current
            if current is not None and current.is_alive():
                logger.info("Previous archiver loop is still finishing its cycle")
            self._running = True
            self._stop_event = stop_event or threading.Event()
            self._thread = threading.Thread(
                target=self._loop, args=(self._stop_event,), name="archiver", daemon=True
            )
            thread = self._thread
        logger.info("Starting archiver (interval=%.2fs, dry_run=%s)", self._interval, self.dry_run)
        thread.start()
        return thread

    def stop(self, timeout: float | None = None) -> None:
        """Signal the loop to exit and wait for it.

        This sets the loop's stop event, which is the caller's own event when
        one was passed to :meth:`start`.  A cycle in progress finishes the
        post it is working on first.
        """
        with self._stats_lock:
            event, thread = self._stop_event, self._thread
        if event is None or thread is None:
            return
        logger.info("Stopping archiver")
        event.set()
        if thread is not threading.current_thread():
            thread.join(timeout)
            if thread.is_alive():
                logger.warning("Archiver thread did not stop within %.1fs", timeout or 0.0)

    def _loop(self, stop_event: threading.Event) -> None:
        try:
            # wait() returns True once the event is set
            while not stop_event.wait(self._interval):
                self._tick(stop_event)
        finally:
            with self._stats_lock:
                # A newer loop may already have taken over
                if self._thread is threading.current_thread():
                    self._running = False
            logger.info("Archiver stopped")

    def _tick(self, stop_event: threading.Event | None = None) -> None:
        try:
            self.run_cycle(stop_event)
        except CandidateListError:
            pass  # logged and counted by run_cycle
        except Exception:
            logger.exception("Unexpected failure in archiver cycle")
            self._count_error()

    # ── cycle ────────────────────────────────────────────────────

    def run_cycle(self, stop_event: threading.Event | None = None) -> CycleReport:
        """Evaluate every candidate post once and archive the stale ones.

        Blocks until all candidates are processed.  Per-post failures are
        reported through the stats and the returned report; only a failure
        to list candidates raises (:class:`CandidateListError`).  When
        ``stop_event`` is set mid-cycle, the remaining posts are left for
        a later cycle.
        """
        with self._cycle_lock:
            now = as_utc(self._clock())
            with self._stats_lock:
                self._last_run = now
            logger.debug("Checking posts for archival")

            try:
                posts = self._posts.list_unarchived()
            except Exception as exc:
                logger.error("Failed to list posts for archival: %s", exc)
                self._count_error()
                raise CandidateListError(f"could not list candidate posts: {exc}") from exc

            archived: list[int] = []
            errors = 0
            interrupted = False

            for idx, post in enumerate(posts):
                if stop_event is not None and stop_event.is_set():
                    interrupted = True
                    logger.info(
                        "Archiver cycle interrupted, %d posts left for the next run",
                        len(posts) - idx,
                    )
                    break

                try:
                    last_comment = self._comments.last_comment_for(post.id)
                except Exception as exc:
                    # Post stays a candidate for the next cycle
                    logger.error("Failed to fetch last comment for post %d: %s", post.id, exc)
                    self._count_error()
                    errors += 1
                    continue

                decision = self.policy.evaluate(post, last_comment, now)
                if decision is None:
                    continue

                if self.dry_run:
                    logger.info(
                        "Would archive post %d (%s, idle for %s)",
                        post.id, decision.reason, decision.idle_for,
                    )
                    archived.append(post.id)
                    continue

                try:
                    self._posts.archive(post.id)
                except Exception as exc:
                    logger.error("Failed to archive post %d: %s", post.id, exc)
                    self._count_error()
                    errors += 1
                    continue

                self._count_archived()
                archived.append(post.id)
                logger.info(
                    "Archived post %d (%s, last activity %s)",
                    post.id, decision.reason, decision.reference.isoformat(),
                )

            if archived and not self.dry_run:
                logger.info(
                    "Archival cycle done: %d archived, %d total",
                    len(archived), self.stats().archived_count,
                )

            return CycleReport(
                started_at=now,
                candidates=len(posts),
                archived=tuple(archived),
                errors=errors,
                dry_run=self.dry_run,
                interrupted=interrupted,
            )
