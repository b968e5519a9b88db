"""
Unit tests for single archival cycles.

Tests cover:
- The reference four-post scenario
- Idempotence across cycles
- Per-post failure isolation
- Candidate listing failures
- Dry runs and stats snapshots
"""

from datetime import timedelta

import pytest

from board_archiver.archiver import Archiver, ArchiverStats
from board_archiver.errors import CandidateListError
from board_archiver.policy import ArchivalPolicy
from tests.fakes import FailingCommentStore, FailingPostStore


class TestRunCycle:
    """Tests for Archiver.run_cycle."""

    @pytest.fixture
    def scenario(self, posts, comments, make_post, make_comment):
        """A: old, uncommented. B: new. C: stale comment. D: fresh comment."""
        posts.add(make_post(1, 15))
        posts.add(make_post(2, 5))
        posts.add(make_post(3, 30))
        posts.add(make_post(4, 30))
        comments.add(make_comment(1, 3, 20))
        comments.add(make_comment(2, 4, 10))
        return posts, comments

    @pytest.fixture
    def archiver(self, scenario, clock):
        posts, comments = scenario
        return Archiver(posts, comments, clock=clock)

    def test_reference_scenario(self, archiver, posts):
        """One cycle archives exactly posts A and C."""
        report = archiver.run_cycle()

        assert report.archived == (1, 3)
        assert report.candidates == 4
        assert report.errors == 0
        assert {p.id for p in posts.list_archived()} == {1, 3}
        assert {p.id for p in posts.list_unarchived()} == {2, 4}

    def test_stats_after_cycle(self, archiver, now):
        """Stats record the run time and archived count."""
        archiver.run_cycle()

        stats = archiver.stats()
        assert stats.last_run == now
        assert stats.archived_count == 2
        assert stats.error_count == 0
        assert stats.is_running is False

    def test_second_cycle_archives_nothing(self, archiver):
        """Running twice without new activity is idempotent."""
        archiver.run_cycle()
        report = archiver.run_cycle()

        assert report.archived == ()
        assert report.candidates == 2
        assert archiver.stats().archived_count == 2

    def test_archived_posts_not_reconsidered(self, scenario, clock):
        """Archived posts never reach the archive call again."""
        _, comments = scenario
        posts = FailingPostStore(scenario[0].list_unarchived())
        archiver = Archiver(posts, comments, clock=clock)

        archiver.run_cycle()
        archiver.run_cycle()

        assert posts.archive_calls == [1, 3]

    def test_processes_in_store_order(self, posts, comments, make_post, clock):
        """Candidates are handled in the order the store returns them."""
        for pid in (7, 3, 9):
            posts.add(make_post(pid, 20))
        archiver = Archiver(posts, comments, clock=clock)

        assert archiver.run_cycle().archived == (7, 3, 9)

    def test_empty_store(self, posts, comments, clock):
        """A cycle over no candidates still updates last_run."""
        archiver = Archiver(posts, comments, clock=clock)

        report = archiver.run_cycle()

        assert report.candidates == 0
        assert archiver.stats().last_run is not None

    def test_post_becomes_eligible_later(self, posts, comments, make_post, now):
        """A post kept in one cycle is archived once it ages past the threshold."""
        posts.add(make_post(1, 8))
        current = [now]
        archiver = Archiver(posts, comments, clock=lambda: current[0])

        assert archiver.run_cycle().archived == ()
        current[0] = now + timedelta(minutes=3)
        assert archiver.run_cycle().archived == (1,)

    def test_custom_policy(self, posts, comments, make_post, clock):
        """The archiver applies the injected policy."""
        posts.add(make_post(1, 3))
        policy = ArchivalPolicy(no_comment_ttl=timedelta(minutes=2))
        archiver = Archiver(posts, comments, policy=policy, clock=clock)

        assert archiver.run_cycle().archived == (1,)


class TestFailureIsolation:
    """Per-post and per-cycle failures never abort the run."""

    def test_comment_lookup_failure_skips_only_that_post(self, make_post, clock):
        """Other candidates are still evaluated and archived."""
        posts = FailingPostStore([make_post(1, 20), make_post(2, 20), make_post(3, 20)])
        comments = FailingCommentStore(failing={2})
        archiver = Archiver(posts, comments, clock=clock)

        report = archiver.run_cycle()

        assert report.archived == (1, 3)
        assert report.errors == 1
        assert archiver.stats().error_count == 1
        # skipped, not treated as uncommented
        assert posts.get(2).archived is False

    def test_archive_failure_keeps_post_as_candidate(self, make_post, comments, clock):
        """A failed archive write leaves the post for the next cycle."""
        posts = FailingPostStore([make_post(1, 20), make_post(2, 20)], fail_archive={1})
        archiver = Archiver(posts, comments, clock=clock)

        report = archiver.run_cycle()
        assert report.archived == (2,)
        assert report.errors == 1

        posts.fail_archive.clear()
        report = archiver.run_cycle()
        assert report.archived == (1,)

        stats = archiver.stats()
        assert stats.archived_count == 2
        assert stats.error_count == 1

    def test_list_failure_raises_and_counts(self, comments, clock):
        """A failed candidate listing aborts the cycle with one error."""
        archiver = Archiver(FailingPostStore(fail_list=True), comments, clock=clock)

        with pytest.raises(CandidateListError):
            archiver.run_cycle()

        stats = archiver.stats()
        assert stats.error_count == 1
        assert stats.last_run is not None

    def test_tick_counts_unexpected_fault_once(self, posts, comments, make_post):
        """An unexpected exception is caught at the tick boundary."""
        posts.add(make_post(1, 20))

        def broken_clock():
            raise RuntimeError("clock exploded")

        archiver = Archiver(posts, comments, clock=broken_clock)
        archiver._tick()
        archiver._tick()

        assert archiver.stats().error_count == 2

    def test_tick_does_not_double_count_list_failure(self, comments, clock):
        """Listing failures are counted by the cycle, not again by the tick."""
        archiver = Archiver(FailingPostStore(fail_list=True), comments, clock=clock)

        archiver._tick()

        assert archiver.stats().error_count == 1


class TestDryRun:
    """Tests for dry-run cycles."""

    def test_dry_run_does_not_archive(self, make_post, comments, clock):
        """Dry runs report candidates without writing."""
        posts = FailingPostStore([make_post(1, 20), make_post(2, 1)])
        archiver = Archiver(posts, comments, dry_run=True, clock=clock)

        report = archiver.run_cycle()

        assert report.dry_run is True
        assert report.archived == (1,)
        assert posts.archive_calls == []
        assert archiver.stats().archived_count == 0


class TestStatsAndInterval:
    """Tests for stats snapshots and interval configuration."""

    def test_stats_is_a_copy(self, posts, comments, make_post, clock):
        """Snapshots do not change after later cycles."""
        archiver = Archiver(posts, comments, clock=clock)
        before = archiver.stats()

        posts.add(make_post(1, 20))
        archiver.run_cycle()

        assert before == ArchiverStats(None, 0, 0, False)
        assert archiver.stats().archived_count == 1

    def test_stats_to_dict(self, posts, comments, clock, now):
        """to_dict renders an ISO timestamp."""
        archiver = Archiver(posts, comments, clock=clock)
        archiver.run_cycle()

        assert archiver.stats().to_dict() == {
            "last_run": now.isoformat(),
            "archived_count": 0,
            "error_count": 0,
            "is_running": False,
        }

    def test_default_interval(self, posts, comments):
        """The loop ticks every minute by default."""
        assert Archiver(posts, comments).interval == 60.0

    def test_set_interval_accepts_timedelta(self, posts, comments):
        archiver = Archiver(posts, comments)

        archiver.set_interval(timedelta(seconds=5))
        assert archiver.interval == 5.0

        archiver.set_interval(0.25)
        assert archiver.interval == 0.25

    @pytest.mark.parametrize("bad", [0, -1, timedelta(0)])
    def test_set_interval_rejects_non_positive(self, posts, comments, bad):
        archiver = Archiver(posts, comments)

        with pytest.raises(ValueError):
            archiver.set_interval(bad)
