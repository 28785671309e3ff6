"""Tests for the already-voted check."""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from exco_nominations.errors import AccessDeniedError, TransientError
from exco_nominations.guard import SubmissionGuard, VotingStatus
from tests.conftest import START


class TestSubmissionGuard:
    def test_no_submission_is_a_plain_no(self, storage):
        guard = SubmissionGuard(storage)
        assert guard.has_voted("Alice A") is False
        assert guard.status("Alice A") == VotingStatus.NOT_VOTED

    def test_committed_submission_means_voted(self, storage, clock):
        storage.insert_submission("v1", "Alice A", START)
        storage.mark_submission_committed("v1")
        clock.advance(days=3)

        guard = SubmissionGuard(storage, clock=clock)

        assert guard.has_voted("Alice A")
        assert guard.status("Alice A") == VotingStatus.VOTED

    def test_lookup_is_exact(self, storage):
        storage.insert_submission("v1", "Alice A", START)
        guard = SubmissionGuard(storage)
        assert not guard.has_voted("alice a")
        assert not guard.has_voted("Alice A ")

    def test_recent_unfinished_submission_still_counts_as_voted(self, storage, clock):
        storage.insert_submission("v1", "Alice A", START)
        clock.advance(minutes=10)
        assert SubmissionGuard(storage, clock=clock).status("Alice A") == VotingStatus.VOTED

    def test_old_unfinished_submission_without_ballot_is_stale(self, storage, clock):
        storage.insert_submission("v1", "Alice A", START)
        clock.advance(minutes=30)
        guard = SubmissionGuard(storage, clock=clock)
        assert guard.status("Alice A") == VotingStatus.STALE_PARTIAL
        # The plain yes/no answer stays conservative
        assert guard.has_voted("Alice A")

    def test_old_unfinished_submission_with_ballot_is_voted(self, storage, clock):
        storage.insert_submission("v1", "Alice A", START)
        storage.insert_nomination({"voter_id": "v1", "voter_name": "Alice A"})
        clock.advance(minutes=30)
        assert SubmissionGuard(storage, clock=clock).status("Alice A") == VotingStatus.VOTED

    def test_custom_timeout(self, storage, clock):
        storage.insert_submission("v1", "Alice A", START)
        clock.advance(minutes=2)
        guard = SubmissionGuard(storage, clock=clock, partial_timeout=timedelta(minutes=1))
        assert guard.status("Alice A") == VotingStatus.STALE_PARTIAL

    @pytest.mark.parametrize("error", [TransientError("offline"), AccessDeniedError("policy")])
    def test_store_failures_propagate(self, error):
        storage = MagicMock()
        storage.find_submission.side_effect = error
        with pytest.raises(type(error)):
            SubmissionGuard(storage).has_voted("Alice A")
