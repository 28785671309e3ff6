import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Optional

from exco_nominations.config import PARTIAL_COMMIT_TIMEOUT_MINUTES
from exco_nominations.storage_mongo import SUBMISSION_MARKED

logger = logging.getLogger(__name__)


class VotingStatus(str, Enum):
    NOT_VOTED = "not_voted"
    VOTED = "already_voted"
    # Marked as submitted long ago but no ballot was ever stored; the voter may retry
    STALE_PARTIAL = "stale_partial"


class SubmissionGuard:
    """Answers "has this voter already submitted?" from the submission records.

    Store failures propagate to the caller. A failed check is never read as
    "not voted".
    """

    def __init__(self, storage, clock: Optional[Callable[[], datetime]] = None,
                 partial_timeout: timedelta = timedelta(minutes=PARTIAL_COMMIT_TIMEOUT_MINUTES)):
        self.storage = storage
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.partial_timeout = partial_timeout

    def partial_cutoff(self) -> datetime:
        return self.clock() - self.partial_timeout

    def status(self, voter_name: str) -> VotingStatus:
        submission = self.storage.find_submission(voter_name)
        if submission is None:
            return VotingStatus.NOT_VOTED
        if (
            submission.get("status") == SUBMISSION_MARKED
            and submission["submitted_at"] < self.partial_cutoff()
            and not self.storage.has_nomination(submission["id"])
        ):
            logger.warning(f"Unfinished submission found for {voter_name}; retry allowed")
            return VotingStatus.STALE_PARTIAL
        return VotingStatus.VOTED

    def has_voted(self, voter_name: str) -> bool:
        return self.storage.find_submission(voter_name) is not None
