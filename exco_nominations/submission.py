import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Optional

from exco_nominations.config import POSITIONS, STATEMENT_MAX_LENGTH, Position
from exco_nominations.errors import (
    ConflictError,
    ErrorKind,
    NominationError,
    PartialCommitError,
    ValidationError,
)
from exco_nominations.guard import SubmissionGuard, VotingStatus
from exco_nominations.models.nomination_model import NominationIn

logger = logging.getLogger(__name__)

ALREADY_VOTED_MESSAGE = "This member has already submitted their nominations. Each member can only vote once."


class CommitState(str, Enum):
    STARTED = "started"
    VOTER_MARKED = "voter_marked"
    NOMINATION_COMMITTED = "nomination_committed"
    FAILED = "failed"                  # nothing was written
    FAILED_PARTIAL = "failed_partial"  # voter marked, ballot missing


@dataclass
class SubmissionResult:
    ok: bool
    state: CommitState
    voter_name: str = ""
    submitted_at: Optional[datetime] = None
    error_kind: Optional[ErrorKind] = None
    message: str = ""
    field: Optional[str] = None
    warnings: List[str] = dataclasses.field(default_factory=list)


def validate_nomination(nomination: NominationIn) -> None:
    """Local checks only; raises ValidationError naming the first failing field."""
    if not nomination.voter_name or not nomination.voter_name.strip():
        raise ValidationError("voter_name", "Please select your name from the list.")
    for position in POSITIONS:
        nominee = nomination.nominee_for(position)
        if not nominee or not nominee.strip():
            raise ValidationError(position.value, f"Please select a nominee for {position.label}.")
    statement = nomination.statement_of_purpose
    if statement is not None and len(statement) > STATEMENT_MAX_LENGTH:
        raise ValidationError(
            "statement_of_purpose",
            f"Statement of purpose must be {STATEMENT_MAX_LENGTH} characters or fewer.",
        )


class NominationSubmitter:
    """Records one ballot per voter.

    The commit runs in two ordered steps: the voter is marked as submitted,
    then the ballot is stored. A failure between the two leaves the voter in
    ``FAILED_PARTIAL``; the guard lets such a voter retry once the marker is
    older than the partial-commit timeout.
    """

    def __init__(self, storage, guard: Optional[SubmissionGuard] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.storage = storage
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.guard = guard or SubmissionGuard(storage, clock=self.clock)

    def check_voted(self, voter_name: str) -> bool:
        return self.guard.has_voted(voter_name)

    def submit(self, nomination: NominationIn,
               original_names: Optional[Dict[Position, str]] = None,
               record_candidates: bool = False) -> SubmissionResult:
        state = CommitState.STARTED
        try:
            validate_nomination(nomination)
            voter = self._eligible_voter(nomination.voter_name)
            self._ensure_not_voted(voter)

            submitted_at = self.clock()
            try:
                self.storage.insert_submission(voter["id"], voter["full_name"], submitted_at)
            except ConflictError:
                # Lost a race with another submission for the same voter
                raise ConflictError(ALREADY_VOTED_MESSAGE)
            state = CommitState.VOTER_MARKED

            try:
                self.storage.insert_nomination(self._record(nomination, voter, submitted_at))
            except NominationError as e:
                logger.error(f"Voter {voter['full_name']} marked as submitted but ballot not stored: {e.message}")
                raise PartialCommitError(
                    "Your nominations could not be saved. Please contact an administrator before trying again.",
                    voter_id=voter["id"],
                )
            state = CommitState.NOMINATION_COMMITTED
        except NominationError as e:
            failed = CommitState.FAILED_PARTIAL if state == CommitState.VOTER_MARKED else CommitState.FAILED
            return SubmissionResult(
                ok=False,
                state=failed,
                voter_name=nomination.voter_name,
                error_kind=e.kind,
                message=e.message,
                field=getattr(e, "field", None),
            )

        warnings = []
        try:
            self.storage.mark_submission_committed(voter["id"])
        except NominationError as e:
            logger.warning(f"Ballot stored for {voter['full_name']} but submission status not updated: {e.message}")
        if record_candidates:
            warnings.extend(self._record_candidates(nomination, original_names or {}))

        logger.info(f"Nominations submitted by {voter['full_name']}")
        return SubmissionResult(
            ok=True,
            state=state,
            voter_name=voter["full_name"],
            submitted_at=submitted_at,
            warnings=warnings,
        )

    def _eligible_voter(self, voter_name: str) -> dict:
        voter = self.storage.get_voter_by_name(voter_name)
        if voter is None or not voter.get("is_active", False):
            raise ValidationError("voter_name", "Please select your name from the list of eligible voters.")
        return voter

    def _ensure_not_voted(self, voter: dict) -> None:
        status = self.guard.status(voter["full_name"])
        if status == VotingStatus.VOTED:
            logger.warning(f"Rejected second submission from {voter['full_name']}")
            raise ConflictError(ALREADY_VOTED_MESSAGE)
        if status == VotingStatus.STALE_PARTIAL:
            if not self.storage.discard_partial_submission(voter["id"], self.guard.partial_cutoff()):
                raise ConflictError(ALREADY_VOTED_MESSAGE)
            logger.info(f"Discarded unfinished submission for {voter['full_name']}; retrying")

    def _record(self, nomination: NominationIn, voter: dict, submitted_at: datetime) -> dict:
        record = {
            "voter_id": voter["id"],
            "voter_name": voter["full_name"],
            "submitted_at": submitted_at,
        }
        for position in POSITIONS:
            record[position.value] = nomination.nominee_for(position).strip()
        if nomination.statement_of_purpose:
            record["statement_of_purpose"] = nomination.statement_of_purpose
        return record

    def _record_candidates(self, nomination: NominationIn, original_names: Dict[Position, str]) -> List[str]:
        warnings = []
        for position in POSITIONS:
            nominee = nomination.nominee_for(position).strip()
            try:
                self.storage.process_nomination(nominee, position, original_names.get(position))
            except NominationError as e:
                logger.error(f"Could not tally {nominee} for {position.label}: {e.message}")
                warnings.append(f"{position.label}: nomination recorded but candidate tally not updated.")
        return warnings

    def list_partial_submissions(self) -> List[dict]:
        return self.storage.list_partial_submissions(self.guard.partial_cutoff())

    def repair_partial_submissions(self) -> List[str]:
        """Discard every stale unfinished submission so those voters can submit again."""
        repaired = []
        for submission in self.list_partial_submissions():
            if self.storage.discard_partial_submission(submission["id"], self.guard.partial_cutoff()):
                repaired.append(submission["voter_name"])
                logger.info(f"Repaired unfinished submission for {submission['voter_name']}")
        return repaired
