"""Nominee name deduplication.

Each typed nominee name is checked against the existing candidates for the
same position. Exact hits and unknown names pass straight through; a close
but inexact hit puts the draft on hold until a person either accepts the
suggested spelling or keeps their own. Nothing is written while a draft is
pending, so a draft that is abandoned or expires leaves no trace.
"""
import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Dict, List, Optional

from exco_nominations.config import DRAFT_TTL_MINUTES, POSITIONS, Position
from exco_nominations.errors import NominationError, NotFoundError, ResolutionError, ValidationError
from exco_nominations.models.nomination_model import NominationIn, SimilarName
from exco_nominations.submission import NominationSubmitter, SubmissionResult, validate_nomination

logger = logging.getLogger(__name__)


class ResolutionStatus(str, Enum):
    NEW = "new"
    MATCHED = "matched"
    AMBIGUOUS = "ambiguous"


class Decision(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class DraftState(str, Enum):
    DRAFTING = "drafting"
    PENDING_RESOLUTION = "pending_resolution"
    RESOLVED = "resolved"
    SUBMITTED = "submitted"
    ABANDONED = "abandoned"


@dataclass
class NomineeResolution:
    position: Position
    original_name: str
    status: ResolutionStatus
    canonical_name: Optional[str] = None
    suggestions: List[SimilarName] = field(default_factory=list)
    decision: Optional[Decision] = None

    @property
    def pending(self) -> bool:
        return self.status == ResolutionStatus.AMBIGUOUS and self.decision is None

    @property
    def final_name(self) -> str:
        if self.status == ResolutionStatus.MATCHED:
            return self.canonical_name
        if self.status == ResolutionStatus.AMBIGUOUS and self.decision == Decision.ACCEPTED:
            return self.suggestions[0].canonical_name
        return self.original_name


def resolve_nominee(storage, nominee_name: str, position: Position) -> NomineeResolution:
    try:
        matches = [SimilarName(**m) for m in storage.find_similar_names(nominee_name, position)]
    except NominationError as e:
        logger.error(f"Name lookup failed for {nominee_name} ({position.label}): {e.message}")
        raise ResolutionError(
            f"Could not check {position.label} nominee '{nominee_name}' against existing candidates. "
            "Please try again."
        ) from e
    if not matches:
        return NomineeResolution(position, nominee_name, ResolutionStatus.NEW)
    for match in matches:
        if match.canonical_name == nominee_name:
            return NomineeResolution(position, nominee_name, ResolutionStatus.MATCHED,
                                     canonical_name=match.canonical_name)
    return NomineeResolution(position, nominee_name, ResolutionStatus.AMBIGUOUS,
                             canonical_name=matches[0].canonical_name, suggestions=matches)


class NominationDraft:
    def __init__(self, nomination: NominationIn, created_at: datetime, draft_id: Optional[str] = None):
        self.id = draft_id or uuid.uuid4().hex
        self.nomination = nomination
        self.created_at = created_at
        self.state = DraftState.DRAFTING
        self.resolutions: Dict[Position, NomineeResolution] = {}
        # Held for every state change once the draft is shared between requests
        self.lock = threading.Lock()

    def resolve(self, storage) -> None:
        if self.state != DraftState.DRAFTING:
            raise ValidationError("state", f"Draft is already {self.state.value}.")
        resolutions = {
            position: resolve_nominee(storage, self.nomination.nominee_for(position).strip(), position)
            for position in POSITIONS
        }
        self.resolutions = resolutions
        self._advance()

    @property
    def pending(self) -> List[NomineeResolution]:
        return [r for r in self.resolutions.values() if r.pending]

    def accept(self, position: Position) -> None:
        self._decide(position, Decision.ACCEPTED)

    def reject(self, position: Position) -> None:
        self._decide(position, Decision.REJECTED)

    def _decide(self, position: Position, decision: Decision) -> None:
        if self.state != DraftState.PENDING_RESOLUTION:
            raise ValidationError("state", f"Draft is {self.state.value}; there is nothing to confirm.")
        resolution = self.resolutions[position]
        if not resolution.pending:
            raise ValidationError(position.value, f"No suggestion is waiting for {position.label}.")
        resolution.decision = decision
        logger.info(f"Suggestion for {position.label} {decision.value}: "
                    f"'{resolution.original_name}' -> '{resolution.final_name}'")
        self._advance()

    def _advance(self) -> None:
        self.state = DraftState.PENDING_RESOLUTION if self.pending else DraftState.RESOLVED

    def final_nomination(self) -> NominationIn:
        if self.state != DraftState.RESOLVED:
            raise ValidationError("state", "Please confirm or reject every suggested name before submitting.")
        nomination = self.nomination
        for position, resolution in self.resolutions.items():
            nomination = nomination.with_nominee(position, resolution.final_name)
        return nomination

    def original_names(self) -> Dict[Position, str]:
        return {position: r.original_name for position, r in self.resolutions.items()}

    def abandon(self) -> None:
        self.state = DraftState.ABANDONED


class DraftRegistry:
    """In-memory home for drafts between the create, confirm and submit requests."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None,
                 ttl: timedelta = timedelta(minutes=DRAFT_TTL_MINUTES)):
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.ttl = ttl
        self._drafts: Dict[str, NominationDraft] = {}
        self._lock = threading.Lock()

    def create(self, storage, nomination: NominationIn) -> NominationDraft:
        validate_nomination(nomination)
        draft = NominationDraft(nomination, created_at=self.clock())
        draft.resolve(storage)
        with self._lock:
            self._expire()
            self._drafts[draft.id] = draft
        logger.info(f"Draft {draft.id} for {nomination.voter_name} is {draft.state.value}")
        return draft

    def get(self, draft_id: str) -> NominationDraft:
        with self._lock:
            self._expire()
            draft = self._drafts.get(draft_id)
        if draft is None:
            raise NotFoundError("Nomination draft not found or expired. Please start again.")
        return draft

    def accept(self, draft_id: str, position: Position) -> NominationDraft:
        draft = self.get(draft_id)
        with draft.lock:
            draft.accept(position)
        return draft

    def reject(self, draft_id: str, position: Position) -> NominationDraft:
        draft = self.get(draft_id)
        with draft.lock:
            draft.reject(position)
        return draft

    def abandon(self, draft_id: str) -> None:
        with self._lock:
            draft = self._drafts.pop(draft_id, None)
        if draft is None:
            raise NotFoundError("Nomination draft not found or expired.")
        with draft.lock:
            draft.abandon()
        logger.info(f"Draft {draft_id} abandoned")

    def submit(self, draft_id: str, submitter: NominationSubmitter) -> SubmissionResult:
        draft = self.get(draft_id)
        with draft.lock:
            if draft.state in (DraftState.ABANDONED, DraftState.SUBMITTED):
                raise NotFoundError("Nomination draft not found or expired. Please start again.")
            nomination = draft.final_nomination()
            result = submitter.submit(nomination, original_names=draft.original_names(), record_candidates=True)
            if result.ok:
                draft.state = DraftState.SUBMITTED
        if result.ok:
            with self._lock:
                self._drafts.pop(draft_id, None)
        return result

    def _expire(self) -> None:
        cutoff = self.clock() - self.ttl
        for draft_id in [d.id for d in self._drafts.values() if d.created_at < cutoff]:
            self._drafts.pop(draft_id).abandon()
            logger.info(f"Draft {draft_id} expired before submission")
