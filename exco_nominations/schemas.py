from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from exco_nominations.config import Position
from exco_nominations.models.nomination_model import Candidate


class VoterCreate(BaseModel):
    full_name: str
    member_id: Optional[str] = None


class VoterStatusUpdate(BaseModel):
    is_active: bool


class VotingStatusOut(BaseModel):
    voter_name: str
    has_voted: bool


class SubmissionOut(BaseModel):
    ok: bool
    state: str
    voter_name: str
    submitted_at: Optional[datetime] = None
    message: str = "Your nominations have been successfully recorded."
    warnings: List[str] = []


class SuggestionOut(BaseModel):
    candidate_id: str
    canonical_name: str
    distance: int


class ResolutionOut(BaseModel):
    position: Position
    label: str
    original_name: str
    status: str
    canonical_name: Optional[str] = None
    suggestions: List[SuggestionOut] = []
    decision: Optional[str] = None
    final_name: str


class DraftOut(BaseModel):
    id: str
    state: str
    voter_name: str
    resolutions: List[ResolutionOut]
    pending: List[Position]


class ResolveRequest(BaseModel):
    position: str = Field(..., examples=["president"])
    accept: bool


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    name: str
    is_super_admin: bool


class PositionTallyOut(BaseModel):
    position: Position
    label: str
    nominee_name: str
    nomination_count: int
    percentage: int


class RankedNomineeOut(BaseModel):
    nominee_name: str
    total_nominations: int
    positions: List[str]
    percentage: int


class StatsOut(BaseModel):
    eligible_voters: int
    votes_submitted: int
    total_nominations: int
    participation_rate: int
    per_position: List[PositionTallyOut]
    top_nominees: Optional[List[RankedNomineeOut]] = None


class BoardOfTrusteesOut(BaseModel):
    total_votes: int
    nominees: List[RankedNomineeOut]


class CandidatesOut(BaseModel):
    candidates: List[Candidate]
    leaders: dict


class RepairOut(BaseModel):
    repaired: List[str]
