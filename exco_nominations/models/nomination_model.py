from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from exco_nominations.config import Position


class NominationIn(BaseModel):
    """A ballot as entered on the form. Completeness is checked by the orchestrator."""
    voter_name: str = ""
    president: str = ""
    tournament_director: str = ""
    hon_legal_adviser: str = ""
    secretary: str = ""
    hon_social_secretary: str = ""
    statement_of_purpose: Optional[str] = None

    def nominee_for(self, position: Position) -> str:
        return getattr(self, position.value)

    def with_nominee(self, position: Position, nominee: str) -> "NominationIn":
        return self.model_copy(update={position.value: nominee})


class Nomination(NominationIn):
    id: str
    voter_id: str
    submitted_at: datetime


class Candidate(BaseModel):
    id: str
    canonical_name: str
    position: Position
    vote_count: int = 0
    created_at: datetime
    updated_at: datetime


class SimilarName(BaseModel):
    candidate_id: str
    canonical_name: str
    distance: int
