from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class EligibleVoter(BaseModel):
    id: str
    full_name: str
    member_id: Optional[str] = None
    is_active: bool = True
    created_at: datetime
    updated_at: datetime


class VoterSubmission(BaseModel):
    id: str                      # the voter's roster id
    voter_name: str              # display label, denormalised from the roster
    status: str = "voter_marked"  # voter_marked -> committed
    submitted_at: datetime
