from typing import List

from fastapi import APIRouter, Depends, Query

from exco_nominations import crud
from exco_nominations.guard import SubmissionGuard
from exco_nominations.models.voter_model import EligibleVoter
from exco_nominations.schemas import VotingStatusOut
from exco_nominations.storage_mongo import get_storage

router = APIRouter(prefix="/voters", tags=["Voters"])


@router.get("", response_model=List[EligibleVoter])
def get_active_voters(storage=Depends(get_storage)):
    """Active eligible voters, sorted by name. An empty list means nobody is eligible yet."""
    return crud.list_active_voters(storage)


@router.get("/status", response_model=VotingStatusOut)
def check_voted(voter_name: str = Query(..., min_length=1), storage=Depends(get_storage)):
    return VotingStatusOut(voter_name=voter_name, has_voted=SubmissionGuard(storage).has_voted(voter_name))
