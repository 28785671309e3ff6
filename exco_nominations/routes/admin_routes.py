import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Form, Query, Response, status

from exco_nominations import crud
from exco_nominations.config import ADMIN_USERS, TOP_NOMINEES_LIMIT, Position, position_from_label
from exco_nominations.errors import ValidationError
from exco_nominations.export import export_filename, nominations_to_csv
from exco_nominations.models.admin_model import AdminUser
from exco_nominations.models.nomination_model import Candidate, Nomination
from exco_nominations.models.voter_model import EligibleVoter, VoterSubmission
from exco_nominations.schemas import (
    BoardOfTrusteesOut,
    CandidatesOut,
    PositionTallyOut,
    RankedNomineeOut,
    RepairOut,
    StatsOut,
    TokenOut,
    VoterCreate,
    VoterStatusUpdate,
)
from exco_nominations.security import create_access_token, get_current_admin, require_super_admin
from exco_nominations.storage_mongo import get_storage
from exco_nominations.routes.nomination_routes import get_submitter
from exco_nominations.submission import NominationSubmitter
from exco_nominations.tally import RankedNominee, compute_stats, leading_candidates

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


def get_admin_users() -> List[dict]:
    return ADMIN_USERS


def _ranked_out(nominee: RankedNominee) -> RankedNomineeOut:
    return RankedNomineeOut(
        nominee_name=nominee.nominee_name,
        total_nominations=nominee.total,
        positions=[p.label for p in nominee.positions],
        percentage=nominee.percentage,
    )


def _load_stats(storage):
    return compute_stats(
        storage.list_nominations(),
        eligible_count=storage.count_active_voters(),
        submitted_count=storage.count_submissions(),
    )


def _parse_position(value: Optional[str]) -> Optional[Position]:
    if not value or value == "all":
        return None
    try:
        return position_from_label(value)
    except ValueError as e:
        raise ValidationError("position", str(e))


# --- Authentication ---

@router.get("/users", response_model=List[str])
def list_admin_names(admin_users: List[dict] = Depends(get_admin_users)):
    return [admin["name"] for admin in admin_users]


@router.post("/login", response_model=TokenOut)
def admin_login(admin_name: str = Form(""), password: str = Form(""), storage=Depends(get_storage),
                admin_users: List[dict] = Depends(get_admin_users)):
    admin = crud.authenticate_admin(storage, admin_users, admin_name, password)
    return TokenOut(
        access_token=create_access_token(admin),
        name=admin.name,
        is_super_admin=admin.is_super_admin,
    )


# --- Dashboard ---

@router.get("/stats", response_model=StatsOut)
def get_stats(position: Optional[str] = Query(None), top: int = Query(TOP_NOMINEES_LIMIT, ge=1, le=100),
              storage=Depends(get_storage), admin: AdminUser = Depends(get_current_admin)):
    stats = _load_stats(storage)
    return StatsOut(
        eligible_voters=stats.eligible_count,
        votes_submitted=stats.submitted_count,
        total_nominations=stats.ballots,
        participation_rate=stats.participation_rate,
        per_position=[
            PositionTallyOut(position=t.position, label=t.position.label, nominee_name=t.nominee_name,
                             nomination_count=t.count, percentage=t.percentage)
            for t in stats.for_position(_parse_position(position))
        ],
        top_nominees=[_ranked_out(n) for n in stats.top_n(top)] if admin.is_super_admin else None,
    )


@router.get("/board-of-trustees", response_model=BoardOfTrusteesOut)
def get_board_of_trustees(limit: int = Query(TOP_NOMINEES_LIMIT, ge=1, le=100), storage=Depends(get_storage),
                          admin: AdminUser = Depends(require_super_admin)):
    stats = compute_stats(storage.list_nominations(), eligible_count=0)
    return BoardOfTrusteesOut(total_votes=stats.ballots, nominees=[_ranked_out(n) for n in stats.top_n(limit)])


@router.get("/candidates", response_model=CandidatesOut)
def get_candidates(storage=Depends(get_storage), admin: AdminUser = Depends(get_current_admin)):
    candidates = storage.list_candidates()
    leaders = leading_candidates(candidates)
    return CandidatesOut(
        candidates=[Candidate(**c) for c in candidates],
        leaders={
            position.label: (leader["canonical_name"] if leader else None)
            for position, leader in leaders.items()
        },
    )


@router.get("/submissions", response_model=List[VoterSubmission])
def get_submissions(storage=Depends(get_storage), admin: AdminUser = Depends(get_current_admin)):
    """Who has submitted, newest first."""
    return [VoterSubmission(**s) for s in storage.list_submissions()]


@router.get("/nominations", response_model=List[Nomination])
def get_nominations(storage=Depends(get_storage), admin: AdminUser = Depends(require_super_admin)):
    return [Nomination(**n) for n in storage.list_nominations()]


@router.get("/export.csv")
def export_nominations(storage=Depends(get_storage), admin: AdminUser = Depends(require_super_admin)):
    content = nominations_to_csv(storage.list_nominations())
    logger.info(f"Nominations exported by {admin.name}")
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )


# --- Roster management ---

@router.get("/voters", response_model=List[EligibleVoter])
def get_roster(include_inactive: bool = True, search: Optional[str] = None, storage=Depends(get_storage),
               admin: AdminUser = Depends(require_super_admin)):
    return crud.list_voters(storage, include_inactive=include_inactive, search=search)


@router.post("/voters", response_model=EligibleVoter, status_code=status.HTTP_201_CREATED)
def add_voter(voter: VoterCreate, storage=Depends(get_storage), admin: AdminUser = Depends(require_super_admin)):
    return crud.add_voter(storage, voter.full_name, voter.member_id)


@router.patch("/voters/{voter_id}/status", response_model=EligibleVoter)
def patch_voter_status(voter_id: str, status_update: VoterStatusUpdate, storage=Depends(get_storage),
                       admin: AdminUser = Depends(require_super_admin)):
    return crud.set_voter_active(storage, voter_id, status_update.is_active)


@router.delete("/voters/{voter_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_voter(voter_id: str, confirm: bool = False, storage=Depends(get_storage),
                 admin: AdminUser = Depends(require_super_admin)):
    crud.delete_voter(storage, voter_id, confirm=confirm)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- Unfinished submissions ---

@router.get("/submissions/partial", response_model=List[VoterSubmission])
def get_partial_submissions(submitter: NominationSubmitter = Depends(get_submitter),
                            admin: AdminUser = Depends(require_super_admin)):
    return [VoterSubmission(**s) for s in submitter.list_partial_submissions()]


@router.post("/submissions/partial/repair", response_model=RepairOut)
def repair_partial_submissions(submitter: NominationSubmitter = Depends(get_submitter),
                               admin: AdminUser = Depends(require_super_admin)):
    repaired = submitter.repair_partial_submissions()
    logger.info(f"{admin.name} repaired {len(repaired)} unfinished submissions")
    return RepairOut(repaired=repaired)
