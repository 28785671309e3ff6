from fastapi import APIRouter, Depends, Response, status

from exco_nominations.config import position_from_label
from exco_nominations.dedup import DraftRegistry, NominationDraft
from exco_nominations.errors import ValidationError
from exco_nominations.http_errors import error_response
from exco_nominations.models.nomination_model import NominationIn
from exco_nominations.schemas import DraftOut, ResolutionOut, ResolveRequest, SubmissionOut, SuggestionOut
from exco_nominations.storage_mongo import get_storage
from exco_nominations.submission import NominationSubmitter, SubmissionResult

router = APIRouter(prefix="/nominations", tags=["Nominations"])

draft_registry = DraftRegistry()


def get_draft_registry() -> DraftRegistry:
    return draft_registry


def get_submitter(storage=Depends(get_storage)) -> NominationSubmitter:
    return NominationSubmitter(storage)


def _submission_response(result: SubmissionResult):
    if not result.ok:
        return error_response(result.error_kind, result.message, result.field)
    return SubmissionOut(
        ok=True,
        state=result.state.value,
        voter_name=result.voter_name,
        submitted_at=result.submitted_at,
        warnings=result.warnings,
    )


def _draft_out(draft: NominationDraft) -> DraftOut:
    return DraftOut(
        id=draft.id,
        state=draft.state.value,
        voter_name=draft.nomination.voter_name,
        resolutions=[
            ResolutionOut(
                position=r.position,
                label=r.position.label,
                original_name=r.original_name,
                status=r.status.value,
                canonical_name=r.canonical_name,
                suggestions=[SuggestionOut(**s.model_dump()) for s in r.suggestions],
                decision=r.decision.value if r.decision else None,
                final_name=r.final_name,
            )
            for r in draft.resolutions.values()
        ],
        pending=[r.position for r in draft.pending],
    )


@router.post("/submit", response_model=SubmissionOut)
def submit_nominations(nomination: NominationIn, submitter: NominationSubmitter = Depends(get_submitter)):
    """Record a complete ballot. A member can only submit once."""
    return _submission_response(submitter.submit(nomination))


# --- Ballots with typed nominee names go through name confirmation first ---

@router.post("/drafts", response_model=DraftOut, status_code=status.HTTP_201_CREATED)
def create_draft(nomination: NominationIn, storage=Depends(get_storage),
                 registry: DraftRegistry = Depends(get_draft_registry)):
    return _draft_out(registry.create(storage, nomination))


@router.get("/drafts/{draft_id}", response_model=DraftOut)
def get_draft(draft_id: str, registry: DraftRegistry = Depends(get_draft_registry)):
    return _draft_out(registry.get(draft_id))


@router.post("/drafts/{draft_id}/resolve", response_model=DraftOut)
def resolve_draft_name(draft_id: str, decision: ResolveRequest,
                       registry: DraftRegistry = Depends(get_draft_registry)):
    try:
        position = position_from_label(decision.position)
    except ValueError as e:
        raise ValidationError("position", str(e))
    if decision.accept:
        draft = registry.accept(draft_id, position)
    else:
        draft = registry.reject(draft_id, position)
    return _draft_out(draft)


@router.post("/drafts/{draft_id}/submit", response_model=SubmissionOut)
def submit_draft(draft_id: str, submitter: NominationSubmitter = Depends(get_submitter),
                 registry: DraftRegistry = Depends(get_draft_registry)):
    return _submission_response(registry.submit(draft_id, submitter))


@router.delete("/drafts/{draft_id}", status_code=status.HTTP_204_NO_CONTENT)
def abandon_draft(draft_id: str, registry: DraftRegistry = Depends(get_draft_registry)):
    registry.abandon(draft_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
