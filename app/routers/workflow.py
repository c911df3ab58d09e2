"""Proposal workflow endpoints.

The workflow engine decides; this router sequences the calls around it:
totals are recomputed from the line items before a transition is validated,
and an accepted transition is persisted together with a state_transitions row.
"""
from fastapi import APIRouter, Depends, HTTPException
from uuid import UUID
from datetime import datetime, timezone
from loguru import logger
from app.auth import get_current_contractor
from app.database import get_supabase
from app.engines import workflow
from app.models.proposal import Proposal, ProposalStatus, PROPOSAL_STATUS_LABELS
from app.models.shared import ValidationResult
from app.models.workflow import (
    ReviewRequest,
    TransitionRequest,
    TransitionRequirements,
    WorkflowStateResponse,
)
from app.services.proposal_store import (
    verify_proposal_access,
    fetch_line_items,
    recalculate_totals,
    record_transition,
    to_snapshot,
)

router = APIRouter(prefix="/api/v1/proposals", tags=["workflow"])


def _reprice(proposal_id: UUID, proposal: dict):
    """Recompute and persist totals, then refresh them on the loaded row."""
    pricing = recalculate_totals(proposal_id, tax_rate=float(proposal.get("tax_rate") or 0))
    proposal.update(
        {
            "subtotal": pricing.subtotal,
            "tax_amount": pricing.tax_amount,
            "total_amount": pricing.total,
        }
    )


def _load_snapshot(proposal_id: UUID, contractor_id: str) -> Proposal:
    proposal = verify_proposal_access(proposal_id, contractor_id)
    return to_snapshot(proposal, fetch_line_items(proposal_id))


def _known_status(value) -> ProposalStatus:
    try:
        return ProposalStatus(value)
    except ValueError:
        raise HTTPException(status_code=409, detail=f"Proposal has an unknown status: {value}")


def _workflow_state(proposal_id: UUID, snapshot: Proposal) -> WorkflowStateResponse:
    status = _known_status(snapshot.status)
    return WorkflowStateResponse(
        proposal_id=str(proposal_id),
        status=status,
        status_label=PROPOSAL_STATUS_LABELS[status],
        progress=workflow.get_progress_percentage(snapshot),
        is_complete=workflow.is_complete(snapshot),
        next_states=workflow.get_next_possible_states(snapshot),
        history=workflow.get_workflow_history(snapshot),
    )


@router.get("/{proposal_id}/workflow", response_model=WorkflowStateResponse)
async def get_workflow_state(
    proposal_id: UUID,
    contractor: dict = Depends(get_current_contractor),
):
    snapshot = _load_snapshot(proposal_id, contractor["id"])
    return _workflow_state(proposal_id, snapshot)


@router.get(
    "/{proposal_id}/workflow/requirements/{to_status}",
    response_model=TransitionRequirements,
)
async def get_requirements(
    proposal_id: UUID,
    to_status: ProposalStatus,
    contractor: dict = Depends(get_current_contractor),
):
    proposal = verify_proposal_access(proposal_id, contractor["id"])
    return workflow.get_transition_requirements(proposal["status"], to_status)


@router.post("/{proposal_id}/workflow/validate", response_model=ValidationResult)
async def validate_transition(
    proposal_id: UUID,
    body: TransitionRequest,
    contractor: dict = Depends(get_current_contractor),
):
    """Dry run: report every blocking error and warning without changing anything."""
    snapshot = _load_snapshot(proposal_id, contractor["id"])
    return workflow.validate_transition(snapshot.status, body.to_status, snapshot)


@router.post("/{proposal_id}/workflow/transition", response_model=WorkflowStateResponse)
async def transition_proposal(
    proposal_id: UUID,
    body: TransitionRequest,
    contractor: dict = Depends(get_current_contractor),
):
    proposal = verify_proposal_access(proposal_id, contractor["id"])
    from_status = proposal["status"]
    # Rejected pairs leave the stored totals untouched
    if workflow.can_transition(from_status, body.to_status):
        _reprice(proposal_id, proposal)
    snapshot = to_snapshot(proposal, fetch_line_items(proposal_id))

    validation = workflow.validate_transition(from_status, body.to_status, snapshot)
    if not validation.is_valid:
        logger.info(
            f"Transition {from_status} -> {body.to_status.value} rejected for "
            f"{proposal_id}: {'; '.join(validation.errors)}"
        )
        raise HTTPException(
            status_code=422,
            detail={
                "error": "Transition not allowed",
                "errors": validation.errors,
                "warnings": validation.warnings,
            },
        )

    now = datetime.now(timezone.utc)
    updates = workflow.transition_updates(body.to_status, now)

    db = get_supabase()
    db.table("proposals").update(updates).eq("id", str(proposal_id)).eq(
        "contractor_id", contractor["id"]
    ).execute()

    record_transition(
        proposal_id=proposal_id,
        from_status=from_status,
        to_status=body.to_status.value,
        actor_type="contractor",
        actor_id=contractor.get("user_id"),
        reason=body.notes,
        metadata={"warnings": validation.warnings} if validation.warnings else None,
    )
    logger.info(f"Proposal {proposal_id} moved {from_status} -> {body.to_status.value}")

    updated = Proposal.model_validate({**snapshot.model_dump(), **updates})
    return _workflow_state(proposal_id, updated)


@router.post("/{proposal_id}/review", response_model=WorkflowStateResponse)
async def mark_reviewed(
    proposal_id: UUID,
    body: ReviewRequest,
    contractor: dict = Depends(get_current_contractor),
):
    """Record that a proposal under review has been checked.

    Sets ``reviewed_at``, which approval (review -> ready_to_send) requires.
    """
    proposal = verify_proposal_access(proposal_id, contractor["id"])
    if proposal["status"] != ProposalStatus.REVIEW.value:
        raise HTTPException(
            status_code=409,
            detail=f"Only proposals under review can be marked reviewed, current status: {proposal['status']}",
        )

    now = datetime.now(timezone.utc).isoformat()
    db = get_supabase()
    db.table("proposals").update(
        {"reviewed_at": now, "review_notes": body.notes, "updated_at": now}
    ).eq("id", str(proposal_id)).execute()

    record_transition(
        proposal_id=proposal_id,
        from_status=proposal["status"],
        to_status=proposal["status"],
        actor_type="contractor",
        actor_id=contractor.get("user_id"),
        reason=body.notes,
        metadata={"action": "reviewed"},
    )

    snapshot = to_snapshot(
        {**proposal, "reviewed_at": now, "review_notes": body.notes},
        fetch_line_items(proposal_id),
    )
    return _workflow_state(proposal_id, snapshot)
