from pydantic import BaseModel
from datetime import datetime

from app.models.proposal import ProposalStatus


class WorkflowHistoryEntry(BaseModel):
    status: ProposalStatus
    timestamp: datetime
    notes: str | None = None


class TransitionRequirements(BaseModel):
    requires_approval: bool = False
    validation_rules: list[str] = []


class BatchTransitionResult(BaseModel):
    proposal_id: str | None = None
    success: bool
    error: str | None = None


class TransitionRequest(BaseModel):
    to_status: ProposalStatus
    notes: str | None = None


class ReviewRequest(BaseModel):
    notes: str | None = None


class WorkflowStateResponse(BaseModel):
    proposal_id: str
    status: ProposalStatus
    status_label: str
    progress: float
    is_complete: bool
    next_states: list[ProposalStatus]
    history: list[WorkflowHistoryEntry]
