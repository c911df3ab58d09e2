"""Proposal workflow: a linear, forward-only status machine.

    draft -> review -> ready_to_send -> sent

Each allowed (from, to) pair owns a validation rule over the proposal
snapshot. Rule failures come back as data (``ValidationResult``); nothing in
this module raises for a rejected transition, and nothing here persists the
new status. Status values outside ``ProposalStatus`` have no transitions.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from app.models.proposal import Proposal, ProposalStatus
from app.models.shared import ValidationResult
from app.models.workflow import (
    BatchTransitionResult,
    TransitionRequirements,
    WorkflowHistoryEntry,
)

STATUS_ORDER: list[ProposalStatus] = [
    ProposalStatus.DRAFT,
    ProposalStatus.REVIEW,
    ProposalStatus.READY_TO_SEND,
    ProposalStatus.SENT,
]


@dataclass(frozen=True)
class TransitionRule:
    validate: Callable[[Proposal], ValidationResult]
    requirements: list[str] = field(default_factory=list)
    requires_approval: bool = False


def _is_blank(value: str | None) -> bool:
    return not value or not value.strip()


def _validate_submit_for_review(proposal: Proposal) -> ValidationResult:
    errors = []
    if _is_blank(proposal.client_name):
        errors.append("Client name is required")
    if _is_blank(proposal.client_email):
        errors.append("Client email is required")
    if _is_blank(proposal.project_name):
        errors.append("Project name is required")
    if _is_blank(proposal.project_description):
        errors.append("Project description is required")
    return ValidationResult(is_valid=not errors, errors=errors)


def _validate_approve(proposal: Proposal) -> ValidationResult:
    errors = []
    warnings = []

    if proposal.reviewed_at is None:
        errors.append("Proposal must be reviewed before sending")
    if proposal.total_amount <= 0:
        errors.append("Total amount must be greater than 0")

    if _is_blank(proposal.client_phone):
        warnings.append("Client phone number is missing")
    if _is_blank(proposal.client_address):
        warnings.append("Client address is missing")

    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)


def _validate_send(proposal: Proposal) -> ValidationResult:
    errors = []
    if _is_blank(proposal.client_email):
        errors.append("Client email is required for sending")
    return ValidationResult(is_valid=not errors, errors=errors)


TRANSITIONS: dict[tuple[ProposalStatus, ProposalStatus], TransitionRule] = {
    (ProposalStatus.DRAFT, ProposalStatus.REVIEW): TransitionRule(
        validate=_validate_submit_for_review,
        requirements=[
            "Client name is provided",
            "Client email is provided",
            "Project name is provided",
            "Project description is provided",
        ],
    ),
    (ProposalStatus.REVIEW, ProposalStatus.READY_TO_SEND): TransitionRule(
        validate=_validate_approve,
        requirements=[
            "Proposal has been reviewed",
            "Total amount is greater than 0",
            "Client phone and address are recommended",
        ],
        requires_approval=True,
    ),
    (ProposalStatus.READY_TO_SEND, ProposalStatus.SENT): TransitionRule(
        validate=_validate_send,
        requirements=["Client email is provided"],
    ),
}


def _as_status(value: ProposalStatus | str) -> ProposalStatus | None:
    try:
        return ProposalStatus(value)
    except ValueError:
        return None


def _status_value(value: ProposalStatus | str) -> str:
    return value.value if isinstance(value, ProposalStatus) else str(value)


def _find_rule(from_status, to_status) -> TransitionRule | None:
    key = (_as_status(from_status), _as_status(to_status))
    if None in key:
        return None
    return TRANSITIONS.get(key)


def get_valid_transitions(status: ProposalStatus | str) -> list[ProposalStatus]:
    """Statuses reachable in one step. Empty for SENT and unknown statuses."""
    current = _as_status(status)
    return [to for (frm, to) in TRANSITIONS if frm == current]


def can_transition(from_status: ProposalStatus | str, to_status: ProposalStatus | str) -> bool:
    """True iff a rule exists for the pair. Proposal content is not checked."""
    return _find_rule(from_status, to_status) is not None


def validate_transition(
    from_status: ProposalStatus | str,
    to_status: ProposalStatus | str,
    proposal: Proposal,
) -> ValidationResult:
    rule = _find_rule(from_status, to_status)
    if rule is None:
        return ValidationResult(
            is_valid=False,
            errors=[
                f"Invalid transition from {_status_value(from_status)} "
                f"to {_status_value(to_status)}"
            ],
        )
    return rule.validate(proposal)


def get_transition_requirements(
    from_status: ProposalStatus | str, to_status: ProposalStatus | str
) -> TransitionRequirements:
    rule = _find_rule(from_status, to_status)
    if rule is None:
        return TransitionRequirements()
    return TransitionRequirements(
        requires_approval=rule.requires_approval,
        validation_rules=list(rule.requirements),
    )


def validate_batch_transition(
    proposals: list[Proposal], to_status: ProposalStatus | str
) -> list[BatchTransitionResult]:
    """Validate one target status against many proposals, each independently."""
    results = []
    for proposal in proposals:
        validation = validate_transition(proposal.status, to_status, proposal)
        results.append(
            BatchTransitionResult(
                proposal_id=proposal.id,
                success=validation.is_valid,
                error=None if validation.is_valid else ", ".join(validation.errors),
            )
        )
    return results


def transition_updates(to_status: ProposalStatus, at: datetime) -> dict:
    """Field updates a caller persists once a transition has been accepted."""
    updates = {"status": to_status.value, "updated_at": at.isoformat()}
    if to_status == ProposalStatus.SENT:
        updates["sent_at"] = at.isoformat()
    return updates


def get_current_state(proposal: Proposal) -> ProposalStatus | str:
    return proposal.status


def get_next_possible_states(proposal: Proposal) -> list[ProposalStatus]:
    return get_valid_transitions(proposal.status)


def is_complete(proposal: Proposal) -> bool:
    return _as_status(proposal.status) == ProposalStatus.SENT


def get_progress_percentage(proposal: Proposal) -> float:
    """Position in the chain scaled to 0-100. Unknown statuses report 0."""
    status = _as_status(proposal.status)
    if status is None:
        return 0.0
    return STATUS_ORDER.index(status) / (len(STATUS_ORDER) - 1) * 100


def get_workflow_history(proposal: Proposal) -> list[WorkflowHistoryEntry]:
    """Best-effort history rebuilt from the workflow timestamps.

    Only ``review_notes`` survives on the record, so this is not an audit log;
    the persisted ``state_transitions`` rows are.
    """
    history = []
    if proposal.created_at:
        history.append(WorkflowHistoryEntry(
            status=ProposalStatus.DRAFT,
            timestamp=proposal.created_at,
            notes="Proposal created",
        ))
    if proposal.reviewed_at:
        history.append(WorkflowHistoryEntry(
            status=ProposalStatus.REVIEW,
            timestamp=proposal.reviewed_at,
            notes=proposal.review_notes or "Proposal reviewed",
        ))
    if proposal.sent_at:
        history.append(WorkflowHistoryEntry(
            status=ProposalStatus.SENT,
            timestamp=proposal.sent_at,
            notes="Proposal sent to client",
        ))
    history.sort(key=lambda entry: entry.timestamp)
    return history
