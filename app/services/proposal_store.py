"""Supabase access shared by the proposal routers.

Loads proposal snapshots for the engines and writes their results back:
recomputed totals after any line-item or tax-rate change, and state
transition rows after an accepted workflow move.
"""
from uuid import UUID
from fastapi import HTTPException
from loguru import logger

from app.database import get_supabase
from app.engines.pricing import calculate_pricing
from app.models.line_item import LineItem
from app.models.pricing import PricingCalculation
from app.models.proposal import Proposal, ProposalStatus
from app.models.shared import StateTransitionCreate


def verify_proposal_access(proposal_id: UUID, contractor_id: str) -> dict:
    """Fetch a proposal row and verify the contractor owns it."""
    db = get_supabase()
    result = (
        db.table("proposals")
        .select("*")
        .eq("id", str(proposal_id))
        .eq("contractor_id", contractor_id)
        .maybe_single()
        .execute()
    )
    if not result or not result.data:
        raise HTTPException(status_code=404, detail="Proposal not found")
    return result.data


def ensure_editable(proposal: dict):
    if proposal["status"] == ProposalStatus.SENT.value:
        raise HTTPException(status_code=409, detail="Cannot modify a sent proposal")


def fetch_line_items(proposal_id: UUID) -> list[dict]:
    db = get_supabase()
    result = (
        db.table("proposal_line_items")
        .select("*")
        .eq("proposal_id", str(proposal_id))
        .order("order_index")
        .execute()
    )
    return result.data or []


def to_line_items(rows: list[dict]) -> list[LineItem]:
    return [LineItem.model_validate({**row, "id": str(row.get("id", ""))}) for row in rows]


def to_snapshot(proposal: dict, item_rows: list[dict]) -> Proposal:
    data = {key: value for key, value in proposal.items() if key != "line_items"}
    data["id"] = str(data.get("id", ""))
    return Proposal.model_validate({**data, "line_items": to_line_items(item_rows)})


def recalculate_totals(proposal_id: UUID, tax_rate: float | None = None) -> PricingCalculation:
    """Recompute subtotal, tax and total from the stored line items and persist them."""
    db = get_supabase()

    if tax_rate is None:
        proposal = (
            db.table("proposals")
            .select("tax_rate")
            .eq("id", str(proposal_id))
            .single()
            .execute()
        )
        tax_rate = float(proposal.data["tax_rate"] or 0)

    items = to_line_items(fetch_line_items(proposal_id))
    pricing = calculate_pricing(items, tax_rate)

    db.table("proposals").update(
        {
            "subtotal": pricing.subtotal,
            "tax_amount": pricing.tax_amount,
            "total_amount": pricing.total,
        }
    ).eq("id", str(proposal_id)).execute()

    if pricing.validation_errors:
        logger.warning(
            f"Proposal {proposal_id} repriced with {len(pricing.validation_errors)} "
            f"validation error(s): {pricing.validation_errors[0]}"
        )
    else:
        logger.info(f"Proposal {proposal_id} repriced: total={pricing.total:.2f}")
    return pricing


def record_transition(
    proposal_id: UUID,
    from_status: str | None,
    to_status: str,
    actor_type: str,
    actor_id: str | None = None,
    reason: str | None = None,
    metadata: dict | None = None,
):
    """Append a state_transitions row. This is the proposal's real audit trail."""
    row = StateTransitionCreate(
        entity_id=proposal_id,
        from_status=from_status,
        to_status=to_status,
        actor_type=actor_type,
        actor_id=actor_id,
        reason=reason,
        metadata=metadata or {},
    )
    db = get_supabase()
    db.table("state_transitions").insert(row.model_dump(mode="json")).execute()
