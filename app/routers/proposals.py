from fastapi import APIRouter, Depends, HTTPException, Query
from uuid import UUID
from datetime import datetime, timezone
from loguru import logger
from app.auth import get_current_contractor
from app.config import get_settings
from app.database import get_supabase
from app.models.proposal import (
    ProposalCreate,
    ProposalUpdate,
    ProposalResponse,
    ProposalListItem,
    ProposalStatus,
    ProjectType,
)
from app.models.pricing import PricingCalculation
from app.services.proposal_store import (
    verify_proposal_access,
    ensure_editable,
    fetch_line_items,
    recalculate_totals,
    record_transition,
    to_line_items,
)
from app.engines.pricing import calculate_pricing

router = APIRouter(prefix="/api/v1/proposals", tags=["proposals"])


def _json_safe(data: dict) -> dict:
    """Convert Decimals and enums to JSON-native values for Supabase."""
    if data.get("tax_rate") is not None:
        data["tax_rate"] = float(data["tax_rate"])
    if data.get("project_type") is not None:
        data["project_type"] = ProjectType(data["project_type"]).value
    return data


SEARCH_COLUMNS = ("project_name", "client_name")


def _search_filter(term: str) -> str:
    """PostgREST or= filter matching any search column.

    The value is double-quoted so commas and parentheses in the term are
    not parsed as filter syntax.
    """
    escaped = term.replace("\\", "\\\\").replace('"', '\\"')
    return ",".join(f'{column}.ilike."%{escaped}%"' for column in SEARCH_COLUMNS)


@router.get("", response_model=list[ProposalListItem])
async def list_proposals(
    contractor: dict = Depends(get_current_contractor),
    status: list[ProposalStatus] | None = Query(default=None),
    project_type: list[ProjectType] | None = Query(default=None),
    search: str | None = None,
    limit: int = 50,
    offset: int = 0,
):
    db = get_supabase()
    query = (
        db.table("proposals")
        .select("id, project_name, client_name, project_type, status, total_amount, created_at, updated_at")
        .eq("contractor_id", contractor["id"])
    )
    if status:
        query = query.in_("status", [s.value for s in status])
    if project_type:
        query = query.in_("project_type", [t.value for t in project_type])
    if search:
        query = query.or_(_search_filter(search))

    result = (
        query.order("updated_at", desc=True)
        .range(offset, offset + limit - 1)
        .execute()
    )
    return result.data


@router.post("", response_model=ProposalResponse, status_code=201)
async def create_proposal(
    body: ProposalCreate,
    contractor: dict = Depends(get_current_contractor),
):
    settings = get_settings()
    db = get_supabase()

    data = _json_safe(body.model_dump(exclude_none=True))
    data.setdefault("tax_rate", settings.default_tax_rate)
    data.update(
        {
            "contractor_id": contractor["id"],
            "status": ProposalStatus.DRAFT.value,
            "subtotal": 0,
            "tax_amount": 0,
            "total_amount": 0,
        }
    )

    result = db.table("proposals").insert(data).execute()
    proposal = result.data[0]

    record_transition(
        proposal_id=proposal["id"],
        from_status=None,
        to_status=ProposalStatus.DRAFT.value,
        actor_type="contractor",
        actor_id=contractor.get("user_id"),
    )
    logger.info(f"Proposal {proposal['id']} created for contractor {contractor['id']}")

    proposal["line_items"] = []
    return proposal


@router.get("/{proposal_id}", response_model=ProposalResponse)
async def get_proposal(
    proposal_id: UUID,
    contractor: dict = Depends(get_current_contractor),
):
    proposal = verify_proposal_access(proposal_id, contractor["id"])
    proposal["line_items"] = fetch_line_items(proposal_id)
    return proposal


@router.put("/{proposal_id}", response_model=ProposalResponse)
async def update_proposal(
    proposal_id: UUID,
    body: ProposalUpdate,
    contractor: dict = Depends(get_current_contractor),
):
    current = verify_proposal_access(proposal_id, contractor["id"])
    ensure_editable(current)

    data = _json_safe(body.model_dump(exclude_none=True))
    if not data:
        raise HTTPException(status_code=400, detail="No fields to update")
    data["updated_at"] = datetime.now(timezone.utc).isoformat()

    db = get_supabase()
    result = (
        db.table("proposals")
        .update(data)
        .eq("id", str(proposal_id))
        .eq("contractor_id", contractor["id"])
        .execute()
    )
    proposal = result.data[0]

    # Derived totals follow the new tax rate
    if "tax_rate" in data:
        pricing = recalculate_totals(proposal_id, tax_rate=data["tax_rate"])
        proposal.update(
            {
                "subtotal": pricing.subtotal,
                "tax_amount": pricing.tax_amount,
                "total_amount": pricing.total,
            }
        )

    proposal["line_items"] = fetch_line_items(proposal_id)
    return proposal


@router.delete("/{proposal_id}", status_code=204)
async def delete_proposal(
    proposal_id: UUID,
    contractor: dict = Depends(get_current_contractor),
):
    verify_proposal_access(proposal_id, contractor["id"])

    db = get_supabase()
    # Line items belong exclusively to their proposal
    db.table("proposal_line_items").delete().eq("proposal_id", str(proposal_id)).execute()
    db.table("proposals").delete().eq("id", str(proposal_id)).eq(
        "contractor_id", contractor["id"]
    ).execute()
    logger.info(f"Proposal {proposal_id} deleted")


@router.get("/{proposal_id}/pricing", response_model=PricingCalculation)
async def get_proposal_pricing(
    proposal_id: UUID,
    contractor: dict = Depends(get_current_contractor),
):
    """Pricing snapshot computed from the stored line items."""
    proposal = verify_proposal_access(proposal_id, contractor["id"])
    items = to_line_items(fetch_line_items(proposal_id))
    return calculate_pricing(items, float(proposal.get("tax_rate") or 0))


@router.post("/{proposal_id}/generate-pdf")
async def generate_pdf(
    proposal_id: UUID,
    contractor: dict = Depends(get_current_contractor),
):
    """Generate or regenerate the proposal PDF."""
    proposal = verify_proposal_access(proposal_id, contractor["id"])

    from app.pdf.proposal_generator import generate_proposal_pdf
    try:
        pdf_url = await generate_proposal_pdf(proposal, contractor)
        return {"pdf_url": pdf_url, "proposal_id": str(proposal_id)}
    except Exception as e:
        logger.error(f"PDF generation failed for {proposal_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to generate PDF")
