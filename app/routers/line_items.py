from fastapi import APIRouter, Depends, HTTPException
from uuid import UUID
from datetime import datetime, timezone
from decimal import Decimal
from loguru import logger
from app.auth import get_current_contractor
from app.database import get_supabase
from app.engines.catalog import get_material, material_to_line_item
from app.models.line_item import LineItemCreate, LineItemUpdate, LineItemResponse
from app.services.proposal_store import (
    verify_proposal_access,
    ensure_editable,
    fetch_line_items,
    recalculate_totals,
)

router = APIRouter(prefix="/api/v1/proposals", tags=["line-items"])


def _line_total(quantity, unit_price, total, is_manual_override: bool) -> float:
    """Stored total: quantity * unit_price unless a manual override supplies one."""
    if is_manual_override and total is not None:
        return float(total)
    return float(Decimal(str(quantity)) * Decimal(str(unit_price)))


def _json_safe(data: dict) -> dict:
    for key in ("quantity", "unit_price", "total"):
        if data.get(key) is not None:
            data[key] = float(data[key])
    if data.get("category") is not None:
        data["category"] = getattr(data["category"], "value", data["category"])
    return data


@router.post(
    "/{proposal_id}/line-items",
    response_model=LineItemResponse,
    status_code=201,
)
async def add_line_item(
    proposal_id: UUID,
    body: LineItemCreate,
    contractor: dict = Depends(get_current_contractor),
):
    proposal = verify_proposal_access(proposal_id, contractor["id"])
    ensure_editable(proposal)

    data = _json_safe(body.model_dump(exclude_none=True))
    data["proposal_id"] = str(proposal_id)
    data["total"] = _line_total(body.quantity, body.unit_price, body.total, body.is_manual_override)
    if body.order_index is None:
        data["order_index"] = len(fetch_line_items(proposal_id))

    db = get_supabase()
    result = db.table("proposal_line_items").insert(data).execute()
    recalculate_totals(proposal_id)
    return result.data[0]


@router.post(
    "/{proposal_id}/line-items/from-material/{material_id}",
    response_model=LineItemResponse,
    status_code=201,
)
async def add_material_line_item(
    proposal_id: UUID,
    material_id: str,
    quantity: float = 1,
    contractor: dict = Depends(get_current_contractor),
):
    """Add a catalog material as a MATERIAL line item at its suggested price."""
    proposal = verify_proposal_access(proposal_id, contractor["id"])
    ensure_editable(proposal)

    material = get_material(material_id)
    if material is None:
        raise HTTPException(status_code=404, detail="Material not found")

    item = material_to_line_item(
        material,
        quantity=quantity,
        order_index=len(fetch_line_items(proposal_id)),
        proposal_id=str(proposal_id),
    )
    data = item.model_dump(mode="json", exclude={"id"})

    db = get_supabase()
    result = db.table("proposal_line_items").insert(data).execute()
    recalculate_totals(proposal_id)
    return result.data[0]


@router.put(
    "/{proposal_id}/line-items/{item_id}",
    response_model=LineItemResponse,
)
async def update_line_item(
    proposal_id: UUID,
    item_id: UUID,
    body: LineItemUpdate,
    contractor: dict = Depends(get_current_contractor),
):
    proposal = verify_proposal_access(proposal_id, contractor["id"])
    ensure_editable(proposal)

    data = body.model_dump(exclude_none=True)
    if not data:
        raise HTTPException(status_code=400, detail="No fields to update")

    db = get_supabase()
    current = (
        db.table("proposal_line_items")
        .select("*")
        .eq("id", str(item_id))
        .eq("proposal_id", str(proposal_id))
        .maybe_single()
        .execute()
    )
    if not current or not current.data:
        raise HTTPException(status_code=404, detail="Line item not found")

    is_override = data.get("is_manual_override", current.data.get("is_manual_override", False))
    data["total"] = _line_total(
        data.get("quantity", current.data["quantity"]),
        data.get("unit_price", current.data["unit_price"]),
        data.get("total", current.data["total"]),
        is_override,
    )
    data = _json_safe(data)
    data["updated_at"] = datetime.now(timezone.utc).isoformat()

    result = (
        db.table("proposal_line_items")
        .update(data)
        .eq("id", str(item_id))
        .eq("proposal_id", str(proposal_id))
        .execute()
    )
    recalculate_totals(proposal_id)
    return result.data[0]


@router.delete("/{proposal_id}/line-items/{item_id}", status_code=204)
async def delete_line_item(
    proposal_id: UUID,
    item_id: UUID,
    contractor: dict = Depends(get_current_contractor),
):
    proposal = verify_proposal_access(proposal_id, contractor["id"])
    ensure_editable(proposal)

    db = get_supabase()
    db.table("proposal_line_items").delete().eq("id", str(item_id)).eq(
        "proposal_id", str(proposal_id)
    ).execute()
    pricing = recalculate_totals(proposal_id)
    logger.info(f"Line item {item_id} removed from {proposal_id}; total now {pricing.total:.2f}")
