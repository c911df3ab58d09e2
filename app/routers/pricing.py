from fastapi import APIRouter, Depends
from app.auth import get_current_contractor
from app.engines import pricing
from app.engines.catalog import Material, material_categories, search_materials
from app.models.line_item import LineItem
from app.models.pricing import (
    EstimateRequest,
    EstimateResponse,
    PricingCalculation,
    PricingRequest,
)
from app.models.shared import ValidationResult

router = APIRouter(prefix="/api/v1/pricing", tags=["pricing"])


@router.post("/calculate", response_model=PricingCalculation)
async def calculate(
    body: PricingRequest,
    contractor: dict = Depends(get_current_contractor),
):
    """Price an unsaved line-item list. Nothing is persisted."""
    return pricing.calculate_pricing(body.line_items, body.tax_rate)


@router.post("/validate-line-item", response_model=ValidationResult)
async def validate_line_item(
    body: LineItem,
    contractor: dict = Depends(get_current_contractor),
):
    return pricing.validate_line_item(body)


@router.get("/materials", response_model=list[Material])
async def list_materials(
    search: str | None = None,
    category: str | None = None,
    contractor: dict = Depends(get_current_contractor),
):
    return search_materials(search, category)


@router.get("/materials/categories", response_model=list[str])
async def list_material_categories(
    contractor: dict = Depends(get_current_contractor),
):
    return material_categories()


@router.post("/estimates", response_model=EstimateResponse)
async def estimate(
    body: EstimateRequest,
    contractor: dict = Depends(get_current_contractor),
):
    """Rough labor, area and equipment figures for a glazing job.

    Each figure is only computed when its inputs are present.
    """
    response = EstimateResponse()
    if body.project_type:
        response.labor_hours = pricing.calculate_labor_hours(
            body.square_footage, body.project_type
        )
        if body.hourly_rate is not None:
            response.labor_cost = pricing.calculate_labor_cost(
                body.square_footage, body.project_type, body.hourly_rate
            )
    if body.base_rate is not None:
        response.square_footage_price = pricing.calculate_square_footage_pricing(
            body.square_footage, body.base_rate, body.complexity_multiplier
        )
    if body.equipment_type:
        response.equipment_cost = pricing.calculate_equipment_costs(
            body.duration_days, body.equipment_type
        )
    return response
