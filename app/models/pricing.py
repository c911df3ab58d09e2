from pydantic import BaseModel

from app.models.line_item import LineItem, LineItemCategory


class CategoryBreakdown(BaseModel):
    category: LineItemCategory
    total: float
    count: int
    percentage: float  # share of subtotal, 0..1


class PricingCalculation(BaseModel):
    subtotal: float
    tax_amount: float
    total: float
    category_breakdown: list[CategoryBreakdown] = []
    validation_errors: list[str] = []
    warnings: list[str] = []


class PricingRequest(BaseModel):
    """Stateless calculation over a posted line-item snapshot."""
    line_items: list[LineItem] = []
    tax_rate: float = 0


class EstimateRequest(BaseModel):
    square_footage: float = 0
    project_type: str | None = None
    hourly_rate: float | None = None
    base_rate: float | None = None
    complexity_multiplier: float = 1.0
    equipment_type: str | None = None
    duration_days: float = 0


class EstimateResponse(BaseModel):
    labor_hours: float = 0
    labor_cost: float | None = None
    square_footage_price: float | None = None
    equipment_cost: float | None = None
