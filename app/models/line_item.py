from enum import Enum
from pydantic import BaseModel
from datetime import datetime
from uuid import UUID
from decimal import Decimal


class LineItemCategory(str, Enum):
    MATERIAL = "material"
    LABOR = "labor"
    EQUIPMENT = "equipment"
    OVERHEAD = "overhead"
    PROFIT = "profit"
    CUSTOM = "custom"


LINE_ITEM_CATEGORY_LABELS = {
    LineItemCategory.MATERIAL: "Material",
    LineItemCategory.LABOR: "Labor",
    LineItemCategory.EQUIPMENT: "Equipment",
    LineItemCategory.OVERHEAD: "Overhead",
    LineItemCategory.PROFIT: "Profit",
    LineItemCategory.CUSTOM: "Custom",
}

DEFAULT_UNITS = ("each", "sq ft", "lin ft", "cu ft", "hour", "day", "week", "lb", "ton")


class LineItem(BaseModel):
    """A priced row as the pricing engine sees it.

    No bounds here: out-of-range quantities and prices are reported by the
    pricing engine as validation errors.
    """
    id: str | None = None
    proposal_id: str | None = None
    category: LineItemCategory = LineItemCategory.CUSTOM
    description: str = ""
    quantity: float = 0
    unit: str = "each"
    unit_price: float = 0
    total: float = 0
    is_manual_override: bool = False
    material_id: str | None = None
    order_index: int = 0


class LineItemCreate(BaseModel):
    category: LineItemCategory = LineItemCategory.MATERIAL
    description: str
    quantity: Decimal = Decimal("1")
    unit: str = "each"
    unit_price: Decimal = Decimal("0")
    total: Decimal | None = None  # only honoured with is_manual_override
    is_manual_override: bool = False
    material_id: str | None = None
    order_index: int | None = None


class LineItemUpdate(BaseModel):
    category: LineItemCategory | None = None
    description: str | None = None
    quantity: Decimal | None = None
    unit: str | None = None
    unit_price: Decimal | None = None
    total: Decimal | None = None
    is_manual_override: bool | None = None
    material_id: str | None = None
    order_index: int | None = None


class LineItemResponse(BaseModel):
    id: UUID
    proposal_id: UUID
    category: LineItemCategory
    description: str
    quantity: Decimal
    unit: str
    unit_price: Decimal
    total: Decimal
    is_manual_override: bool = False
    material_id: str | None = None
    order_index: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}
