"""Reference pricing data for glazing work.

Material catalog, suggested unit prices, labor productivity per project type
and daily equipment rental rates. Materials are mapped into line items here so
the pricing engine only ever receives typed ``LineItem`` snapshots.
"""
from pydantic import BaseModel

from app.models.line_item import LineItem, LineItemCategory


class Material(BaseModel):
    id: str
    name: str
    description: str | None = None
    unit: str
    suggested_price: float
    category: str | None = None
    supplier: str | None = None


MATERIALS: list[Material] = [
    Material(
        id="1",
        name='Tempered Glass 1/4"',
        description="Clear tempered safety glass",
        unit="sq ft",
        suggested_price=12.50,
        category="Glass",
        supplier="GlassCo",
    ),
    Material(
        id="2",
        name="Aluminum Frame System",
        description="Standard aluminum framing system",
        unit="lin ft",
        suggested_price=45.00,
        category="Framing",
        supplier="FrameTech",
    ),
    Material(
        id="3",
        name="Silicone Sealant",
        description="High-performance structural silicone",
        unit="tube",
        suggested_price=8.75,
        category="Sealants",
        supplier="SealPro",
    ),
    Material(
        id="4",
        name="Glass Door Hardware",
        description="Complete door hardware set",
        unit="set",
        suggested_price=125.00,
        category="Hardware",
        supplier="HardwareCo",
    ),
    Material(
        id="5",
        name="Insulated Glass Unit",
        description="Double-pane insulated glass",
        unit="sq ft",
        suggested_price=28.00,
        category="Glass",
        supplier="GlassCo",
    ),
    Material(
        id="6",
        name="Stainless Steel Railings",
        description="Premium stainless steel railing system",
        unit="lin ft",
        suggested_price=85.00,
        category="Railings",
        supplier="RailingPro",
    ),
]

# (material name, unit) -> suggested unit price
SUGGESTED_PRICING: dict[tuple[str, str], float] = {
    (m.name, m.unit): m.suggested_price for m in MATERIALS
}

# Installation hours per square foot
LABOR_HOURS_PER_SQFT: dict[str, float] = {
    "storefront_installation": 0.5,
    "curtain_wall": 0.8,
    "glass_doors": 0.3,
    "glass_railings": 0.4,
    "showers": 0.6,
    "glass_canopies": 1.0,
    "custom_installation": 1.2,
}
DEFAULT_LABOR_HOURS_PER_SQFT = 0.5

EQUIPMENT_DAILY_RATES: dict[str, float] = {
    "scaffolding": 150,
    "crane": 800,
    "lift": 300,
    "specialty_tools": 75,
}
DEFAULT_EQUIPMENT_DAILY_RATE = 100


def get_material(material_id: str) -> Material | None:
    return next((m for m in MATERIALS if m.id == material_id), None)


def material_categories() -> list[str]:
    return sorted({m.category for m in MATERIALS if m.category})


def search_materials(term: str | None = None, category: str | None = None) -> list[Material]:
    """Case-insensitive match on name or description, optionally within one category."""
    results = MATERIALS
    if term:
        needle = term.lower()
        results = [
            m for m in results
            if needle in m.name.lower() or needle in (m.description or "").lower()
        ]
    if category and category != "all":
        results = [m for m in results if m.category == category]
    return list(results)


def material_to_line_item(
    material: Material,
    quantity: float = 1,
    order_index: int = 0,
    proposal_id: str | None = None,
) -> LineItem:
    """Map a catalog material into a MATERIAL line item priced at its suggestion."""
    return LineItem(
        proposal_id=proposal_id,
        category=LineItemCategory.MATERIAL,
        description=material.name,
        quantity=quantity,
        unit=material.unit,
        unit_price=material.suggested_price,
        total=quantity * material.suggested_price,
        material_id=material.id,
        order_index=order_index,
    )
