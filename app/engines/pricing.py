"""Pricing engine: line items to subtotal, tax, total and category breakdown.

Every function here is pure: callers pass a line-item snapshot and get plain
numbers or result models back. Recomputation after an edit is a single call
to ``calculate_pricing``.

The subtotal is the sum of each item's stored ``total``, not
``quantity * unit_price``. A stored total that disagrees with its inputs is
reported by ``validate_pricing`` as an error but still counts towards the
subtotal (manual overrides rely on this).
"""
from app.models.line_item import LineItem, LineItemCategory
from app.models.pricing import CategoryBreakdown, PricingCalculation
from app.models.shared import ValidationResult
from app.engines.catalog import (
    SUGGESTED_PRICING,
    LABOR_HOURS_PER_SQFT,
    DEFAULT_LABOR_HOURS_PER_SQFT,
    EQUIPMENT_DAILY_RATES,
    DEFAULT_EQUIPMENT_DAILY_RATE,
)
from app.engines.formatting import format_currency

MIN_UNIT_PRICE = 0.01
MAX_UNIT_PRICE = 10_000
MAX_QUANTITY = 100_000
MAX_TOTAL = 10_000_000

# Allowed drift between a stored total and quantity * unit_price
TOTAL_TOLERANCE = 0.01

# Material/labor cost ratio outside this band triggers a review warning
MAX_MATERIAL_LABOR_RATIO = 10
MIN_MATERIAL_LABOR_RATIO = 0.1


def calculate_pricing(items: list[LineItem], tax_rate: float) -> PricingCalculation:
    """Compute the full pricing snapshot for a proposal."""
    subtotal = calculate_subtotal(items)
    tax_amount = calculate_tax_amount(subtotal, tax_rate)
    total = subtotal + tax_amount
    validation = validate_pricing(items, total)

    return PricingCalculation(
        subtotal=subtotal,
        tax_amount=tax_amount,
        total=total,
        category_breakdown=calculate_category_breakdown(items, subtotal),
        validation_errors=validation.errors,
        warnings=validation.warnings,
    )


def calculate_subtotal(items: list[LineItem]) -> float:
    return sum((item.total for item in items), 0.0)


def calculate_tax_amount(subtotal: float, tax_rate: float) -> float:
    return subtotal * tax_rate / 100


def _category_total(items: list[LineItem], category: LineItemCategory) -> float:
    return sum((item.total for item in items if item.category == category), 0.0)


def calculate_category_breakdown(
    items: list[LineItem], subtotal: float
) -> list[CategoryBreakdown]:
    """Per-category totals in enum order. Categories without items are omitted."""
    breakdown = []
    for category in LineItemCategory:
        count = sum(1 for item in items if item.category == category)
        if count == 0:
            continue
        category_total = _category_total(items, category)
        breakdown.append(
            CategoryBreakdown(
                category=category,
                total=category_total,
                count=count,
                percentage=category_total / subtotal if subtotal > 0 else 0,
            )
        )
    return breakdown


def validate_pricing(items: list[LineItem], total: float) -> ValidationResult:
    errors: list[str] = []
    warnings: list[str] = []

    if not items:
        warnings.append("No line items added. Add items to calculate pricing.")

    for index, item in enumerate(items, start=1):
        prefix = f"Line item {index}"

        if not item.description or not item.description.strip():
            errors.append(f"{prefix}: Description is required")

        if item.quantity <= 0:
            errors.append(f"{prefix}: Quantity must be greater than 0")
        if item.quantity > MAX_QUANTITY:
            errors.append(f"{prefix}: Quantity exceeds maximum limit of {MAX_QUANTITY:,}")

        if item.unit_price < MIN_UNIT_PRICE:
            errors.append(
                f"{prefix}: Unit price must be at least {format_currency(MIN_UNIT_PRICE)}"
            )
        if item.unit_price > MAX_UNIT_PRICE:
            errors.append(
                f"{prefix}: Unit price exceeds maximum limit of {format_currency(MAX_UNIT_PRICE)}"
            )

        expected = calculate_line_item_total(item.quantity, item.unit_price)
        if abs(item.total - expected) > TOTAL_TOLERANCE:
            errors.append(
                f"{prefix}: Total calculation mismatch. "
                f"Expected {format_currency(expected)}, got {format_currency(item.total)}"
            )

        if item.total == 0 and item.quantity > 0 and item.unit_price > 0:
            warnings.append(f"{prefix}: Total is zero despite having quantity and unit price")

    if total > MAX_TOTAL:
        errors.append(f"Total amount exceeds maximum limit of {format_currency(MAX_TOTAL)}")

    ratio_warning = _material_labor_warning(items)
    if ratio_warning:
        warnings.append(ratio_warning)

    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)


def _material_labor_warning(items: list[LineItem]) -> str | None:
    """Flag a skewed material/labor split. Skipped when labor totals zero."""
    has_material = any(item.category == LineItemCategory.MATERIAL for item in items)
    has_labor = any(item.category == LineItemCategory.LABOR for item in items)
    if not (has_material and has_labor):
        return None

    labor_total = _category_total(items, LineItemCategory.LABOR)
    if labor_total == 0:
        return None

    ratio = _category_total(items, LineItemCategory.MATERIAL) / labor_total
    if ratio > MAX_MATERIAL_LABOR_RATIO:
        return "Material costs are significantly higher than labor costs. Consider reviewing pricing."
    if ratio < MIN_MATERIAL_LABOR_RATIO:
        return "Labor costs are significantly higher than material costs. Consider reviewing pricing."
    return None


def validate_line_item(item: LineItem) -> ValidationResult:
    """Quick single-row check used while a line item is being edited."""
    errors = []
    if not item.description or not item.description.strip():
        errors.append("Description is required")
    if item.quantity <= 0:
        errors.append("Quantity must be greater than 0")
    if item.unit_price < MIN_UNIT_PRICE:
        errors.append(f"Unit price must be at least {format_currency(MIN_UNIT_PRICE)}")
    if abs(item.total - calculate_line_item_total(item.quantity, item.unit_price)) > TOTAL_TOLERANCE:
        errors.append("Total calculation mismatch")
    return ValidationResult(is_valid=not errors, errors=errors)


def calculate_line_item_total(quantity: float, unit_price: float) -> float:
    return quantity * unit_price


# ── Auxiliary helpers ──


def apply_overhead(subtotal: float, overhead_percentage: float) -> float:
    return subtotal * overhead_percentage / 100


def apply_profit_margin(subtotal: float, profit_percentage: float) -> float:
    return subtotal * profit_percentage / 100


def calculate_markup(cost: float, selling_price: float) -> float:
    """Markup as a percentage of cost. 0 when cost is 0."""
    if cost == 0:
        return 0
    return (selling_price - cost) / cost * 100


def calculate_profit_margin(cost: float, selling_price: float) -> float:
    """Margin as a percentage of selling price. 0 when price is 0."""
    if selling_price == 0:
        return 0
    return (selling_price - cost) / selling_price * 100


def get_suggested_pricing(material_name: str, unit: str) -> float:
    return SUGGESTED_PRICING.get((material_name, unit), 0)


def calculate_square_footage_pricing(
    square_footage: float,
    base_rate: float,
    complexity_multiplier: float = 1.0,
) -> float:
    return square_footage * base_rate * complexity_multiplier


def calculate_labor_hours(square_footage: float, project_type: str) -> float:
    key = getattr(project_type, "value", project_type)
    rate = LABOR_HOURS_PER_SQFT.get(key) or DEFAULT_LABOR_HOURS_PER_SQFT
    return square_footage * rate


def calculate_labor_cost(square_footage: float, project_type: str, hourly_rate: float) -> float:
    return calculate_labor_hours(square_footage, project_type) * hourly_rate


def calculate_equipment_costs(duration_days: float, equipment_type: str) -> float:
    rate = EQUIPMENT_DAILY_RATES.get(equipment_type) or DEFAULT_EQUIPMENT_DAILY_RATE
    return duration_days * rate
