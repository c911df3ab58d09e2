"""Display formatting for money, percentages and proposal documents."""
import random
import re
from datetime import datetime

CURRENCY_SYMBOLS = {
    "USD": "$",
    "CAD": "CA$",
    "EUR": "€",
    "GBP": "£",
}


def format_currency(amount: float, currency: str = "USD") -> str:
    """Format an amount US-style with 2 decimals, e.g. ``$1,234.50`` or ``-$5.00``."""
    symbol = CURRENCY_SYMBOLS.get(currency, f"{currency} ")
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def format_percentage(value: float, decimals: int = 2) -> str:
    return f"{value:.{decimals}f}%"


def format_phone_number(phone: str) -> str:
    """Format a 10-digit phone as (XXX) XXX-XXXX; anything else is returned as-is."""
    digits = re.sub(r"\D", "", phone or "")
    if len(digits) == 10:
        return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"
    return phone


def format_duration(days: int) -> str:
    def plural(n: int, unit: str) -> str:
        return f"{n} {unit}{'' if n == 1 else 's'}"

    if days < 7:
        return plural(days, "day")
    if days < 30:
        weeks, rest = divmod(days, 7)
        result = plural(weeks, "week")
    else:
        months, rest = divmod(days, 30)
        result = plural(months, "month")
    if rest > 0:
        result += f", {plural(rest, 'day')}"
    return result


def truncate_text(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def generate_proposal_number(now: datetime | None = None) -> str:
    """Human-facing proposal reference: PROP-YYYYMMDD-NNN."""
    now = now or datetime.now()
    return f"PROP-{now:%Y%m%d}-{random.randint(0, 999):03d}"
