"""Proposal PDF generator using WeasyPrint.

Renders the client-facing proposal, line items grouped by category with
totals, and stores it in Supabase Storage.
"""
from datetime import datetime, timezone
from pathlib import Path
from loguru import logger
from jinja2 import Environment, FileSystemLoader

from app.config import get_settings
from app.engines.formatting import (
    format_currency,
    format_percentage,
    format_phone_number,
    generate_proposal_number,
)
from app.models.line_item import LineItemCategory, LINE_ITEM_CATEGORY_LABELS
from app.models.proposal import PROJECT_TYPE_LABELS, ProjectType
from app.processors.storage import (
    upload_file,
    generate_signed_url,
    proposal_pdf_path,
)
from app.services.proposal_store import fetch_line_items, record_transition

TEMPLATE_DIR = Path(__file__).parent / "templates"


def _format_date(value) -> str:
    """Format an ISO date string to readable format."""
    if not value:
        return "-"
    try:
        if isinstance(value, str):
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        elif isinstance(value, datetime):
            dt = value
        else:
            return str(value)
        return dt.strftime("%B %d, %Y")
    except (ValueError, AttributeError):
        return str(value)


def _format_quantity(value) -> str:
    try:
        return f"{float(value):,.2f}".rstrip("0").rstrip(".") or "0"
    except (TypeError, ValueError):
        return "0"


def _project_type_label(value) -> str:
    try:
        return PROJECT_TYPE_LABELS[ProjectType(value)]
    except ValueError:
        return str(value or "-")


def build_context(
    proposal: dict,
    line_items: list[dict],
    contractor: dict,
    proposal_number: str,
    now: datetime | None = None,
) -> dict:
    """Template context for ``proposal.html``. Money is pre-formatted."""
    settings = get_settings()
    currency = settings.currency
    now = now or datetime.now(timezone.utc)

    sections = []
    for category in LineItemCategory:
        rows = [item for item in line_items if item.get("category") == category.value]
        if not rows:
            continue
        sections.append(
            {
                "label": LINE_ITEM_CATEGORY_LABELS[category],
                "items": [
                    {
                        "description": row.get("description") or "",
                        "quantity": _format_quantity(row.get("quantity")),
                        "unit": row.get("unit") or "each",
                        "unit_price": format_currency(float(row.get("unit_price") or 0), currency),
                        "total": format_currency(float(row.get("total") or 0), currency),
                    }
                    for row in rows
                ],
                "total": format_currency(
                    sum(float(row.get("total") or 0) for row in rows), currency
                ),
            }
        )

    tax_rate = float(proposal.get("tax_rate") or 0)
    return {
        "proposal_number": proposal_number,
        "generated_date": _format_date(now),
        "company_name": contractor.get("company_name") or settings.company_name,
        "contractor_name": contractor.get("name") or "",
        "contractor_email": contractor.get("email") or "",
        "client_name": proposal.get("client_name") or "",
        "client_email": proposal.get("client_email") or "",
        "client_phone": format_phone_number(proposal.get("client_phone") or ""),
        "client_address": proposal.get("client_address") or "",
        "project_name": proposal.get("project_name") or "",
        "project_description": proposal.get("project_description") or "",
        "project_address": proposal.get("project_address") or "",
        "project_type": _project_type_label(proposal.get("project_type")),
        "sections": sections,
        "subtotal": format_currency(float(proposal.get("subtotal") or 0), currency),
        "tax_rate": format_percentage(tax_rate),
        "show_tax": tax_rate > 0,
        "tax_amount": format_currency(float(proposal.get("tax_amount") or 0), currency),
        "total_amount": format_currency(float(proposal.get("total_amount") or 0), currency),
    }


def render_proposal_html(context: dict) -> str:
    env = Environment(loader=FileSystemLoader(str(TEMPLATE_DIR)), autoescape=True)
    template = env.get_template("proposal.html")
    return template.render(**context)


def html_to_pdf(html_content: str) -> bytes:
    from weasyprint import HTML

    return HTML(string=html_content).write_pdf()


async def generate_proposal_pdf(proposal: dict, contractor: dict) -> str:
    """Generate the PDF for a proposal and return a signed URL to it.

    Workflow:
    1. Fetch line items in display order
    2. Render HTML template with Jinja2
    3. Convert to PDF with WeasyPrint
    4. Upload PDF to Supabase Storage
    5. Record state_transition

    Args:
        proposal: Proposal row, already access-checked.
        contractor: Contractor row of the caller.

    Returns:
        Signed URL to the generated PDF.
    """
    settings = get_settings()
    proposal_number = proposal.get("proposal_number") or generate_proposal_number()

    context = build_context(
        proposal, fetch_line_items(proposal["id"]), contractor, proposal_number
    )
    pdf_bytes = html_to_pdf(render_proposal_html(context))
    logger.info(f"PDF generated for {proposal_number}: {len(pdf_bytes)} bytes")

    storage_path = proposal_pdf_path(contractor["id"], proposal["id"], proposal_number)
    await upload_file(
        bucket=settings.proposals_bucket,
        path=storage_path,
        file_bytes=pdf_bytes,
        content_type="application/pdf",
    )
    pdf_url = await generate_signed_url(
        settings.proposals_bucket, storage_path, settings.pdf_url_expires_seconds
    )

    record_transition(
        proposal_id=proposal["id"],
        from_status=proposal["status"],
        to_status=proposal["status"],
        actor_type="system",
        metadata={
            "action": "pdf_generated",
            "pdf_size_bytes": len(pdf_bytes),
            "storage_path": storage_path,
        },
    )
    logger.info(f"PDF uploaded to {storage_path} for proposal {proposal['id']}")
    return pdf_url
