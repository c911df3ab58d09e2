from enum import Enum
from pydantic import BaseModel
from datetime import datetime
from uuid import UUID
from decimal import Decimal

from app.models.line_item import LineItem, LineItemResponse


class ProposalStatus(str, Enum):
    DRAFT = "draft"
    REVIEW = "review"
    READY_TO_SEND = "ready_to_send"
    SENT = "sent"


class ProjectType(str, Enum):
    STOREFRONT_INSTALLATION = "storefront_installation"
    CURTAIN_WALL = "curtain_wall"
    GLASS_DOORS = "glass_doors"
    GLASS_RAILINGS = "glass_railings"
    SHOWERS = "showers"
    GLASS_CANOPIES = "glass_canopies"
    CUSTOM_INSTALLATION = "custom_installation"


PROPOSAL_STATUS_LABELS = {
    ProposalStatus.DRAFT: "Draft",
    ProposalStatus.REVIEW: "Under Review",
    ProposalStatus.READY_TO_SEND: "Ready to Send",
    ProposalStatus.SENT: "Sent",
}

PROJECT_TYPE_LABELS = {
    ProjectType.STOREFRONT_INSTALLATION: "Storefront Installation",
    ProjectType.CURTAIN_WALL: "Curtain Wall",
    ProjectType.GLASS_DOORS: "Glass Doors",
    ProjectType.GLASS_RAILINGS: "Glass Railings",
    ProjectType.SHOWERS: "Showers",
    ProjectType.GLASS_CANOPIES: "Glass Canopies",
    ProjectType.CUSTOM_INSTALLATION: "Custom Installation",
}


class Proposal(BaseModel):
    """Snapshot of a proposal and the line items it owns.

    Monetary fields are derived from ``line_items`` by the pricing engine;
    ``reviewed_at`` and ``sent_at`` are only set by the workflow.
    """
    id: str | None = None
    status: ProposalStatus | str = ProposalStatus.DRAFT
    project_type: ProjectType | str | None = None

    client_name: str | None = None
    client_contact_name: str | None = None
    client_email: str | None = None
    client_phone: str | None = None
    client_address: str | None = None

    project_name: str | None = None
    project_address: str | None = None
    project_description: str | None = None

    subtotal: float = 0
    tax_rate: float = 0
    tax_amount: float = 0
    total_amount: float = 0

    internal_notes: str | None = None
    review_notes: str | None = None

    created_at: datetime | None = None
    updated_at: datetime | None = None
    reviewed_at: datetime | None = None
    sent_at: datetime | None = None

    line_items: list[LineItem] = []


class ProposalCreate(BaseModel):
    project_type: ProjectType
    client_name: str
    client_contact_name: str | None = None
    client_email: str | None = None
    client_phone: str | None = None
    client_address: str | None = None
    project_name: str
    project_address: str | None = None
    project_description: str | None = None
    tax_rate: Decimal | None = None


class ProposalUpdate(BaseModel):
    """Editable fields. Status is changed through the workflow endpoints only."""
    project_type: ProjectType | None = None
    client_name: str | None = None
    client_contact_name: str | None = None
    client_email: str | None = None
    client_phone: str | None = None
    client_address: str | None = None
    project_name: str | None = None
    project_address: str | None = None
    project_description: str | None = None
    tax_rate: Decimal | None = None
    internal_notes: str | None = None


class ProposalResponse(BaseModel):
    id: UUID
    contractor_id: UUID
    project_type: ProjectType
    status: ProposalStatus
    client_name: str
    client_contact_name: str | None = None
    client_email: str | None = None
    client_phone: str | None = None
    client_address: str | None = None
    project_name: str
    project_address: str | None = None
    project_description: str | None = None
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    internal_notes: str | None = None
    review_notes: str | None = None
    line_items: list[LineItemResponse] = []
    created_at: datetime | None = None
    updated_at: datetime | None = None
    reviewed_at: datetime | None = None
    sent_at: datetime | None = None

    model_config = {"from_attributes": True}


class ProposalListItem(BaseModel):
    id: UUID
    project_name: str
    client_name: str
    project_type: ProjectType
    status: ProposalStatus
    total_amount: Decimal
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}
