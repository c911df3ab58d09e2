from pydantic import BaseModel
from uuid import UUID


class ValidationResult(BaseModel):
    """Outcome of a validation pass. Warnings never affect ``is_valid``."""
    is_valid: bool
    errors: list[str] = []
    warnings: list[str] = []


class StateTransitionCreate(BaseModel):
    entity_type: str = "proposal"
    entity_id: UUID
    from_status: str | None = None
    to_status: str
    actor_id: UUID | None = None
    actor_type: str  # 'system' | 'contractor'
    reason: str | None = None
    metadata: dict = {}
