from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime
from uuid import UUID
from decimal import Decimal
from freight.models.assignment import AssignmentStatus

class AssignmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    load_id: UUID
    vehicle_id: UUID
    load_provider_id: UUID
    vehicle_owner_id: UUID
    application_id: Optional[UUID]
    agreed_price: Decimal
    status: AssignmentStatus
    started_at: Optional[datetime]
    delivered_at: Optional[datetime]
    completed_at: Optional[datetime]
    notes: Optional[str]
    created_at: Optional[datetime] = None

class AssignmentStatusUpdate(BaseModel):
    # Free-form so that the in_progress / in_transit aliases can be normalised
    status: str = Field(..., min_length=1)
    notes: Optional[str] = None

class AssignmentNotes(BaseModel):
    notes: str

class AdminMatchRequest(BaseModel):
    load_id: UUID
    vehicle_id: UUID
    agreed_price: Optional[Decimal] = Field(None, ge=0)
