from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime
from uuid import UUID
from freight.models.other import RatingType, MessageType

class RatingCreate(BaseModel):
    load_id: UUID
    vehicle_id: UUID
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=1000)

class RatingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    from_user_id: UUID
    to_user_id: UUID
    load_id: UUID
    vehicle_id: Optional[UUID]
    assignment_id: UUID
    rating: int
    comment: Optional[str]
    type: RatingType
    created_at: Optional[datetime] = None

class MessageCreate(BaseModel):
    to_user_id: UUID
    load_id: UUID
    vehicle_id: Optional[UUID] = None
    message: str = Field(..., min_length=1, max_length=1000)
    message_type: MessageType = MessageType.GENERAL

class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    from_user_id: UUID
    to_user_id: UUID
    load_id: UUID
    vehicle_id: Optional[UUID]
    message: str
    message_type: MessageType
    is_read: bool
    created_at: Optional[datetime] = None
