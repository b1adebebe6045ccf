from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Optional
from datetime import datetime
from uuid import UUID
from decimal import Decimal
from freight.models.offer import ApplicationStatus, RequestStatus

class ApplicationCreate(BaseModel):
    load_id: UUID
    vehicle_id: UUID
    bid_price: Optional[Decimal] = Field(None, ge=0)
    message: Optional[str] = Field(None, max_length=500)

class ApplicationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    vehicle_id: UUID
    load_id: UUID
    vehicle_owner_id: UUID
    vehicle_owner_name: str
    bid_price: Optional[Decimal]
    message: Optional[str]
    status: ApplicationStatus
    review_reason: Optional[str] = None
    applied_at: Optional[datetime]
    responded_at: Optional[datetime]

class ApplicationRespond(BaseModel):
    status: ApplicationStatus
    agreed_price: Optional[Decimal] = Field(None, ge=0)

    @model_validator(mode="after")
    def accepted_or_rejected(self):
        if self.status not in (ApplicationStatus.ACCEPTED, ApplicationStatus.REJECTED):
            raise ValueError("status must be 'accepted' or 'rejected'")
        return self

class ApplicationReview(BaseModel):
    approve: bool
    reason: Optional[str] = Field(None, max_length=500)

class VehicleSelect(BaseModel):
    load_id: UUID
    vehicle_id: UUID
    agreed_price: Optional[Decimal] = Field(None, ge=0)

class VehicleRequestCreate(BaseModel):
    load_id: UUID
    vehicle_id: UUID
    message: Optional[str] = Field(None, max_length=500)
    offered_price: Optional[Decimal] = Field(None, ge=0)

class VehicleRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    load_id: UUID
    vehicle_id: UUID
    load_provider_id: UUID
    vehicle_owner_id: UUID
    load_provider_name: str
    message: Optional[str]
    offered_price: Optional[Decimal]
    status: RequestStatus
    sent_at: Optional[datetime]
    responded_at: Optional[datetime]

class VehicleRequestRespond(BaseModel):
    status: RequestStatus
    agreed_price: Optional[Decimal] = Field(None, ge=0)

    @model_validator(mode="after")
    def not_pending(self):
        if self.status == RequestStatus.PENDING:
            raise ValueError("status must be 'accepted' or 'rejected'")
        return self
