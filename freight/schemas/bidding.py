from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Optional
from datetime import datetime
from uuid import UUID
from decimal import Decimal
from freight.models.bidding import SessionStatus, BidStatus, TransportRequestStatus

class BiddingSessionCreate(BaseModel):
    load_id: UUID
    start_time: datetime
    end_time: datetime
    min_bid_amount: Optional[Decimal] = Field(None, ge=0)
    max_bid_amount: Optional[Decimal] = Field(None, ge=0)

class BiddingSessionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    load_id: UUID
    load_provider_id: UUID
    start_time: datetime
    end_time: datetime
    status: SessionStatus
    min_bid_amount: Optional[Decimal]
    max_bid_amount: Optional[Decimal]
    winning_bid_id: Optional[UUID]
    total_bids: int
    created_at: Optional[datetime] = None

class BidCreate(BaseModel):
    bidding_session_id: UUID
    vehicle_id: UUID
    bid_amount: Decimal = Field(..., ge=0)
    message: Optional[str] = Field(None, max_length=500)

class BidResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    bidding_session_id: UUID
    load_id: UUID
    vehicle_id: UUID
    vehicle_owner_id: UUID
    vehicle_owner_name: str
    bid_amount: Decimal
    message: Optional[str]
    status: BidStatus
    is_winning: bool
    created_at: Optional[datetime] = None

class BidSelection(BaseModel):
    bid_id: UUID
    message: Optional[str] = Field(None, max_length=1000)

class TransportRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    load_id: UUID
    vehicle_id: UUID
    load_provider_id: UUID
    vehicle_owner_id: UUID
    bid_id: UUID
    bidding_session_id: UUID
    agreed_price: Decimal
    message: Optional[str]
    status: TransportRequestStatus
    sent_at: Optional[datetime]
    responded_at: Optional[datetime]

class TransportRequestRespond(BaseModel):
    status: TransportRequestStatus

    @model_validator(mode="after")
    def not_pending(self):
        if self.status == TransportRequestStatus.PENDING:
            raise ValueError("status must be 'accepted' or 'rejected'")
        return self

class BidStats(BaseModel):
    total_bids: int = 0
    highest_bid: Decimal = Decimal("0")
    lowest_bid: Decimal = Decimal("0")
    average_bid: Decimal = Decimal("0")
