from sqlalchemy import Column, String, Boolean, Integer, Numeric, ForeignKey, DateTime, Text, Uuid, UniqueConstraint, Index, Enum as SQLEnum
from sqlalchemy.sql import func
import uuid
import enum
from freight.database import Base
from freight.utils.timeutils import utcnow

class SessionStatus(str, enum.Enum):
    ACTIVE = "active"
    CLOSED = "closed"
    COMPLETED = "completed"

class BidStatus(str, enum.Enum):
    ACTIVE = "active"
    WITHDRAWN = "withdrawn"
    SELECTED = "selected"

class TransportRequestStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"

class BiddingSession(Base):
    __tablename__ = "bidding_sessions"
    __table_args__ = (
        Index("ix_bidding_sessions_status_end_time", "status", "end_time"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    # One bidding session per load, ever
    load_id = Column(Uuid, ForeignKey("loads.id"), unique=True, nullable=False)
    load_provider_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    status = Column(SQLEnum(SessionStatus), nullable=False, default=SessionStatus.ACTIVE)
    min_bid_amount = Column(Numeric(12, 2))
    max_bid_amount = Column(Numeric(12, 2))
    winning_bid_id = Column(Uuid, ForeignKey("bids.id", use_alter=True, name="fk_bidding_sessions_winning_bid_id"))
    total_bids = Column(Integer, nullable=False, default=0)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

class Bid(Base):
    __tablename__ = "bids"
    __table_args__ = (
        UniqueConstraint("bidding_session_id", "vehicle_owner_id", name="uq_bids_session_owner"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    bidding_session_id = Column(Uuid, ForeignKey("bidding_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    load_id = Column(Uuid, ForeignKey("loads.id"), nullable=False, index=True)
    vehicle_id = Column(Uuid, ForeignKey("vehicles.id"), nullable=False)
    vehicle_owner_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    vehicle_owner_name = Column(String(100), nullable=False)
    bid_amount = Column(Numeric(12, 2), nullable=False)
    message = Column(String(500))
    status = Column(SQLEnum(BidStatus), nullable=False, default=BidStatus.ACTIVE)
    is_winning = Column(Boolean, default=False)
    
    # Python-side default keeps sub-second precision for the tie-break order
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

class TransportRequest(Base):
    __tablename__ = "transport_requests"
    __table_args__ = (
        UniqueConstraint("load_id", "vehicle_id", name="uq_transport_requests_load_vehicle"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    load_id = Column(Uuid, ForeignKey("loads.id"), nullable=False)
    vehicle_id = Column(Uuid, ForeignKey("vehicles.id"), nullable=False)
    load_provider_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    vehicle_owner_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    bid_id = Column(Uuid, ForeignKey("bids.id"), nullable=False, index=True)
    bidding_session_id = Column(Uuid, ForeignKey("bidding_sessions.id"), nullable=False)
    agreed_price = Column(Numeric(12, 2), nullable=False)
    message = Column(Text)
    status = Column(SQLEnum(TransportRequestStatus), nullable=False, default=TransportRequestStatus.PENDING)
    sent_at = Column(DateTime(timezone=True), default=utcnow)
    responded_at = Column(DateTime(timezone=True))
    
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
