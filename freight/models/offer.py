from sqlalchemy import Column, String, Numeric, ForeignKey, DateTime, Uuid, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.sql import func
import uuid
import enum
from freight.database import Base
from freight.utils.timeutils import utcnow

class ApplicationStatus(str, enum.Enum):
    ADMIN_REVIEW = "admin_review"
    ADMIN_APPROVED = "admin_approved"
    ADMIN_REJECTED = "admin_rejected"
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"

# Applications still in the running for a load
OPEN_APPLICATION_STATUSES = (
    ApplicationStatus.ADMIN_REVIEW,
    ApplicationStatus.ADMIN_APPROVED,
    ApplicationStatus.PENDING,
)

class RequestStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"

class VehicleApplication(Base):
    __tablename__ = "vehicle_applications"
    __table_args__ = (
        UniqueConstraint("vehicle_id", "load_id", name="uq_vehicle_applications_vehicle_load"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    vehicle_id = Column(Uuid, ForeignKey("vehicles.id"), nullable=False)
    load_id = Column(Uuid, ForeignKey("loads.id"), nullable=False, index=True)
    vehicle_owner_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    vehicle_owner_name = Column(String(100), nullable=False)
    bid_price = Column(Numeric(12, 2))
    message = Column(String(500))
    status = Column(SQLEnum(ApplicationStatus), nullable=False, default=ApplicationStatus.PENDING)
    review_reason = Column(String(500))
    applied_at = Column(DateTime(timezone=True), default=utcnow)
    responded_at = Column(DateTime(timezone=True))
    responded_by = Column(Uuid, ForeignKey("users.id"))
    
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

class VehicleRequest(Base):
    __tablename__ = "vehicle_requests"
    __table_args__ = (
        UniqueConstraint("load_id", "vehicle_id", name="uq_vehicle_requests_load_vehicle"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    load_id = Column(Uuid, ForeignKey("loads.id"), nullable=False, index=True)
    vehicle_id = Column(Uuid, ForeignKey("vehicles.id"), nullable=False)
    load_provider_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    vehicle_owner_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    load_provider_name = Column(String(100), nullable=False)
    message = Column(String(500))
    offered_price = Column(Numeric(12, 2))
    status = Column(SQLEnum(RequestStatus), nullable=False, default=RequestStatus.PENDING)
    sent_at = Column(DateTime(timezone=True), default=utcnow)
    responded_at = Column(DateTime(timezone=True))
    
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
