from sqlalchemy import Column, Numeric, ForeignKey, DateTime, Text, Uuid, Enum as SQLEnum
from sqlalchemy.sql import func
import uuid
import enum
from freight.database import Base

class AssignmentStatus(str, enum.Enum):
    ASSIGNED = "assigned"
    ENROUTE = "enroute"
    DELIVERED = "delivered"
    COMPLETED = "completed"

class LoadAssignment(Base):
    __tablename__ = "load_assignments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    # At most one assignment per load; the index closes the check-then-insert race
    load_id = Column(Uuid, ForeignKey("loads.id"), unique=True, nullable=False)
    vehicle_id = Column(Uuid, ForeignKey("vehicles.id"), nullable=False, index=True)
    load_provider_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    vehicle_owner_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    application_id = Column(Uuid, ForeignKey("vehicle_applications.id"))
    agreed_price = Column(Numeric(12, 2), nullable=False)
    
    status = Column(SQLEnum(AssignmentStatus), nullable=False, default=AssignmentStatus.ASSIGNED)
    started_at = Column(DateTime(timezone=True))
    delivered_at = Column(DateTime(timezone=True))
    completed_at = Column(DateTime(timezone=True))
    notes = Column(Text)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
