from sqlalchemy import Column, String, Boolean, Integer, Float, ForeignKey, DateTime, Text, Uuid, JSON, Enum as SQLEnum
from sqlalchemy.sql import func
import uuid
import enum
from freight.database import Base
from freight.models.load import VehicleType, TrailerType

class VehicleStatus(str, enum.Enum):
    AVAILABLE = "available"
    ASSIGNED = "assigned"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    UNAVAILABLE = "unavailable"
    MAINTENANCE = "maintenance"

class Tarpaulin(str, enum.Enum):
    ONE = "one"
    TWO = "two"
    NONE = "none"

VEHICLE_NUMBER_PATTERN = r"^[A-Z]{2}[0-9]{1,2}[A-Z]{1,2}[0-9]{4}$"

class Vehicle(Base):
    __tablename__ = "vehicles"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    owner_name = Column(String(100), nullable=False)
    
    vehicle_type = Column(SQLEnum(VehicleType), nullable=False)
    vehicle_size = Column(Integer, nullable=False)
    length = Column(Float, nullable=False)
    breadth = Column(Float, nullable=False)
    vehicle_number = Column(String(20), unique=True, nullable=False)
    passing_limit = Column(Float, nullable=False)  # tons
    availability = Column(DateTime(timezone=True), nullable=False)
    body_type = Column(String(50), nullable=False)
    tarpaulin = Column(SQLEnum(Tarpaulin), nullable=False)
    trailer_type = Column(SQLEnum(TrailerType), default=TrailerType.NONE)
    operating_areas = Column(JSON, default=list)  # [{state, district, place}]
    base_latitude = Column(Float)
    base_longitude = Column(Float)
    photos = Column(JSON, default=list)
    
    # Status
    status = Column(SQLEnum(VehicleStatus), nullable=False, default=VehicleStatus.AVAILABLE, index=True)
    is_approved = Column(Boolean, default=False)
    approved_at = Column(DateTime(timezone=True))
    rejected_at = Column(DateTime(timezone=True))
    rejection_reason = Column(Text)
    loads_completed = Column(Integer, default=0)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
