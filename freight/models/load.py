from sqlalchemy import Column, String, Boolean, Integer, Float, Numeric, ForeignKey, DateTime, Uuid, JSON, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
import enum
from freight.database import Base

class VehicleType(str, enum.Enum):
    TWO_WHEEL = "2-wheel"
    THREE_WHEEL = "3-wheel"
    FOUR_WHEEL = "4-wheel"
    SIX_WHEEL = "6-wheel"
    EIGHT_WHEEL = "8-wheel"
    TEN_WHEEL = "10-wheel"
    TWELVE_WHEEL = "12-wheel"
    FOURTEEN_WHEEL = "14-wheel"
    SIXTEEN_WHEEL = "16-wheel"
    EIGHTEEN_WHEEL = "18-wheel"
    TWENTY_WHEEL = "20-wheel"
    TRAILER = "trailer"

class TrailerType(str, enum.Enum):
    NONE = "none"
    FLATBED = "flatbed"
    LOWBED = "lowbed"
    SEMI_LOWBED = "semi-lowbed"
    HYDRAULIC_AXLE_8 = "hydraulic-axle-8"
    CRANE_14T = "crane-14t"
    CRANE_25T = "crane-25t"
    CRANE_50T = "crane-50t"
    CRANE_100T = "crane-100t"
    CRANE_200T = "crane-200t"

class PaymentTerms(str, enum.Enum):
    ADVANCE = "advance"
    COD = "cod"
    AFTER_POD = "after_pod"
    TO_PAY = "to_pay"
    CREDIT = "credit"

class PackType(str, enum.Enum):
    SINGLE = "single"
    MULTI = "multi"

class LoadStatus(str, enum.Enum):
    POSTED = "posted"
    BIDDING = "bidding"
    ASSIGNED = "assigned"
    ENROUTE = "enroute"
    DELIVERED = "delivered"
    COMPLETED = "completed"

# Sizes a load may require
LOAD_SIZES = (20, 40, 50, 60, 70, 110)

class Load(Base):
    __tablename__ = "loads"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    load_provider_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    load_provider_name = Column(String(100), nullable=False)
    
    # Locations: {pincode, state, district, place, latitude?, longitude?}
    loading_location = Column(JSON, nullable=False)
    unloading_location = Column(JSON, nullable=False)
    
    # Vehicle requirement
    vehicle_type = Column(SQLEnum(VehicleType), nullable=False)
    vehicle_size = Column(Integer, nullable=False)
    trailer_type = Column(SQLEnum(TrailerType), default=TrailerType.NONE)
    
    loading_date = Column(DateTime(timezone=True), nullable=False)
    loading_time = Column(String(20), nullable=False)
    photos = Column(JSON, default=list)
    payment_terms = Column(SQLEnum(PaymentTerms), nullable=False)
    with_xbow_support = Column(Boolean, default=False)
    
    # Status tracking
    status = Column(SQLEnum(LoadStatus), nullable=False, default=LoadStatus.POSTED, index=True)
    assigned_vehicle_id = Column(Uuid, ForeignKey("vehicles.id"))
    journey_started_at = Column(DateTime(timezone=True))
    
    # Commission
    commission_applicable = Column(Boolean, default=False)
    commission_amount = Column(Numeric(12, 2))
    
    is_deleted = Column(Boolean, default=False)
    deleted_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    
    # Relationships
    materials = relationship(
        "Material",
        back_populates="load",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="Material.position"
    )

    @property
    def total_weight_kg(self) -> float:
        return sum(float(m.total_weight or 0) for m in self.materials)

class Material(Base):
    __tablename__ = "load_materials"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    load_id = Column(Uuid, ForeignKey("loads.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    name = Column(String(255), nullable=False)
    
    # Dimensions
    length = Column(Float, nullable=False)
    width = Column(Float, nullable=False)
    height = Column(Float, nullable=False)
    
    pack_type = Column(SQLEnum(PackType), nullable=False)
    total_count = Column(Integer, nullable=False)
    single_weight = Column(Float, nullable=False)  # kg
    total_weight = Column(Float, nullable=False)  # kg
    photos = Column(JSON, default=list)
    
    load = relationship("Load", back_populates="materials")
