from sqlalchemy import Column, Integer, ForeignKey, DateTime, Text, Boolean, Uuid, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.sql import func
import uuid
import enum
from freight.database import Base

# Ratings
class RatingType(str, enum.Enum):
    LOAD_PROVIDER_TO_VEHICLE_OWNER = "load_provider_to_vehicle_owner"
    VEHICLE_OWNER_TO_LOAD_PROVIDER = "vehicle_owner_to_load_provider"

class Rating(Base):
    __tablename__ = "ratings"
    __table_args__ = (
        UniqueConstraint("from_user_id", "to_user_id", "load_id", "type", name="uq_ratings_once_per_load"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    from_user_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    to_user_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    load_id = Column(Uuid, ForeignKey("loads.id"), nullable=False)
    vehicle_id = Column(Uuid, ForeignKey("vehicles.id"))
    assignment_id = Column(Uuid, ForeignKey("load_assignments.id"), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text)
    type = Column(SQLEnum(RatingType), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

# Messages
class MessageType(str, enum.Enum):
    APPLICATION = "application"
    NEGOTIATION = "negotiation"
    STATUS_UPDATE = "status_update"
    GENERAL = "general"

class Message(Base):
    __tablename__ = "messages"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    from_user_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    to_user_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    load_id = Column(Uuid, ForeignKey("loads.id"), nullable=False, index=True)
    vehicle_id = Column(Uuid, ForeignKey("vehicles.id"))
    message = Column(Text, nullable=False)
    message_type = Column(SQLEnum(MessageType), default=MessageType.GENERAL)
    is_read = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
