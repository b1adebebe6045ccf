import re
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional
from datetime import datetime
from uuid import UUID
from freight.models.load import VehicleType, TrailerType
from freight.models.vehicle import VehicleStatus, Tarpaulin, VEHICLE_NUMBER_PATTERN

class OperatingArea(BaseModel):
    state: str
    district: str
    place: str

class VehicleCreate(BaseModel):
    vehicle_type: VehicleType
    vehicle_size: int = Field(..., gt=0)
    length: float = Field(..., gt=0)
    breadth: float = Field(..., gt=0)
    vehicle_number: str
    passing_limit: float = Field(..., ge=1, le=10000, description="tons")
    availability: datetime
    body_type: str = Field(..., min_length=1, max_length=50)
    tarpaulin: Tarpaulin
    trailer_type: TrailerType = TrailerType.NONE
    operating_areas: List[OperatingArea] = []
    base_latitude: Optional[float] = Field(None, ge=-90, le=90)
    base_longitude: Optional[float] = Field(None, ge=-180, le=180)
    photos: List[str] = []

    @field_validator("vehicle_number", mode="before")
    @classmethod
    def normalise_number(cls, value: str) -> str:
        return str(value).replace(" ", "").upper()

    @field_validator("vehicle_number")
    @classmethod
    def check_number(cls, value: str) -> str:
        if not re.match(VEHICLE_NUMBER_PATTERN, value):
            raise ValueError("Please enter a valid vehicle number")
        return value

class VehicleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    owner_id: UUID
    owner_name: str
    vehicle_type: VehicleType
    vehicle_size: int
    length: float
    breadth: float
    vehicle_number: str
    passing_limit: float
    availability: datetime
    body_type: str
    tarpaulin: Tarpaulin
    trailer_type: Optional[TrailerType]
    operating_areas: List[OperatingArea]
    photos: List[str]
    status: VehicleStatus
    is_approved: bool
    loads_completed: int

class VehicleStatusUpdate(BaseModel):
    status: VehicleStatus

class VehicleApproval(BaseModel):
    approve: bool
    reason: Optional[str] = None

class MatchingVehicle(BaseModel):
    vehicle: VehicleResponse
    compatibility_score: int
    is_requested: bool
    request_status: Optional[str] = None
