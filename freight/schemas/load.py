from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional
from datetime import datetime
from uuid import UUID
from decimal import Decimal
from freight.config import settings
from freight.models.load import LoadStatus, VehicleType, TrailerType, PaymentTerms, PackType, LOAD_SIZES

class Location(BaseModel):
    pincode: str = Field(..., pattern=r"^[0-9]{6}$")
    state: str = Field(..., min_length=1)
    district: str = Field(..., min_length=1)
    place: str = Field(..., min_length=1)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

class MaterialIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    length: float = Field(..., ge=0)
    width: float = Field(..., ge=0)
    height: float = Field(..., ge=0)
    pack_type: PackType
    total_count: int = Field(..., ge=1)
    single_weight: float = Field(..., ge=0, description="kg")
    total_weight: float = Field(..., ge=0, description="kg")
    photos: List[str] = []

class MaterialResponse(MaterialIn):
    model_config = ConfigDict(from_attributes=True)

    id: UUID

class LoadCreate(BaseModel):
    loading_location: Location
    unloading_location: Location
    vehicle_type: VehicleType
    vehicle_size: int
    trailer_type: TrailerType = TrailerType.NONE
    materials: List[MaterialIn]
    loading_date: datetime
    loading_time: str = Field(..., min_length=1, max_length=20)
    payment_terms: PaymentTerms
    with_xbow_support: bool = False
    photos: List[str] = []

    @field_validator("vehicle_size")
    @classmethod
    def size_must_be_known(cls, value: int) -> int:
        if value not in LOAD_SIZES:
            raise ValueError(f"vehicle_size must be one of {LOAD_SIZES}")
        return value

    @field_validator("materials")
    @classmethod
    def materials_count(cls, value: List[MaterialIn]) -> List[MaterialIn]:
        if not 1 <= len(value) <= settings.MAX_MATERIALS_PER_LOAD:
            raise ValueError(
                f"A load must have between 1 and {settings.MAX_MATERIALS_PER_LOAD} materials"
            )
        return value

class LoadResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    load_provider_id: UUID
    load_provider_name: str
    loading_location: Location
    unloading_location: Location
    vehicle_type: VehicleType
    vehicle_size: int
    trailer_type: Optional[TrailerType]
    materials: List[MaterialResponse]
    total_weight_kg: float
    loading_date: datetime
    loading_time: str
    payment_terms: PaymentTerms
    with_xbow_support: bool
    status: LoadStatus
    assigned_vehicle_id: Optional[UUID]
    commission_applicable: Optional[bool]
    commission_amount: Optional[Decimal]
    created_at: Optional[datetime] = None

class LoadStatusForce(BaseModel):
    status: str
