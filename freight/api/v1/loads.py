from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from freight.database import get_db
from freight.dependencies import get_current_user, get_current_provider
from freight.schemas.load import LoadCreate, LoadResponse
from freight.schemas.vehicle import MatchingVehicle, VehicleResponse
from freight.services.matching_service import MatchingService
from freight.models import User, Load, LoadStatus, Material
from freight.exceptions import NotFoundError, InvalidStateError
from freight.utils.response import success_response
from freight.utils.timeutils import utcnow, as_utc
from uuid import UUID
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/loads", tags=["Loads"])

async def _provider_load(db: AsyncSession, load_id: UUID, provider: User) -> Load:
    load = await db.get(Load, load_id)
    if not load or load.is_deleted or load.load_provider_id != provider.id:
        raise NotFoundError("Load not found")
    return load

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_load(
    load_data: LoadCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_provider)
):
    """Post a new load"""
    load = Load(
        load_provider_id=current_user.id,
        load_provider_name=current_user.company_name or current_user.name,
        loading_location=load_data.loading_location.model_dump(),
        unloading_location=load_data.unloading_location.model_dump(),
        vehicle_type=load_data.vehicle_type,
        vehicle_size=load_data.vehicle_size,
        trailer_type=load_data.trailer_type,
        loading_date=as_utc(load_data.loading_date),
        loading_time=load_data.loading_time,
        photos=load_data.photos,
        payment_terms=load_data.payment_terms,
        with_xbow_support=load_data.with_xbow_support,
        commission_applicable=load_data.with_xbow_support,
        status=LoadStatus.POSTED,
        materials=[
            Material(position=index, **material.model_dump())
            for index, material in enumerate(load_data.materials)
        ]
    )

    db.add(load)
    await db.commit()
    await db.refresh(load)

    logger.info("Load %s posted by %s", load.id, current_user.id)
    return success_response(LoadResponse.model_validate(load), "Load posted successfully")

@router.get("/my")
async def get_my_loads(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_provider)
):
    result = await db.execute(
        select(Load)
        .where(Load.load_provider_id == current_user.id, Load.is_deleted == False)
        .order_by(Load.created_at.desc())
    )
    loads = result.scalars().all()
    return success_response([LoadResponse.model_validate(load) for load in loads])

@router.get("/available")
async def get_available_loads(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Loads still open to applications and bids"""
    result = await db.execute(
        select(Load)
        .where(
            Load.is_deleted == False,
            Load.status.in_([LoadStatus.POSTED, LoadStatus.BIDDING])
        )
        .order_by(Load.loading_date)
    )
    loads = result.scalars().all()
    return success_response([LoadResponse.model_validate(load) for load in loads])

@router.get("/{load_id}")
async def get_load(
    load_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    load = await db.get(Load, load_id)
    if not load or load.is_deleted:
        raise NotFoundError("Load not found")
    return success_response(LoadResponse.model_validate(load))

@router.delete("/{load_id}")
async def delete_load(
    load_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_provider)
):
    """Soft delete; only loads nobody is bidding on or assigned to"""
    load = await _provider_load(db, load_id, current_user)
    if load.status != LoadStatus.POSTED:
        raise InvalidStateError(f"Cannot delete a load that is {load.status.value}")

    load.is_deleted = True
    load.deleted_at = utcnow()
    await db.commit()
    return success_response(message="Load deleted successfully")

@router.get("/{load_id}/matching-vehicles")
async def get_matching_vehicles(
    load_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_provider)
):
    """Compatible vehicles ranked by compatibility score"""
    load = await _provider_load(db, load_id, current_user)

    ranked = await MatchingService(db).rank_candidates(load)
    return success_response([
        MatchingVehicle(
            vehicle=VehicleResponse.model_validate(vehicle),
            compatibility_score=score,
            is_requested=request_status is not None,
            request_status=request_status
        )
        for vehicle, score, request_status in ranked
    ])
