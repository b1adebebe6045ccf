from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from freight.database import get_db, commit_or_conflict
from freight.dependencies import get_current_user, get_current_provider, get_current_owner, get_notifier
from freight.schemas.vehicle import VehicleCreate, VehicleResponse, VehicleStatusUpdate
from freight.schemas.offer import (
    ApplicationCreate, ApplicationResponse, ApplicationRespond, VehicleSelect,
    VehicleRequestCreate, VehicleRequestResponse, VehicleRequestRespond
)
from freight.schemas.assignment import AssignmentResponse
from freight.schemas.other import RatingCreate, RatingResponse, MessageCreate, MessageResponse
from freight.services.offer_service import OfferService
from freight.services.notification_service import NotificationService
from freight.models import User, UserRole, Vehicle, VehicleStatus, VehicleType
from freight.exceptions import NotFoundError, ForbiddenError, InvalidStateError, InvalidInputError
from freight.utils.response import success_response
from freight.utils.timeutils import as_utc
from typing import Optional
from uuid import UUID
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/vehicles", tags=["Vehicles"])

# Statuses an owner may set by hand
OWNER_SETTABLE_STATUSES = (VehicleStatus.AVAILABLE, VehicleStatus.UNAVAILABLE, VehicleStatus.MAINTENANCE)

def _with_assignment(key, item, assignment, schema):
    return {
        key: schema.model_validate(item),
        "assignment": AssignmentResponse.model_validate(assignment) if assignment else None,
    }

@router.post("", status_code=status.HTTP_201_CREATED)
async def register_vehicle(
    vehicle_data: VehicleCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_owner)
):
    """Register a vehicle; it is matched only once an admin approves it"""
    vehicle = Vehicle(
        owner_id=current_user.id,
        owner_name=current_user.name,
        vehicle_type=vehicle_data.vehicle_type,
        vehicle_size=vehicle_data.vehicle_size,
        length=vehicle_data.length,
        breadth=vehicle_data.breadth,
        vehicle_number=vehicle_data.vehicle_number,
        passing_limit=vehicle_data.passing_limit,
        availability=as_utc(vehicle_data.availability),
        body_type=vehicle_data.body_type,
        tarpaulin=vehicle_data.tarpaulin,
        trailer_type=vehicle_data.trailer_type,
        operating_areas=[area.model_dump() for area in vehicle_data.operating_areas],
        base_latitude=vehicle_data.base_latitude,
        base_longitude=vehicle_data.base_longitude,
        photos=vehicle_data.photos,
        status=VehicleStatus.AVAILABLE,
        is_approved=False,
        loads_completed=0
    )

    db.add(vehicle)
    await commit_or_conflict(db, "A vehicle with this number is already registered")

    logger.info("Vehicle %s registered by %s", vehicle.vehicle_number, current_user.id)
    return success_response(VehicleResponse.model_validate(vehicle), "Vehicle registered, pending approval")

@router.get("/my")
async def get_my_vehicles(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_owner)
):
    result = await db.execute(
        select(Vehicle).where(Vehicle.owner_id == current_user.id).order_by(Vehicle.created_at.desc())
    )
    return success_response([VehicleResponse.model_validate(v) for v in result.scalars().all()])

@router.get("/available")
async def get_available_vehicles(
    vehicle_type: Optional[VehicleType] = None,
    min_passing_limit: Optional[float] = None,
    state: Optional[str] = None,
    district: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Approved, available vehicles for providers and admins to browse"""
    if current_user.role == UserRole.VEHICLE_OWNER:
        raise ForbiddenError("Only load providers and admins can browse vehicles")

    query = select(Vehicle).where(Vehicle.is_approved == True, Vehicle.status == VehicleStatus.AVAILABLE)
    if vehicle_type is not None:
        query = query.where(Vehicle.vehicle_type == vehicle_type)
    if min_passing_limit is not None:
        query = query.where(Vehicle.passing_limit >= min_passing_limit)
    result = await db.execute(query.order_by(Vehicle.created_at.desc()))
    vehicles = result.scalars().all()

    # Operating areas live in a JSON column
    if state or district:
        vehicles = [
            v for v in vehicles
            if any(
                (not state or area.get("state") == state)
                and (not district or area.get("district") == district)
                for area in v.operating_areas or []
            )
        ]
    return success_response([VehicleResponse.model_validate(v) for v in vehicles])

@router.patch("/{vehicle_id}/status")
async def update_vehicle_status(
    vehicle_id: UUID,
    status_data: VehicleStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_owner)
):
    """Manual availability toggle; assignment-driven statuses are off limits"""
    result = await db.execute(
        select(Vehicle).where(Vehicle.id == vehicle_id, Vehicle.owner_id == current_user.id)
    )
    vehicle = result.scalar_one_or_none()
    if not vehicle:
        raise NotFoundError("Vehicle not found")

    if status_data.status not in OWNER_SETTABLE_STATUSES:
        raise InvalidInputError(f"Status {status_data.status.value} is set by assignments only")
    if vehicle.status not in OWNER_SETTABLE_STATUSES:
        raise InvalidStateError(f"Vehicle is {vehicle.status.value} on an active assignment")

    vehicle.status = status_data.status
    await db.commit()
    return success_response(VehicleResponse.model_validate(vehicle), "Vehicle status updated")

# Applications
@router.post("/apply", status_code=status.HTTP_201_CREATED)
async def apply_for_load(
    application_data: ApplicationCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_owner)
):
    application = await OfferService(db).apply_for_load(current_user, application_data)
    return success_response(ApplicationResponse.model_validate(application), "Application submitted")

@router.get("/applications/my")
async def get_my_applications(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_owner)
):
    applications = await OfferService(db).my_applications(current_user)
    return success_response([ApplicationResponse.model_validate(a) for a in applications])

@router.get("/loads/{load_id}/applications")
async def get_load_applications(
    load_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_provider)
):
    applications = await OfferService(db).list_load_applications(current_user, load_id)
    return success_response([ApplicationResponse.model_validate(a) for a in applications])

@router.patch("/application/{application_id}/respond")
async def respond_to_application(
    application_id: UUID,
    response_data: ApplicationRespond,
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
    current_user: User = Depends(get_current_provider)
):
    application, assignment = await OfferService(db, notifier).respond_to_application(
        current_user, application_id, response_data.status, response_data.agreed_price
    )
    return success_response(
        _with_assignment("application", application, assignment, ApplicationResponse),
        f"Application {application.status.value}"
    )

@router.post("/select")
async def select_vehicle(
    selection: VehicleSelect,
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
    current_user: User = Depends(get_current_provider)
):
    application, assignment = await OfferService(db, notifier).select_vehicle(
        current_user, selection.load_id, selection.vehicle_id, selection.agreed_price
    )
    return success_response(
        _with_assignment("application", application, assignment, ApplicationResponse),
        "Vehicle selected and load assigned"
    )

# Vehicle requests
@router.post("/requests", status_code=status.HTTP_201_CREATED)
async def send_vehicle_request(
    request_data: VehicleRequestCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_provider)
):
    request = await OfferService(db).send_vehicle_request(current_user, request_data)
    return success_response(VehicleRequestResponse.model_validate(request), "Request sent to vehicle owner")

@router.get("/requests")
async def get_vehicle_requests(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_owner)
):
    requests = await OfferService(db).list_vehicle_requests(current_user)
    return success_response([VehicleRequestResponse.model_validate(r) for r in requests])

@router.patch("/requests/{request_id}/respond")
async def respond_to_vehicle_request(
    request_id: UUID,
    response_data: VehicleRequestRespond,
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
    current_user: User = Depends(get_current_owner)
):
    request, assignment = await OfferService(db, notifier).respond_to_vehicle_request(
        current_user, request_id, response_data.status, response_data.agreed_price
    )
    return success_response(
        _with_assignment("request", request, assignment, VehicleRequestResponse),
        f"Request {request.status.value}"
    )

# Ratings and messages
@router.post("/ratings", status_code=status.HTTP_201_CREATED)
async def submit_rating(
    rating_data: RatingCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    rating = await OfferService(db).submit_rating(current_user, rating_data)
    return success_response(RatingResponse.model_validate(rating), "Rating submitted")

@router.get("/ratings/{user_id}")
async def get_user_ratings(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    ratings = await OfferService(db).ratings_for(user_id)
    average = round(sum(r.rating for r in ratings) / len(ratings), 2) if ratings else None
    return success_response({
        "average_rating": average,
        "total_ratings": len(ratings),
        "ratings": [RatingResponse.model_validate(r) for r in ratings],
    })

@router.post("/messages", status_code=status.HTTP_201_CREATED)
async def send_message(
    message_data: MessageCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    message = await OfferService(db).send_message(current_user, message_data)
    return success_response(MessageResponse.model_validate(message), "Message sent")

@router.get("/messages/{load_id}")
async def get_load_messages(
    load_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    messages = await OfferService(db).load_messages(current_user, load_id)
    return success_response([MessageResponse.model_validate(m) for m in messages])

# Declared last so the static paths above take precedence
@router.get("/{vehicle_id}")
async def get_vehicle(
    vehicle_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    vehicle = await db.get(Vehicle, vehicle_id)
    if not vehicle:
        raise NotFoundError("Vehicle not found")
    # Owners see their own fleet only; unapproved vehicles stay private
    if current_user.role == UserRole.VEHICLE_OWNER and vehicle.owner_id != current_user.id:
        raise NotFoundError("Vehicle not found")
    if not vehicle.is_approved and vehicle.owner_id != current_user.id and not current_user.is_admin:
        raise NotFoundError("Vehicle not found")
    return success_response(VehicleResponse.model_validate(vehicle))
