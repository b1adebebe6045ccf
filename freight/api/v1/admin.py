from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from freight.database import get_db
from freight.dependencies import get_current_admin, get_notifier
from freight.schemas.assignment import AdminMatchRequest, AssignmentResponse
from freight.schemas.load import LoadResponse, LoadStatusForce
from freight.schemas.vehicle import VehicleApproval, VehicleResponse
from freight.schemas.offer import ApplicationReview, ApplicationResponse
from freight.services.assignment_service import AssignmentService
from freight.services.offer_service import OfferService
from freight.services.status_service import AssignmentStatusService
from freight.services.notification_service import NotificationService
from freight.models import User, Load, Vehicle, VehicleApplication, ApplicationStatus
from freight.exceptions import NotFoundError
from freight.utils.response import success_response
from freight.utils.timeutils import utcnow
from uuid import UUID
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])

@router.post("/match-loads")
async def match_load_with_vehicle(
    match_data: AdminMatchRequest,
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
    current_user: User = Depends(get_current_admin)
):
    """Assign a load to a vehicle by hand"""
    result = await AssignmentService(db, notifier).admin_match(
        match_data.load_id, match_data.vehicle_id, match_data.agreed_price
    )
    logger.info("Admin %s matched load %s with vehicle %s", current_user.id, match_data.load_id, match_data.vehicle_id)
    return success_response({
        "load": LoadResponse.model_validate(result["load"]),
        "vehicle": VehicleResponse.model_validate(result["vehicle"]),
        "assignment": AssignmentResponse.model_validate(result["assignment"]),
        "commission_amount": result["commission_amount"],
    }, "Load matched with vehicle successfully")

@router.get("/vehicles/pending")
async def get_pending_vehicles(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_admin)
):
    result = await db.execute(
        select(Vehicle)
        .where(Vehicle.is_approved == False, Vehicle.rejected_at.is_(None))
        .order_by(Vehicle.created_at)
    )
    return success_response([VehicleResponse.model_validate(v) for v in result.scalars().all()])

@router.patch("/vehicles/{vehicle_id}/approval")
async def review_vehicle(
    vehicle_id: UUID,
    approval: VehicleApproval,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_admin)
):
    vehicle = await db.get(Vehicle, vehicle_id)
    if not vehicle:
        raise NotFoundError("Vehicle not found")

    if approval.approve:
        vehicle.is_approved = True
        vehicle.approved_at = utcnow()
        vehicle.rejected_at = None
        vehicle.rejection_reason = None
    else:
        vehicle.is_approved = False
        vehicle.rejected_at = utcnow()
        vehicle.rejection_reason = approval.reason

    await db.commit()
    return success_response(
        VehicleResponse.model_validate(vehicle),
        "Vehicle approved" if approval.approve else "Vehicle rejected"
    )

@router.get("/applications/pending")
async def get_applications_for_review(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_admin)
):
    result = await db.execute(
        select(VehicleApplication)
        .where(VehicleApplication.status == ApplicationStatus.ADMIN_REVIEW)
        .order_by(VehicleApplication.applied_at)
    )
    return success_response([ApplicationResponse.model_validate(a) for a in result.scalars().all()])

@router.patch("/applications/{application_id}/review")
async def review_application(
    application_id: UUID,
    review: ApplicationReview,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_admin)
):
    application = await OfferService(db).review_application(application_id, review.approve, review.reason)
    return success_response(
        ApplicationResponse.model_validate(application),
        f"Application {application.status.value}"
    )

@router.patch("/loads/{load_id}/status")
async def force_load_status(
    load_id: UUID,
    status_data: LoadStatusForce,
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
    current_user: User = Depends(get_current_admin)
):
    """Move an assigned load forward, skipping steps if needed"""
    load = await db.get(Load, load_id)
    if not load or load.is_deleted:
        raise NotFoundError("Load not found")

    assignment = await AssignmentStatusService(db, notifier).force_status(load.id, status_data.status)
    return success_response({
        "load": LoadResponse.model_validate(load),
        "assignment": AssignmentResponse.model_validate(assignment),
    }, f"Load status set to {load.status.value}")
