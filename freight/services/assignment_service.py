from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from freight.config import settings
from freight.database import commit_or_conflict
from freight.models import (
    Load, LoadStatus, Vehicle, VehicleStatus, LoadAssignment, AssignmentStatus,
    VehicleApplication, ApplicationStatus, OPEN_APPLICATION_STATUSES,
    VehicleRequest, RequestStatus, BiddingSession, SessionStatus
)
from freight.services.matching_service import incompatibility_reasons
from freight.services.notification_service import NotificationService, bidding_room
from freight.exceptions import NotFoundError, ConflictError, InvalidStateError, InvalidInputError
from freight.utils.timeutils import utcnow
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Optional
from uuid import UUID
import logging

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")

def commission_for(agreed_price, rate_percentage: float = None) -> Decimal:
    rate = settings.COMMISSION_RATE_PERCENTAGE if rate_percentage is None else rate_percentage
    amount = Decimal(str(agreed_price)) * Decimal(str(rate)) / Decimal(100)
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)

class AssignmentService:
    """
    Turns a chosen (load, vehicle, price) into the single LoadAssignment.

    Every resolution path converges on create_assignment, which commits any
    changes the caller staged on the session together with the assignment.
    """

    def __init__(self, db: AsyncSession, notifier: Optional[NotificationService] = None):
        self.db = db
        self.notifier = notifier

    async def _load_and_vehicle(self, load_id: UUID, vehicle_id: UUID):
        load = await self.db.get(Load, load_id)
        if not load or load.is_deleted:
            raise NotFoundError("Load not found")
        vehicle = await self.db.get(Vehicle, vehicle_id)
        if not vehicle:
            raise NotFoundError("Vehicle not found")
        return load, vehicle

    async def existing_assignment(self, load_id: UUID) -> Optional[LoadAssignment]:
        result = await self.db.execute(
            select(LoadAssignment).where(LoadAssignment.load_id == load_id)
        )
        return result.scalar_one_or_none()

    async def create_assignment(
        self,
        load_id: UUID,
        vehicle_id: UUID,
        agreed_price,
        application_id: Optional[UUID] = None,
        vehicle_request_id: Optional[UUID] = None
    ) -> LoadAssignment:
        load, vehicle = await self._load_and_vehicle(load_id, vehicle_id)

        if await self.existing_assignment(load.id):
            raise ConflictError("Load is already assigned")
        if vehicle.status != VehicleStatus.AVAILABLE:
            raise InvalidStateError("Vehicle is not available")

        now = utcnow()

        # Every other offer for the load loses
        reject_applications = (
            update(VehicleApplication)
            .where(
                VehicleApplication.load_id == load.id,
                VehicleApplication.status.in_(OPEN_APPLICATION_STATUSES)
            )
            .values(status=ApplicationStatus.REJECTED, responded_at=now)
        )
        if application_id is not None:
            reject_applications = reject_applications.where(VehicleApplication.id != application_id)
        await self.db.execute(reject_applications)
        reject_requests = (
            update(VehicleRequest)
            .where(
                VehicleRequest.load_id == load.id,
                VehicleRequest.status == RequestStatus.PENDING
            )
            .values(status=RequestStatus.REJECTED, responded_at=now)
        )
        if vehicle_request_id is not None:
            reject_requests = reject_requests.where(VehicleRequest.id != vehicle_request_id)
        await self.db.execute(reject_requests)

        # An auction still running on the load ends with the resolution
        result = await self.db.execute(
            select(BiddingSession).where(
                BiddingSession.load_id == load.id,
                BiddingSession.status == SessionStatus.ACTIVE
            )
        )
        running_session = result.scalar_one_or_none()
        if running_session is not None:
            running_session.status = SessionStatus.CLOSED

        # Added after the bulk updates so the unique load_id index is hit at commit
        assignment = LoadAssignment(
            load_id=load.id,
            vehicle_id=vehicle.id,
            load_provider_id=load.load_provider_id,
            vehicle_owner_id=vehicle.owner_id,
            application_id=application_id,
            agreed_price=agreed_price,
            status=AssignmentStatus.ASSIGNED
        )
        self.db.add(assignment)

        load.status = LoadStatus.ASSIGNED
        load.assigned_vehicle_id = vehicle.id
        load.commission_applicable = bool(load.with_xbow_support)
        if load.with_xbow_support:
            load.commission_amount = commission_for(agreed_price)
        vehicle.status = VehicleStatus.ASSIGNED

        await commit_or_conflict(self.db, "Load is already assigned")
        await self.db.refresh(assignment)

        logger.info(
            "Load %s assigned to vehicle %s at %s", load.id, vehicle.id, agreed_price
        )
        if running_session is not None:
            logger.info("Bidding session %s closed by assignment of load %s", running_session.id, load.id)
            if self.notifier is not None:
                await self.notifier.emit(
                    bidding_room(running_session.id), "bidding-closed", {"session_id": running_session.id}
                )
        return assignment

    async def admin_match(self, load_id: UUID, vehicle_id: UUID, agreed_price=None) -> Dict:
        """Manual match; the vehicle must pass the same rule as the matching engine"""
        load, vehicle = await self._load_and_vehicle(load_id, vehicle_id)

        if await self.existing_assignment(load.id):
            raise ConflictError("Load is already assigned")

        reasons = incompatibility_reasons(load, vehicle)
        if reasons:
            raise InvalidInputError(reasons[0])

        assignment = await self.create_assignment(
            load.id,
            vehicle.id,
            agreed_price if agreed_price is not None else Decimal("0")
        )
        return {
            "load": load,
            "vehicle": vehicle,
            "assignment": assignment,
            "commission_amount": load.commission_amount,
        }
