from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, or_
from freight.database import commit_or_conflict
from freight.models import (
    User, UserRole, Load, LoadStatus, Vehicle, VehicleStatus,
    VehicleApplication, ApplicationStatus, VehicleRequest, RequestStatus,
    LoadAssignment, AssignmentStatus, Rating, RatingType, Message
)
from freight.schemas.offer import ApplicationCreate, VehicleRequestCreate
from freight.schemas.other import RatingCreate, MessageCreate
from freight.services.assignment_service import AssignmentService
from freight.services.notification_service import NotificationService
from freight.exceptions import NotFoundError, ForbiddenError, InvalidStateError, InvalidInputError
from freight.utils.timeutils import utcnow
from typing import List, Optional, Tuple
from uuid import UUID
import logging

logger = logging.getLogger(__name__)

OPEN_LOAD_STATUSES = (LoadStatus.POSTED, LoadStatus.BIDDING)

# Applications the provider may still accept or reject
RESPONDABLE_STATUSES = (ApplicationStatus.PENDING, ApplicationStatus.ADMIN_APPROVED)

class OfferService:
    """Direct applications by vehicle owners and requests by load providers"""

    def __init__(self, db: AsyncSession, notifier: Optional[NotificationService] = None):
        self.db = db
        self.assignments = AssignmentService(db, notifier)

    async def _open_load(self, load_id: UUID) -> Load:
        result = await self.db.execute(
            select(Load).where(
                Load.id == load_id,
                Load.is_deleted == False,
                Load.status.in_(OPEN_LOAD_STATUSES)
            )
        )
        load = result.scalar_one_or_none()
        if not load:
            raise NotFoundError("Load not found or no longer open")
        return load

    async def _provider_load(self, provider: User, load_id: UUID) -> Load:
        load = await self.db.get(Load, load_id)
        if not load or load.is_deleted or load.load_provider_id != provider.id:
            raise NotFoundError("Load not found")
        return load

    async def _owned_vehicle(self, owner: User, vehicle_id: UUID) -> Vehicle:
        result = await self.db.execute(
            select(Vehicle).where(Vehicle.id == vehicle_id, Vehicle.owner_id == owner.id)
        )
        vehicle = result.scalar_one_or_none()
        if not vehicle:
            raise NotFoundError("Vehicle not found")
        return vehicle

    # Applications
    async def apply_for_load(self, owner: User, data: ApplicationCreate) -> VehicleApplication:
        vehicle = await self._owned_vehicle(owner, data.vehicle_id)
        load = await self._open_load(data.load_id)

        if vehicle.status != VehicleStatus.AVAILABLE:
            raise InvalidStateError("Vehicle is not available")

        application = VehicleApplication(
            vehicle_id=vehicle.id,
            load_id=load.id,
            vehicle_owner_id=owner.id,
            vehicle_owner_name=owner.name,
            bid_price=data.bid_price,
            message=data.message,
            # Supported loads are screened by an admin first
            status=ApplicationStatus.ADMIN_REVIEW if load.with_xbow_support else ApplicationStatus.PENDING
        )
        self.db.add(application)
        await commit_or_conflict(self.db, "You have already applied for this load with this vehicle")

        logger.info("Vehicle %s applied for load %s (%s)", vehicle.id, load.id, application.status.value)
        return application

    async def review_application(
        self,
        application_id: UUID,
        approve: bool,
        reason: Optional[str] = None
    ) -> VehicleApplication:
        application = await self.db.get(VehicleApplication, application_id)
        if not application:
            raise NotFoundError("Application not found")
        if application.status != ApplicationStatus.ADMIN_REVIEW:
            raise InvalidStateError("Application is not awaiting admin review")

        application.status = ApplicationStatus.ADMIN_APPROVED if approve else ApplicationStatus.ADMIN_REJECTED
        application.review_reason = reason
        await self.db.commit()
        return application

    async def respond_to_application(
        self,
        provider: User,
        application_id: UUID,
        status: ApplicationStatus,
        agreed_price=None
    ) -> Tuple[VehicleApplication, Optional[LoadAssignment]]:
        application = await self.db.get(VehicleApplication, application_id)
        if not application:
            raise NotFoundError("Application not found")

        load = await self.db.get(Load, application.load_id)
        if not load or load.load_provider_id != provider.id:
            raise ForbiddenError("Not authorized to respond to this application")
        if application.status not in RESPONDABLE_STATUSES:
            raise InvalidStateError(f"Application is already {application.status.value}")

        return await self._resolve_application(provider, application, status, agreed_price)

    async def select_vehicle(
        self,
        provider: User,
        load_id: UUID,
        vehicle_id: UUID,
        agreed_price=None
    ) -> Tuple[VehicleApplication, Optional[LoadAssignment]]:
        """Accept the open application for this (load, vehicle) pair"""
        await self._provider_load(provider, load_id)
        result = await self.db.execute(
            select(VehicleApplication).where(
                VehicleApplication.load_id == load_id,
                VehicleApplication.vehicle_id == vehicle_id,
                VehicleApplication.status.in_(RESPONDABLE_STATUSES)
            )
        )
        application = result.scalar_one_or_none()
        if not application:
            raise NotFoundError("No open application from this vehicle for this load")

        return await self._resolve_application(
            provider, application, ApplicationStatus.ACCEPTED, agreed_price
        )

    async def _resolve_application(self, provider, application, status, agreed_price):
        application.responded_at = utcnow()
        application.responded_by = provider.id

        if status == ApplicationStatus.REJECTED:
            application.status = ApplicationStatus.REJECTED
            await self.db.commit()
            return application, None

        price = agreed_price if agreed_price is not None else application.bid_price
        if price is None:
            raise InvalidInputError("An agreed price is required to accept this application")

        application.status = ApplicationStatus.ACCEPTED
        assignment = await self.assignments.create_assignment(
            application.load_id,
            application.vehicle_id,
            price,
            application_id=application.id
        )
        return application, assignment

    async def list_load_applications(self, provider: User, load_id: UUID) -> List[VehicleApplication]:
        await self._provider_load(provider, load_id)
        result = await self.db.execute(
            select(VehicleApplication)
            .where(VehicleApplication.load_id == load_id)
            .order_by(VehicleApplication.applied_at.desc())
        )
        return result.scalars().all()

    async def my_applications(self, owner: User) -> List[VehicleApplication]:
        result = await self.db.execute(
            select(VehicleApplication)
            .where(VehicleApplication.vehicle_owner_id == owner.id)
            .order_by(VehicleApplication.applied_at.desc())
        )
        return result.scalars().all()

    # Vehicle requests
    async def send_vehicle_request(self, provider: User, data: VehicleRequestCreate) -> VehicleRequest:
        load = await self._provider_load(provider, data.load_id)
        if load.status not in OPEN_LOAD_STATUSES:
            raise InvalidStateError("Load is no longer open")

        vehicle = await self.db.get(Vehicle, data.vehicle_id)
        if not vehicle or not vehicle.is_approved:
            raise NotFoundError("Vehicle not found")
        if vehicle.status != VehicleStatus.AVAILABLE:
            raise InvalidStateError("Vehicle is not available")

        request = VehicleRequest(
            load_id=load.id,
            vehicle_id=vehicle.id,
            load_provider_id=provider.id,
            vehicle_owner_id=vehicle.owner_id,
            load_provider_name=provider.name,
            message=data.message,
            offered_price=data.offered_price
        )
        self.db.add(request)
        await commit_or_conflict(self.db, "A request was already sent to this vehicle for this load")
        return request

    async def list_vehicle_requests(self, owner: User) -> List[VehicleRequest]:
        result = await self.db.execute(
            select(VehicleRequest)
            .where(VehicleRequest.vehicle_owner_id == owner.id)
            .order_by(VehicleRequest.sent_at.desc())
        )
        return result.scalars().all()

    async def respond_to_vehicle_request(
        self,
        owner: User,
        request_id: UUID,
        status: RequestStatus,
        agreed_price=None
    ) -> Tuple[VehicleRequest, Optional[LoadAssignment]]:
        request = await self.db.get(VehicleRequest, request_id)
        if not request:
            raise NotFoundError("Vehicle request not found")
        if request.vehicle_owner_id != owner.id:
            raise ForbiddenError("Not authorized to respond to this request")
        if request.status != RequestStatus.PENDING:
            raise InvalidStateError(f"Request is already {request.status.value}")

        request.responded_at = utcnow()
        if status == RequestStatus.REJECTED:
            request.status = RequestStatus.REJECTED
            await self.db.commit()
            return request, None

        price = agreed_price if agreed_price is not None else request.offered_price
        if price is None:
            raise InvalidInputError("An agreed price is required to accept this request")

        request.status = RequestStatus.ACCEPTED
        assignment = await self.assignments.create_assignment(
            request.load_id, request.vehicle_id, price, vehicle_request_id=request.id
        )
        return request, assignment

    # Ratings
    async def submit_rating(self, user: User, data: RatingCreate) -> Rating:
        result = await self.db.execute(
            select(LoadAssignment).where(
                LoadAssignment.load_id == data.load_id,
                LoadAssignment.vehicle_id == data.vehicle_id
            )
        )
        assignment = result.scalar_one_or_none()
        if not assignment:
            raise NotFoundError("Assignment not found")
        if assignment.status != AssignmentStatus.COMPLETED:
            raise InvalidStateError("Only completed assignments can be rated")

        if user.id == assignment.load_provider_id:
            to_user_id, rating_type = assignment.vehicle_owner_id, RatingType.LOAD_PROVIDER_TO_VEHICLE_OWNER
        elif user.id == assignment.vehicle_owner_id:
            to_user_id, rating_type = assignment.load_provider_id, RatingType.VEHICLE_OWNER_TO_LOAD_PROVIDER
        else:
            raise ForbiddenError("Not authorized to rate this assignment")

        rating = Rating(
            from_user_id=user.id,
            to_user_id=to_user_id,
            load_id=assignment.load_id,
            vehicle_id=assignment.vehicle_id,
            assignment_id=assignment.id,
            rating=data.rating,
            comment=data.comment,
            type=rating_type
        )
        self.db.add(rating)
        await commit_or_conflict(self.db, "You have already rated this assignment")
        await self.db.refresh(rating)
        return rating

    async def ratings_for(self, user_id: UUID) -> List[Rating]:
        result = await self.db.execute(
            select(Rating).where(Rating.to_user_id == user_id).order_by(Rating.created_at.desc())
        )
        return result.scalars().all()

    # Messages
    async def send_message(self, user: User, data: MessageCreate) -> Message:
        load = await self.db.get(Load, data.load_id)
        if not load or load.is_deleted:
            raise NotFoundError("Load not found")
        if not await self.db.get(User, data.to_user_id):
            raise NotFoundError("Recipient not found")

        message = Message(
            from_user_id=user.id,
            to_user_id=data.to_user_id,
            load_id=load.id,
            vehicle_id=data.vehicle_id,
            message=data.message,
            message_type=data.message_type
        )
        self.db.add(message)
        await self.db.commit()
        await self.db.refresh(message)
        return message

    async def load_messages(self, user: User, load_id: UUID) -> List[Message]:
        """Conversation on a load visible to the caller; incoming messages are marked read"""
        result = await self.db.execute(
            select(Message)
            .where(
                Message.load_id == load_id,
                or_(Message.from_user_id == user.id, Message.to_user_id == user.id)
            )
            .order_by(Message.created_at)
        )
        messages = result.scalars().all()

        await self.db.execute(
            update(Message)
            .where(Message.load_id == load_id, Message.to_user_id == user.id, Message.is_read == False)
            .values(is_read=True)
        )
        await self.db.commit()
        return messages
