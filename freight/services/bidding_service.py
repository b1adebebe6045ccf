from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func
from freight.database import commit_or_conflict, flush_or_conflict
from freight.models import (
    User, Load, LoadStatus, Vehicle,
    BiddingSession, SessionStatus, Bid, BidStatus,
    TransportRequest, TransportRequestStatus, LoadAssignment
)
from freight.schemas.bidding import BiddingSessionCreate, BidCreate
from freight.services.assignment_service import AssignmentService
from freight.services.notification_service import NotificationService, bidding_room, user_room
from freight.exceptions import (
    NotFoundError, ForbiddenError, ConflictError, InvalidStateError, InvalidInputError
)
from freight.utils.timeutils import utcnow, as_utc
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
from uuid import UUID
import logging

logger = logging.getLogger(__name__)

# Bids shown to the provider and counted in statistics
LIVE_BID_STATUSES = (BidStatus.ACTIVE, BidStatus.SELECTED)

# Load statuses under which bids may still be taken or awarded
BIDDABLE_LOAD_STATUSES = (LoadStatus.POSTED, LoadStatus.BIDDING)

class BiddingService:
    """
    Time-boxed bidding on a load.

    Session expiry is lazy: any read of an active session whose end time has
    passed flips it to closed before anything else happens.
    """

    def __init__(self, db: AsyncSession, notifier: Optional[NotificationService] = None):
        self.db = db
        self.notifier = notifier
        self.assignments = AssignmentService(db, notifier)

    async def _emit(self, room_id: str, event: str, data):
        if self.notifier is not None:
            await self.notifier.emit(room_id, event, data)

    def _expire_if_due(self, session: BiddingSession) -> bool:
        if session.status == SessionStatus.ACTIVE and utcnow() > as_utc(session.end_time):
            session.status = SessionStatus.CLOSED
            logger.info("Bidding session %s expired and was closed", session.id)
            return True
        return False

    async def _fetch_session(self, session_id: UUID) -> BiddingSession:
        session = await self.db.get(BiddingSession, session_id)
        if not session:
            raise NotFoundError("Bidding session not found")
        if self._expire_if_due(session):
            await self.db.commit()
        return session

    async def _ensure_load_biddable(self, session: BiddingSession) -> Load:
        load = await self.db.get(Load, session.load_id)
        if not load or load.status not in BIDDABLE_LOAD_STATUSES:
            raise InvalidStateError("Load is no longer open for bidding")
        return load

    async def _existing_bid(self, session_id: UUID, owner_id: UUID) -> Optional[Bid]:
        result = await self.db.execute(
            select(Bid).where(Bid.bidding_session_id == session_id, Bid.vehicle_owner_id == owner_id)
        )
        return result.scalar_one_or_none()

    async def get_session(self, session_id: UUID) -> BiddingSession:
        return await self._fetch_session(session_id)

    async def get_session_by_load(self, load_id: UUID) -> BiddingSession:
        result = await self.db.execute(
            select(BiddingSession.id).where(BiddingSession.load_id == load_id)
        )
        session_id = result.scalar_one_or_none()
        if session_id is None:
            raise NotFoundError("No bidding session for this load")
        return await self._fetch_session(session_id)

    async def open_session(self, provider: User, data: BiddingSessionCreate) -> BiddingSession:
        load = await self.db.get(Load, data.load_id)
        if not load or load.is_deleted or load.load_provider_id != provider.id:
            raise NotFoundError("Load not found")

        existing = await self.db.execute(
            select(BiddingSession.id).where(BiddingSession.load_id == load.id)
        )
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("A bidding session already exists for this load")

        start_time, end_time = as_utc(data.start_time), as_utc(data.end_time)
        if start_time < utcnow():
            raise InvalidInputError("Start time cannot be in the past")
        if end_time <= start_time:
            raise InvalidInputError("End time must be after start time")
        if (
            data.min_bid_amount is not None
            and data.max_bid_amount is not None
            and data.min_bid_amount > data.max_bid_amount
        ):
            raise InvalidInputError("Minimum bid cannot exceed maximum bid")
        if load.status != LoadStatus.POSTED:
            raise InvalidStateError(f"Load is {load.status.value}, bidding needs a posted load")

        session = BiddingSession(
            load_id=load.id,
            load_provider_id=provider.id,
            start_time=start_time,
            end_time=end_time,
            status=SessionStatus.ACTIVE,
            min_bid_amount=data.min_bid_amount,
            max_bid_amount=data.max_bid_amount,
            total_bids=0
        )
        self.db.add(session)
        load.status = LoadStatus.BIDDING

        await commit_or_conflict(self.db, "A bidding session already exists for this load")
        await self.db.refresh(session)

        logger.info("Bidding session %s opened for load %s", session.id, load.id)
        return session

    async def list_active_sessions(self) -> List[BiddingSession]:
        await self.db.execute(
            update(BiddingSession)
            .where(
                BiddingSession.status == SessionStatus.ACTIVE,
                BiddingSession.end_time < utcnow()
            )
            .values(status=SessionStatus.CLOSED)
            .execution_options(synchronize_session="fetch")
        )
        await self.db.commit()

        result = await self.db.execute(
            select(BiddingSession)
            .where(BiddingSession.status == SessionStatus.ACTIVE)
            .order_by(BiddingSession.end_time)
        )
        return result.scalars().all()

    async def place_bid(self, owner: User, data: BidCreate) -> Bid:
        session = await self.db.get(BiddingSession, data.bidding_session_id)
        if not session:
            raise NotFoundError("Bidding session not found")

        if self._expire_if_due(session):
            # The close is kept even though the bid is refused
            await self.db.commit()
            await self._emit(bidding_room(session.id), "bidding-closed", {"session_id": session.id})
            raise InvalidStateError("Bidding session has ended")
        if session.status != SessionStatus.ACTIVE:
            raise InvalidStateError("Bidding session is not active")
        if utcnow() < as_utc(session.start_time):
            raise InvalidStateError("Bidding session has not started yet")
        await self._ensure_load_biddable(session)

        result = await self.db.execute(
            select(Vehicle).where(Vehicle.id == data.vehicle_id, Vehicle.owner_id == owner.id)
        )
        vehicle = result.scalar_one_or_none()
        if not vehicle:
            raise NotFoundError("Vehicle not found")

        amount = data.bid_amount
        if session.min_bid_amount is not None and amount < session.min_bid_amount:
            raise InvalidInputError(f"Bid must be at least {session.min_bid_amount}")
        if session.max_bid_amount is not None and amount > session.max_bid_amount:
            raise InvalidInputError(f"Bid cannot exceed {session.max_bid_amount}")

        bid = await self._existing_bid(session.id, owner.id)
        if bid:
            bid.bid_amount = amount
            bid.message = data.message
            bid.vehicle_id = vehicle.id
            bid.status = BidStatus.ACTIVE
            bid.is_winning = False
        else:
            bid = Bid(
                bidding_session_id=session.id,
                load_id=session.load_id,
                vehicle_id=vehicle.id,
                vehicle_owner_id=owner.id,
                vehicle_owner_name=owner.name,
                bid_amount=amount,
                message=data.message,
                status=BidStatus.ACTIVE,
                is_winning=False
            )
            self.db.add(bid)
            await flush_or_conflict(self.db, "You have already placed a bid in this session")
            await self.db.execute(
                update(BiddingSession)
                .where(BiddingSession.id == session.id)
                .values(total_bids=BiddingSession.total_bids + 1)
                .execution_options(synchronize_session=False)
            )

        await commit_or_conflict(self.db, "You have already placed a bid in this session")
        await self.db.refresh(session)

        logger.info("Bid %s of %s placed in session %s", bid.id, amount, session.id)
        await self._emit(bidding_room(session.id), "new-bid", {
            "session_id": session.id,
            "bid_id": bid.id,
            "vehicle_owner_name": bid.vehicle_owner_name,
            "bid_amount": bid.bid_amount,
            "total_bids": session.total_bids,
        })
        return bid

    async def withdraw_bid(self, owner: User, bid_id: UUID) -> Bid:
        bid = await self.db.get(Bid, bid_id)
        if not bid:
            raise NotFoundError("Bid not found")
        if bid.vehicle_owner_id != owner.id:
            raise ForbiddenError("Not authorized to withdraw this bid")

        session = await self._fetch_session(bid.bidding_session_id)
        if session.status != SessionStatus.ACTIVE:
            raise InvalidStateError("Bidding session is not active")
        if bid.status != BidStatus.ACTIVE:
            raise InvalidStateError(f"Bid is already {bid.status.value}")

        bid.status = BidStatus.WITHDRAWN
        await self.db.commit()
        await self._emit(bidding_room(session.id), "bid-updated", {
            "session_id": session.id,
            "bid_id": bid.id,
            "status": bid.status.value,
        })
        return bid

    async def close_session(self, session_id: UUID, by: User) -> BiddingSession:
        session = await self._fetch_session(session_id)
        if session.load_provider_id != by.id and not by.is_admin:
            raise ForbiddenError("Not authorized to close this session")
        if session.status != SessionStatus.ACTIVE:
            raise InvalidStateError(f"Bidding session is already {session.status.value}")

        session.status = SessionStatus.CLOSED
        await self.db.commit()

        logger.info("Bidding session %s closed by %s", session.id, by.id)
        await self._emit(bidding_room(session.id), "bidding-closed", {"session_id": session.id})
        return session

    async def list_bids(self, session_id: UUID) -> List[Bid]:
        """Bids ranked highest first; earlier bids win ties"""
        session = await self._fetch_session(session_id)
        result = await self.db.execute(
            select(Bid)
            .where(Bid.bidding_session_id == session.id, Bid.status.in_(LIVE_BID_STATUSES))
            .order_by(Bid.bid_amount.desc(), Bid.created_at.asc())
        )
        return result.scalars().all()

    async def my_bids(self, owner: User) -> List[Bid]:
        result = await self.db.execute(
            select(Bid).where(Bid.vehicle_owner_id == owner.id).order_by(Bid.created_at.desc())
        )
        return result.scalars().all()

    async def select_winning_bid(
        self, session_id: UUID, bid_id: UUID, by: User, message: Optional[str] = None
    ) -> Tuple[BiddingSession, Bid, TransportRequest]:
        session, bid, request, _ = await self._award(session_id, bid_id, by, message, assign=False)
        return session, bid, request

    async def accept_bid_and_assign(
        self, session_id: UUID, bid_id: UUID, by: User, message: Optional[str] = None
    ) -> Tuple[BiddingSession, Bid, TransportRequest, LoadAssignment]:
        return await self._award(session_id, bid_id, by, message, assign=True)

    async def _award(self, session_id, bid_id, by, message, assign):
        session = await self._fetch_session(session_id)
        if session.load_provider_id != by.id:
            raise ForbiddenError("Only the load provider can select a bid")

        result = await self.db.execute(
            select(Bid).where(Bid.id == bid_id, Bid.bidding_session_id == session.id)
        )
        bid = result.scalar_one_or_none()
        if not bid:
            raise NotFoundError("Bid not found in this session")
        if session.status == SessionStatus.COMPLETED:
            raise InvalidStateError("A winning bid was already selected for this session")
        if bid.status != BidStatus.ACTIVE:
            raise InvalidStateError(f"Bid is {bid.status.value}")
        await self._ensure_load_biddable(session)

        existing = await self.db.execute(
            select(TransportRequest.id).where(
                TransportRequest.load_id == bid.load_id,
                TransportRequest.vehicle_id == bid.vehicle_id
            )
        )
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("A transport request was already sent to this vehicle for this load")

        now = utcnow()
        session.winning_bid_id = bid.id
        session.status = SessionStatus.COMPLETED
        bid.status = BidStatus.SELECTED
        bid.is_winning = True

        request = TransportRequest(
            load_id=bid.load_id,
            vehicle_id=bid.vehicle_id,
            load_provider_id=session.load_provider_id,
            vehicle_owner_id=bid.vehicle_owner_id,
            bid_id=bid.id,
            bidding_session_id=session.id,
            agreed_price=bid.bid_amount,
            message=message,
            status=TransportRequestStatus.PENDING,
            sent_at=now
        )
        self.db.add(request)

        assignment = None
        if assign:
            request.status = TransportRequestStatus.ACCEPTED
            request.responded_at = now
            await flush_or_conflict(self.db, "A transport request was already sent to this vehicle for this load")
            assignment = await self.assignments.create_assignment(
                bid.load_id, bid.vehicle_id, bid.bid_amount
            )
        else:
            await commit_or_conflict(self.db, "A transport request was already sent to this vehicle for this load")

        logger.info("Bid %s selected in session %s", bid.id, session.id)
        await self._emit(user_room(bid.vehicle_owner_id), "transport-request", {
            "transport_request_id": request.id,
            "session_id": session.id,
            "load_id": bid.load_id,
            "vehicle_id": bid.vehicle_id,
            "agreed_price": request.agreed_price,
            "status": request.status.value,
        })
        if assign:
            await self._emit(bidding_room(session.id), "bid-accepted", {
                "session_id": session.id,
                "bid_id": bid.id,
                "assignment_id": assignment.id,
            })
        return session, bid, request, assignment

    async def list_transport_requests(self, owner: User) -> List[TransportRequest]:
        result = await self.db.execute(
            select(TransportRequest)
            .where(TransportRequest.vehicle_owner_id == owner.id)
            .order_by(TransportRequest.sent_at.desc())
        )
        return result.scalars().all()

    async def respond_to_transport_request(
        self, request_id: UUID, owner: User, status: TransportRequestStatus
    ) -> Tuple[TransportRequest, Optional[LoadAssignment]]:
        request = await self.db.get(TransportRequest, request_id)
        if not request:
            raise NotFoundError("Transport request not found")
        if request.vehicle_owner_id != owner.id:
            raise ForbiddenError("Not authorized to respond to this transport request")
        if request.status != TransportRequestStatus.PENDING:
            raise InvalidStateError(f"Transport request is already {request.status.value}")

        request.responded_at = utcnow()

        if status == TransportRequestStatus.ACCEPTED:
            request.status = TransportRequestStatus.ACCEPTED
            assignment = await self.assignments.create_assignment(
                request.load_id, request.vehicle_id, request.agreed_price
            )
            await self._emit(bidding_room(request.bidding_session_id), "bid-accepted", {
                "session_id": request.bidding_session_id,
                "bid_id": request.bid_id,
                "assignment_id": assignment.id,
            })
            return request, assignment

        # Declined: the provider may pick another bid
        request.status = TransportRequestStatus.REJECTED
        bid = await self.db.get(Bid, request.bid_id)
        if bid:
            bid.status = BidStatus.ACTIVE
            bid.is_winning = False
        session = await self.db.get(BiddingSession, request.bidding_session_id)
        if session:
            session.status = SessionStatus.CLOSED
            session.winning_bid_id = None
        await self.db.commit()

        logger.info("Transport request %s rejected by owner %s", request.id, owner.id)
        return request, None

    async def session_details(self, session_id: UUID, by: User) -> Dict:
        session = await self._fetch_session(session_id)
        if session.load_provider_id != by.id and not by.is_admin:
            raise ForbiddenError("Not authorized to view this session")

        result = await self.db.execute(
            select(
                func.count(Bid.id),
                func.max(Bid.bid_amount),
                func.min(Bid.bid_amount),
                func.avg(Bid.bid_amount)
            ).where(Bid.bidding_session_id == session.id, Bid.status.in_(LIVE_BID_STATUSES))
        )
        count, highest, lowest, average = result.one()

        result = await self.db.execute(
            select(TransportRequest)
            .where(TransportRequest.bidding_session_id == session.id)
            .order_by(TransportRequest.sent_at.desc())
            .limit(1)
        )

        return {
            "session": session,
            "stats": {
                "total_bids": count or 0,
                "highest_bid": Decimal(str(highest or 0)),
                "lowest_bid": Decimal(str(lowest or 0)),
                "average_bid": Decimal(str(average or 0)).quantize(Decimal("0.01")),
            },
            "transport_request": result.scalar_one_or_none(),
        }
