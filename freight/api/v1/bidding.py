from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from freight.database import get_db
from freight.dependencies import get_current_user, get_current_provider, get_current_owner, get_notifier
from freight.schemas.bidding import (
    BiddingSessionCreate, BiddingSessionResponse, BidCreate, BidResponse,
    BidSelection, BidStats, TransportRequestResponse, TransportRequestRespond
)
from freight.schemas.assignment import AssignmentResponse
from freight.services.bidding_service import BiddingService
from freight.services.notification_service import NotificationService
from freight.models import User
from freight.utils.response import success_response
from uuid import UUID

router = APIRouter(prefix="/bidding", tags=["Bidding"])

def get_bidding_service(
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier)
) -> BiddingService:
    return BiddingService(db, notifier)

@router.post("/sessions", status_code=status.HTTP_201_CREATED)
async def create_bidding_session(
    session_data: BiddingSessionCreate,
    service: BiddingService = Depends(get_bidding_service),
    current_user: User = Depends(get_current_provider)
):
    session = await service.open_session(current_user, session_data)
    return success_response(BiddingSessionResponse.model_validate(session), "Bidding session created")

@router.get("/sessions/active")
async def get_active_sessions(
    service: BiddingService = Depends(get_bidding_service),
    current_user: User = Depends(get_current_user)
):
    sessions = await service.list_active_sessions()
    return success_response([BiddingSessionResponse.model_validate(s) for s in sessions])

@router.get("/sessions/load/{load_id}")
async def get_session_by_load(
    load_id: UUID,
    service: BiddingService = Depends(get_bidding_service),
    current_user: User = Depends(get_current_user)
):
    session = await service.get_session_by_load(load_id)
    return success_response(BiddingSessionResponse.model_validate(session))

@router.get("/sessions/{session_id}")
async def get_session(
    session_id: UUID,
    service: BiddingService = Depends(get_bidding_service),
    current_user: User = Depends(get_current_user)
):
    session = await service.get_session(session_id)
    return success_response(BiddingSessionResponse.model_validate(session))

@router.get("/sessions/{session_id}/details")
async def get_session_details(
    session_id: UUID,
    service: BiddingService = Depends(get_bidding_service),
    current_user: User = Depends(get_current_user)
):
    """Session with bid statistics and the transport request, if one was sent"""
    details = await service.session_details(session_id, current_user)
    request = details["transport_request"]
    return success_response({
        "session": BiddingSessionResponse.model_validate(details["session"]),
        "stats": BidStats(**details["stats"]),
        "transport_request": TransportRequestResponse.model_validate(request) if request else None,
    })

@router.patch("/sessions/{session_id}/close")
async def close_session(
    session_id: UUID,
    service: BiddingService = Depends(get_bidding_service),
    current_user: User = Depends(get_current_user)
):
    session = await service.close_session(session_id, current_user)
    return success_response(BiddingSessionResponse.model_validate(session), "Bidding session closed")

@router.get("/sessions/{session_id}/bids")
async def get_session_bids(
    session_id: UUID,
    service: BiddingService = Depends(get_bidding_service),
    current_user: User = Depends(get_current_user)
):
    bids = await service.list_bids(session_id)
    return success_response([BidResponse.model_validate(b) for b in bids])

@router.patch("/sessions/{session_id}/select-bid")
async def select_winning_bid(
    session_id: UUID,
    selection: BidSelection,
    service: BiddingService = Depends(get_bidding_service),
    current_user: User = Depends(get_current_user)
):
    session, bid, request = await service.select_winning_bid(
        session_id, selection.bid_id, current_user, selection.message
    )
    return success_response({
        "session": BiddingSessionResponse.model_validate(session),
        "bid": BidResponse.model_validate(bid),
        "transport_request": TransportRequestResponse.model_validate(request),
    }, "Winning bid selected and transport request sent")

@router.patch("/sessions/{session_id}/accept-bid")
async def accept_bid(
    session_id: UUID,
    selection: BidSelection,
    service: BiddingService = Depends(get_bidding_service),
    current_user: User = Depends(get_current_user)
):
    session, bid, request, assignment = await service.accept_bid_and_assign(
        session_id, selection.bid_id, current_user, selection.message
    )
    return success_response({
        "session": BiddingSessionResponse.model_validate(session),
        "bid": BidResponse.model_validate(bid),
        "transport_request": TransportRequestResponse.model_validate(request),
        "assignment": AssignmentResponse.model_validate(assignment),
    }, "Bid accepted and load assigned")

@router.post("/bids", status_code=status.HTTP_201_CREATED)
async def place_bid(
    bid_data: BidCreate,
    service: BiddingService = Depends(get_bidding_service),
    current_user: User = Depends(get_current_owner)
):
    bid = await service.place_bid(current_user, bid_data)
    return success_response(BidResponse.model_validate(bid), "Bid placed successfully")

@router.patch("/bids/{bid_id}/withdraw")
async def withdraw_bid(
    bid_id: UUID,
    service: BiddingService = Depends(get_bidding_service),
    current_user: User = Depends(get_current_owner)
):
    bid = await service.withdraw_bid(current_user, bid_id)
    return success_response(BidResponse.model_validate(bid), "Bid withdrawn")

@router.get("/my-bids")
async def get_my_bids(
    service: BiddingService = Depends(get_bidding_service),
    current_user: User = Depends(get_current_owner)
):
    bids = await service.my_bids(current_user)
    return success_response([BidResponse.model_validate(b) for b in bids])

@router.get("/transport-requests")
async def get_transport_requests(
    service: BiddingService = Depends(get_bidding_service),
    current_user: User = Depends(get_current_owner)
):
    requests = await service.list_transport_requests(current_user)
    return success_response([TransportRequestResponse.model_validate(r) for r in requests])

@router.patch("/transport-requests/{request_id}/respond")
async def respond_to_transport_request(
    request_id: UUID,
    response_data: TransportRequestRespond,
    service: BiddingService = Depends(get_bidding_service),
    current_user: User = Depends(get_current_owner)
):
    request, assignment = await service.respond_to_transport_request(
        request_id, current_user, response_data.status
    )
    return success_response({
        "transport_request": TransportRequestResponse.model_validate(request),
        "assignment": AssignmentResponse.model_validate(assignment) if assignment else None,
    }, f"Transport request {request.status.value}")
