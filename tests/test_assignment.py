from decimal import Decimal

import pytest
from sqlalchemy import select

from freight.exceptions import ConflictError, ForbiddenError, InvalidInputError, InvalidStateError, NotFoundError
from freight.models import (
    ApplicationStatus, AssignmentStatus, LoadAssignment, LoadStatus, RequestStatus,
    UserRole, VehicleStatus
)
from freight.schemas.offer import ApplicationCreate, VehicleRequestCreate
from freight.schemas.other import MessageCreate, RatingCreate
from freight.services.assignment_service import AssignmentService, commission_for
from freight.services.offer_service import OfferService
from freight.services.status_service import AssignmentStatusService
from tests.conftest import make_load, make_user, make_vehicle


@pytest.fixture
def offers(db):
    return OfferService(db)


async def apply(offers, owner, load, vehicle, bid_price=None):
    return await offers.apply_for_load(owner, ApplicationCreate(
        load_id=load.id, vehicle_id=vehicle.id, bid_price=bid_price))


async def test_direct_application_end_to_end(db, offers, provider, owner, notifier):
    load = await make_load(db, provider, weights=(2000,))
    vehicle = await make_vehicle(db, owner, passing_limit=3)
    application = await apply(offers, owner, load, vehicle, Decimal("5000"))
    assert application.status == ApplicationStatus.PENDING

    _, assignment = await offers.respond_to_application(provider, application.id, ApplicationStatus.ACCEPTED)

    assert assignment.status == AssignmentStatus.ASSIGNED
    assert assignment.agreed_price == Decimal("5000")
    assert assignment.application_id == application.id
    assert load.status == LoadStatus.ASSIGNED
    assert load.assigned_vehicle_id == vehicle.id
    assert vehicle.status == VehicleStatus.ASSIGNED

    propagator = AssignmentStatusService(db, notifier)
    await propagator.update_status(assignment.id, "enroute", provider)
    assert vehicle.status == VehicleStatus.IN_TRANSIT
    assert assignment.started_at is not None

    await propagator.update_status(assignment.id, "delivered", provider)
    assert assignment.delivered_at is not None

    await propagator.complete(assignment.id, provider)
    assert assignment.status == AssignmentStatus.COMPLETED
    assert load.status == LoadStatus.COMPLETED
    assert vehicle.status == VehicleStatus.AVAILABLE
    assert vehicle.loads_completed == 1


async def test_one_assignment_per_load(db, provider, owner):
    load = await make_load(db, provider)
    first = await make_vehicle(db, owner)
    second = await make_vehicle(db, owner)
    resolver = AssignmentService(db)

    await resolver.create_assignment(load.id, first.id, Decimal("1000"))

    with pytest.raises(ConflictError):
        await resolver.create_assignment(load.id, second.id, Decimal("900"))
    rows = (await db.execute(select(LoadAssignment).where(LoadAssignment.load_id == load.id))).scalars().all()
    assert len(rows) == 1
    assert second.status == VehicleStatus.AVAILABLE


async def test_unique_load_index_rejects_a_racing_assignment(db, provider, owner, session_maker, monkeypatch):
    load = await make_load(db, provider)
    first = await make_vehicle(db, owner)
    second = await make_vehicle(db, owner)
    async with session_maker() as other:
        other.add(LoadAssignment(
            load_id=load.id,
            vehicle_id=first.id,
            load_provider_id=provider.id,
            vehicle_owner_id=owner.id,
            agreed_price=Decimal("1000"),
            status=AssignmentStatus.ASSIGNED
        ))
        await other.commit()

    resolver = AssignmentService(db)

    async def not_assigned_yet(load_id):
        return None

    monkeypatch.setattr(resolver, "existing_assignment", not_assigned_yet)

    with pytest.raises(ConflictError):
        await resolver.create_assignment(load.id, second.id, Decimal("900"))

    await db.refresh(load)
    await db.refresh(second)
    assert load.status == LoadStatus.POSTED
    assert load.assigned_vehicle_id is None
    assert second.status == VehicleStatus.AVAILABLE
    rows = (await db.execute(select(LoadAssignment).where(LoadAssignment.load_id == load.id))).scalars().all()
    assert [row.vehicle_id for row in rows] == [first.id]


async def test_unavailable_vehicle_cannot_be_assigned(db, provider, owner):
    load = await make_load(db, provider)
    vehicle = await make_vehicle(db, owner, status=VehicleStatus.MAINTENANCE)

    with pytest.raises(InvalidStateError):
        await AssignmentService(db).create_assignment(load.id, vehicle.id, Decimal("1000"))


async def test_accepting_one_application_rejects_the_rest(db, offers, provider, owner):
    load = await make_load(db, provider)
    applications = []
    for _ in range(3):
        bidder = await make_user(db, UserRole.VEHICLE_OWNER)
        vehicle = await make_vehicle(db, bidder)
        applications.append(await apply(offers, bidder, load, vehicle, Decimal("4000")))
    requested = await make_vehicle(db, owner)
    request = await offers.send_vehicle_request(provider, VehicleRequestCreate(
        load_id=load.id, vehicle_id=requested.id, offered_price=Decimal("4500")))

    await offers.respond_to_application(provider, applications[1].id, ApplicationStatus.ACCEPTED)

    for application in applications:
        await db.refresh(application)
    await db.refresh(request)
    assert [a.status for a in applications] == [
        ApplicationStatus.REJECTED, ApplicationStatus.ACCEPTED, ApplicationStatus.REJECTED
    ]
    assert request.status == RequestStatus.REJECTED


async def test_winning_application_rejects_a_request_to_the_same_vehicle(db, offers, provider, owner):
    load = await make_load(db, provider)
    vehicle = await make_vehicle(db, owner)
    request = await offers.send_vehicle_request(provider, VehicleRequestCreate(
        load_id=load.id, vehicle_id=vehicle.id, offered_price=Decimal("4500")))
    application = await apply(offers, owner, load, vehicle, Decimal("4000"))

    await offers.respond_to_application(provider, application.id, ApplicationStatus.ACCEPTED)

    await db.refresh(request)
    assert request.status == RequestStatus.REJECTED


async def test_duplicate_application_conflicts(db, offers, provider, owner):
    load = await make_load(db, provider)
    vehicle = await make_vehicle(db, owner)
    await apply(offers, owner, load, vehicle, Decimal("4000"))

    with pytest.raises(ConflictError):
        await apply(offers, owner, load, vehicle, Decimal("3900"))


async def test_supported_load_applications_need_admin_review(db, offers, provider, owner):
    load = await make_load(db, provider, with_xbow_support=True)
    vehicle = await make_vehicle(db, owner)
    application = await apply(offers, owner, load, vehicle, Decimal("10000"))
    assert application.status == ApplicationStatus.ADMIN_REVIEW

    with pytest.raises(InvalidStateError):
        await offers.respond_to_application(provider, application.id, ApplicationStatus.ACCEPTED)

    await offers.review_application(application.id, approve=True)
    _, assignment = await offers.respond_to_application(provider, application.id, ApplicationStatus.ACCEPTED)

    assert assignment.agreed_price == Decimal("10000")
    assert load.commission_applicable is True
    assert load.commission_amount == Decimal("500.00")


async def test_accepting_without_any_price_is_refused(db, offers, provider, owner):
    load = await make_load(db, provider)
    vehicle = await make_vehicle(db, owner)
    application = await apply(offers, owner, load, vehicle)

    with pytest.raises(InvalidInputError):
        await offers.respond_to_application(provider, application.id, ApplicationStatus.ACCEPTED)


async def test_only_load_provider_may_respond(db, offers, provider, owner):
    load = await make_load(db, provider)
    vehicle = await make_vehicle(db, owner)
    application = await apply(offers, owner, load, vehicle, Decimal("4000"))
    other_provider = await make_user(db, UserRole.LOAD_PROVIDER)

    with pytest.raises(ForbiddenError):
        await offers.respond_to_application(other_provider, application.id, ApplicationStatus.ACCEPTED)


async def test_rejected_application_creates_nothing(db, offers, provider, owner):
    load = await make_load(db, provider)
    vehicle = await make_vehicle(db, owner)
    application = await apply(offers, owner, load, vehicle, Decimal("4000"))

    application, assignment = await offers.respond_to_application(
        provider, application.id, ApplicationStatus.REJECTED)

    assert assignment is None
    assert application.status == ApplicationStatus.REJECTED
    assert load.status == LoadStatus.POSTED


async def test_select_vehicle_accepts_open_application(db, offers, provider, owner):
    load = await make_load(db, provider)
    vehicle = await make_vehicle(db, owner)
    await apply(offers, owner, load, vehicle, Decimal("4000"))

    application, assignment = await offers.select_vehicle(provider, load.id, vehicle.id, Decimal("3800"))

    assert application.status == ApplicationStatus.ACCEPTED
    assert assignment.agreed_price == Decimal("3800")

    with pytest.raises(NotFoundError):
        await offers.select_vehicle(provider, load.id, vehicle.id)


async def test_vehicle_request_uses_offered_price(db, offers, provider, owner):
    load = await make_load(db, provider)
    vehicle = await make_vehicle(db, owner)
    request = await offers.send_vehicle_request(provider, VehicleRequestCreate(
        load_id=load.id, vehicle_id=vehicle.id, offered_price=Decimal("6000")))

    request, assignment = await offers.respond_to_vehicle_request(owner, request.id, RequestStatus.ACCEPTED)

    assert request.status == RequestStatus.ACCEPTED
    assert assignment.agreed_price == Decimal("6000")


async def test_vehicle_request_without_price_is_refused(db, offers, provider, owner):
    load = await make_load(db, provider)
    vehicle = await make_vehicle(db, owner)
    request = await offers.send_vehicle_request(provider, VehicleRequestCreate(
        load_id=load.id, vehicle_id=vehicle.id))

    with pytest.raises(InvalidInputError):
        await offers.respond_to_vehicle_request(owner, request.id, RequestStatus.ACCEPTED)

    _, assignment = await offers.respond_to_vehicle_request(
        owner, request.id, RequestStatus.ACCEPTED, agreed_price=Decimal("5500"))
    assert assignment.agreed_price == Decimal("5500")


async def test_admin_match_uses_the_canonical_rule(db, provider, owner):
    load = await make_load(db, provider, weights=(10001,))
    small = await make_vehicle(db, owner, passing_limit=10)
    big = await make_vehicle(db, owner, passing_limit=11)
    resolver = AssignmentService(db)

    with pytest.raises(InvalidInputError) as exc_info:
        await resolver.admin_match(load.id, small.id)
    assert "capacity" in exc_info.value.message

    result = await resolver.admin_match(load.id, big.id)
    assert result["assignment"].agreed_price == Decimal("0")
    assert result["commission_amount"] is None


def test_commission_is_a_share_of_the_price():
    assert commission_for(Decimal("1800"), 5.0) == Decimal("90.00")
    assert commission_for(Decimal("333.33"), 2.5) == Decimal("8.33")


async def test_ratings_once_per_completed_assignment(db, offers, provider, owner):
    load = await make_load(db, provider)
    vehicle = await make_vehicle(db, owner)
    assignment = await AssignmentService(db).create_assignment(load.id, vehicle.id, Decimal("1000"))
    data = RatingCreate(load_id=load.id, vehicle_id=vehicle.id, rating=5)

    with pytest.raises(InvalidStateError):
        await offers.submit_rating(provider, data)

    await AssignmentStatusService(db).force_status(load.id, "completed")
    rating = await offers.submit_rating(provider, data)
    assert rating.to_user_id == owner.id
    assert rating.assignment_id == assignment.id

    with pytest.raises(ConflictError):
        await offers.submit_rating(provider, data)


async def test_messages_are_marked_read_by_the_recipient(db, offers, provider, owner):
    load = await make_load(db, provider)
    await offers.send_message(provider, MessageCreate(to_user_id=owner.id, load_id=load.id, message="Can you load at 9?"))
    await offers.send_message(owner, MessageCreate(to_user_id=provider.id, load_id=load.id, message="Yes"))

    provider_view = await offers.load_messages(provider, load.id)
    assert {m.message for m in provider_view} == {"Can you load at 9?", "Yes"}

    owner_view = await offers.load_messages(owner, load.id)
    incoming = [m for m in owner_view if m.to_user_id == owner.id]
    await db.refresh(incoming[0])
    assert incoming[0].is_read is True
