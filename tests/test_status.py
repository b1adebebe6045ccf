from decimal import Decimal

import pytest

from freight.exceptions import ForbiddenError, InvalidInputError, InvalidStateError, NotFoundError
from freight.models import AssignmentStatus, LoadStatus, UserRole, VehicleStatus
from freight.services.assignment_service import AssignmentService
from freight.services.notification_service import load_room, user_room
from freight.services.status_service import AssignmentStatusService, check_transition, normalize_status
from tests.conftest import make_load, make_user, make_vehicle


@pytest.fixture
async def assigned(db, provider, owner):
    load = await make_load(db, provider)
    vehicle = await make_vehicle(db, owner)
    assignment = await AssignmentService(db).create_assignment(load.id, vehicle.id, Decimal("2500"))
    return load, vehicle, assignment


@pytest.mark.parametrize("raw, expected", [
    ("enroute", AssignmentStatus.ENROUTE),
    ("in_progress", AssignmentStatus.ENROUTE),
    ("IN_TRANSIT", AssignmentStatus.ENROUTE),
    (" delivered ", AssignmentStatus.DELIVERED),
    (AssignmentStatus.COMPLETED, AssignmentStatus.COMPLETED),
])
def test_normalize_status(raw, expected):
    assert normalize_status(raw) == expected


def test_normalize_status_rejects_unknown():
    with pytest.raises(InvalidInputError):
        normalize_status("teleported")


def test_transitions_move_one_step_forward():
    assert check_transition(AssignmentStatus.ASSIGNED, AssignmentStatus.ENROUTE)
    assert check_transition(AssignmentStatus.DELIVERED, AssignmentStatus.COMPLETED)
    assert check_transition(AssignmentStatus.ENROUTE, AssignmentStatus.ENROUTE) is False

    with pytest.raises(InvalidStateError):
        check_transition(AssignmentStatus.ASSIGNED, AssignmentStatus.DELIVERED)
    with pytest.raises(InvalidStateError):
        check_transition(AssignmentStatus.DELIVERED, AssignmentStatus.ENROUTE)
    with pytest.raises(InvalidStateError):
        check_transition(AssignmentStatus.COMPLETED, AssignmentStatus.ASSIGNED)


def test_skipping_needs_override():
    assert check_transition(AssignmentStatus.ASSIGNED, AssignmentStatus.COMPLETED, allow_skip=True)
    with pytest.raises(InvalidStateError):
        check_transition(AssignmentStatus.DELIVERED, AssignmentStatus.ASSIGNED, allow_skip=True)


async def test_enroute_mirrors_statuses_and_notifies(db, notifier, owner, assigned):
    load, vehicle, assignment = assigned
    service = AssignmentStatusService(db, notifier)

    await service.update_status(assignment.id, "in_transit", owner, notes="Left the depot")

    assert assignment.status == AssignmentStatus.ENROUTE
    assert assignment.notes == "Left the depot"
    assert load.status == LoadStatus.ENROUTE
    assert load.journey_started_at == assignment.started_at
    assert vehicle.status == VehicleStatus.IN_TRANSIT

    started = notifier.of("journey-started")
    assert [room for room, _ in started] == [user_room(owner.id), load_room(load.id)]
    room, payload = notifier.of("status-updated")[0]
    assert room == load_room(load.id)
    assert payload["status"] == "enroute"
    assert payload["previous_status"] == "assigned"


async def test_repeating_a_status_is_a_no_op(db, notifier, provider, assigned):
    _, _, assignment = assigned
    service = AssignmentStatusService(db, notifier)

    await service.update_status(assignment.id, "enroute", provider)
    first_start = assignment.started_at
    await service.update_status(assignment.id, "enroute", provider)

    assert assignment.started_at == first_start
    assert len(notifier.of("status-updated")) == 1


async def test_complete_requires_delivery(db, provider, assigned):
    _, _, assignment = assigned
    service = AssignmentStatusService(db)

    with pytest.raises(InvalidStateError):
        await service.complete(assignment.id, provider)

    await service.update_status(assignment.id, "enroute", provider)
    with pytest.raises(InvalidStateError):
        await service.complete(assignment.id, provider)


async def test_only_parties_may_update(db, assigned):
    _, _, assignment = assigned
    stranger = await make_user(db, UserRole.VEHICLE_OWNER)

    with pytest.raises(ForbiddenError):
        await AssignmentStatusService(db).update_status(assignment.id, "enroute", stranger)


async def test_unknown_assignment(db, provider):
    load = await make_load(db, provider)
    with pytest.raises(NotFoundError):
        await AssignmentStatusService(db).update_status(load.id, "enroute", provider)


async def test_force_status_skips_but_only_stamps_target(db, assigned):
    load, vehicle, assignment = assigned
    service = AssignmentStatusService(db)

    await service.force_status(load.id, "delivered")

    assert assignment.status == AssignmentStatus.DELIVERED
    assert assignment.delivered_at is not None
    assert assignment.started_at is None
    assert load.status == LoadStatus.DELIVERED
    assert vehicle.status == VehicleStatus.DELIVERED

    with pytest.raises(InvalidStateError):
        await service.force_status(load.id, "enroute")


async def test_force_status_needs_an_assignment(db, provider):
    load = await make_load(db, provider)
    with pytest.raises(InvalidStateError):
        await AssignmentStatusService(db).force_status(load.id, "completed")


async def test_completion_frees_the_vehicle(db, provider, assigned):
    load, vehicle, assignment = assigned
    service = AssignmentStatusService(db)

    await service.update_status(assignment.id, "enroute", provider)
    await service.update_status(assignment.id, "delivered", provider)
    await service.complete(assignment.id, provider)

    assert assignment.completed_at is not None
    assert load.status == LoadStatus.COMPLETED
    assert vehicle.status == VehicleStatus.AVAILABLE
    assert vehicle.loads_completed == 1

    with pytest.raises(InvalidStateError):
        await service.update_status(assignment.id, "delivered", provider)


async def test_lookup_by_load(db, provider, admin, assigned):
    load, _, assignment = assigned
    service = AssignmentStatusService(db)
    stranger = await make_user(db, UserRole.LOAD_PROVIDER)

    assert (await service.get_by_load(load.id, admin)).id == assignment.id
    assert (await service.get_by_load(load.id, provider)).id == assignment.id
    with pytest.raises(ForbiddenError):
        await service.get_by_load(load.id, stranger)


async def test_stats_per_status(db, provider, owner, assigned):
    load, _, _ = assigned
    other_load = await make_load(db, provider)
    other_vehicle = await make_vehicle(db, owner)
    await AssignmentService(db).create_assignment(other_load.id, other_vehicle.id, Decimal("1500"))
    await AssignmentStatusService(db).force_status(load.id, "completed")

    stats = await AssignmentStatusService(db).stats(provider)

    assert stats["total_assignments"] == 2
    assert stats["by_status"]["completed"] == {"count": 1, "total_value": 2500.0}
    assert stats["by_status"]["assigned"] == {"count": 1, "total_value": 1500.0}
    assert stats["by_status"]["enroute"]["count"] == 0
    assert stats["completion_rate"] == 50.0
