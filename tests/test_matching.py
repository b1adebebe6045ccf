from datetime import timedelta

from freight.models import (
    Load, Material, Vehicle, VehicleStatus, VehicleType, TrailerType, PackType, VehicleRequest
)
from freight.services.matching_service import (
    MatchingService, incompatibility_reasons, is_compatible, score_vehicle, total_weight_kg
)
from freight.utils.timeutils import utcnow
from tests.conftest import make_load, make_vehicle


def build_load(weights=(2000,), vehicle_type=VehicleType.FOUR_WHEEL, vehicle_size=20,
               trailer_type=TrailerType.NONE, location=None):
    return Load(
        vehicle_type=vehicle_type,
        vehicle_size=vehicle_size,
        trailer_type=trailer_type,
        loading_date=utcnow() + timedelta(days=2),
        loading_location=location or {"pincode": "560001", "state": "Karnataka", "district": "Bengaluru", "place": "Peenya"},
        materials=[
            Material(name="Steel", length=1, width=1, height=1, pack_type=PackType.SINGLE,
                     total_count=1, single_weight=w, total_weight=w)
            for w in weights
        ]
    )


def build_vehicle(**overrides):
    fields = dict(
        vehicle_type=VehicleType.FOUR_WHEEL,
        vehicle_size=20,
        passing_limit=10,
        trailer_type=TrailerType.NONE,
        availability=utcnow() - timedelta(days=1),
        status=VehicleStatus.AVAILABLE,
        is_approved=True,
        operating_areas=[],
    )
    fields.update(overrides)
    return Vehicle(**fields)


def test_total_weight_sums_materials_in_kg():
    assert total_weight_kg(build_load(weights=(1500, 2500.5))) == 4000.5


def test_weight_capacity_gate_is_unit_normalised():
    vehicle = build_vehicle(passing_limit=10)

    assert is_compatible(build_load(weights=(10000,)), vehicle)
    reasons = incompatibility_reasons(build_load(weights=(10001,)), vehicle)
    assert reasons == ["Vehicle weight capacity insufficient for this load"]


def test_type_and_size_must_fit():
    load = build_load(vehicle_size=40)

    assert not is_compatible(load, build_vehicle(vehicle_size=20))
    assert is_compatible(load, build_vehicle(vehicle_size=50))
    assert not is_compatible(load, build_vehicle(vehicle_size=50, vehicle_type=VehicleType.SIX_WHEEL))


def test_trailer_only_checked_when_required():
    plain = build_load()
    lowbed = build_load(trailer_type=TrailerType.LOWBED)
    flatbed_vehicle = build_vehicle(trailer_type=TrailerType.FLATBED)

    assert is_compatible(plain, flatbed_vehicle)
    assert not is_compatible(lowbed, flatbed_vehicle)
    assert is_compatible(lowbed, build_vehicle(trailer_type=TrailerType.LOWBED))


def test_status_approval_and_availability_gate():
    load = build_load()

    assert not is_compatible(load, build_vehicle(status=VehicleStatus.ASSIGNED))
    assert not is_compatible(load, build_vehicle(is_approved=False))
    assert not is_compatible(load, build_vehicle(availability=utcnow() + timedelta(days=10)))


def test_score_is_bounded_and_prefers_closer_fit():
    load = build_load(weights=(8000,))
    snug = build_vehicle(passing_limit=9, operating_areas=[
        {"state": "Karnataka", "district": "Bengaluru", "place": "Peenya"}
    ])
    oversized = build_vehicle(vehicle_size=110, passing_limit=40)

    snug_score = score_vehicle(load, snug, owner_rating=5)
    oversized_score = score_vehicle(load, oversized)

    assert 0 <= oversized_score < snug_score <= 100


def test_score_uses_coordinates_when_no_operating_area():
    location = {"pincode": "560001", "state": "Karnataka", "district": "Bengaluru", "place": "Peenya",
                "latitude": 12.97, "longitude": 77.59}
    load = build_load(location=location)
    near = build_vehicle(base_latitude=12.98, base_longitude=77.60)
    far = build_vehicle(base_latitude=28.61, base_longitude=77.20)

    assert score_vehicle(load, near) - score_vehicle(load, far) == 10


async def test_find_candidates_applies_the_predicate(db, provider, owner):
    load = await make_load(db, provider, weights=(10000,))
    fits = await make_vehicle(db, owner, passing_limit=10)
    await make_vehicle(db, owner, passing_limit=9)
    await make_vehicle(db, owner, passing_limit=20, approved=False)
    await make_vehicle(db, owner, passing_limit=20, status=VehicleStatus.MAINTENANCE)
    await make_vehicle(db, owner, passing_limit=20, vehicle_type=VehicleType.SIX_WHEEL)

    candidates = await MatchingService(db).find_candidates(load)

    assert [v.id for v in candidates] == [fits.id]


async def test_find_candidates_may_be_empty(db, provider):
    load = await make_load(db, provider)
    assert await MatchingService(db).find_candidates(load) == []


async def test_rank_candidates_marks_requested_vehicles(db, provider, owner):
    load = await make_load(db, provider)
    requested = await make_vehicle(db, owner)
    other = await make_vehicle(db, owner)
    db.add(VehicleRequest(
        load_id=load.id,
        vehicle_id=requested.id,
        load_provider_id=provider.id,
        vehicle_owner_id=owner.id,
        load_provider_name=provider.name
    ))
    await db.commit()

    ranked = await MatchingService(db).rank_candidates(load)
    statuses = {vehicle.id: request_status for vehicle, _, request_status in ranked}

    assert statuses == {requested.id: "pending", other.id: None}
    assert all(0 <= score <= 100 for _, score, _ in ranked)
