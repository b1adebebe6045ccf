from typing import Dict, List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from freight.models import (
    Load, Vehicle, VehicleStatus, TrailerType, VehicleRequest, Rating
)
from freight.utils.geo import covers_location, is_within_service_area
from freight.utils.timeutils import as_utc
import logging

logger = logging.getLogger(__name__)

KG_PER_TON = 1000.0

def total_weight_kg(load: Load) -> float:
    """Sum of material weights, in kilograms"""
    return sum(float(material.total_weight or 0) for material in load.materials)

def required_tons(load: Load) -> float:
    return total_weight_kg(load) / KG_PER_TON

def _trailer_required(load: Load) -> bool:
    return load.trailer_type not in (None, TrailerType.NONE)

def incompatibility_reasons(load: Load, vehicle: Vehicle) -> List[str]:
    """
    Every reason the vehicle cannot carry the load; empty when compatible.
    Weights are compared in tons: load materials are kg, passing limit is tons.
    """
    reasons = []
    if vehicle.status != VehicleStatus.AVAILABLE:
        reasons.append("Vehicle is not available")
    if not vehicle.is_approved:
        reasons.append("Vehicle is not approved")
    if vehicle.vehicle_type != load.vehicle_type:
        reasons.append("Vehicle type does not match the load requirement")
    if vehicle.vehicle_size < load.vehicle_size:
        reasons.append("Vehicle size is smaller than required")
    if float(vehicle.passing_limit) < required_tons(load):
        reasons.append("Vehicle weight capacity insufficient for this load")
    if _trailer_required(load) and vehicle.trailer_type != load.trailer_type:
        reasons.append("Trailer type does not match the load requirement")
    if as_utc(vehicle.availability) > as_utc(load.loading_date):
        reasons.append("Vehicle is not free by the loading date")
    return reasons

def is_compatible(load: Load, vehicle: Vehicle) -> bool:
    return not incompatibility_reasons(load, vehicle)

def score_vehicle(load: Load, vehicle: Vehicle, owner_rating: Optional[float] = None) -> int:
    """
    Weighted 0-100 compatibility score used for display ordering only.

    type 25, size headroom 15, capacity headroom 20, trailer 15,
    owner rating 15, proximity 10
    """
    score = 0.0

    if vehicle.vehicle_type == load.vehicle_type:
        score += 25

    if vehicle.vehicle_size >= load.vehicle_size:
        headroom = (vehicle.vehicle_size - load.vehicle_size) / max(load.vehicle_size, 1)
        # A snug fit scores higher than a much larger vehicle
        score += 15 if headroom <= 0.5 else 10

    tons = required_tons(load)
    limit = float(vehicle.passing_limit or 0)
    if limit > 0 and limit >= tons:
        score += 10 + 10 * (tons / limit)

    if not _trailer_required(load) or vehicle.trailer_type == load.trailer_type:
        score += 15

    if owner_rating:
        score += 15 * min(max(owner_rating, 0), 5) / 5

    score += _proximity_points(load, vehicle)

    return int(round(min(score, 100)))

def _proximity_points(load: Load, vehicle: Vehicle) -> float:
    location = load.loading_location or {}
    coverage = covers_location(vehicle.operating_areas, location)
    if coverage == 2:
        return 10
    if coverage == 1:
        return 5

    lat, lng = location.get("latitude"), location.get("longitude")
    if None in (lat, lng, vehicle.base_latitude, vehicle.base_longitude):
        return 0
    base = (vehicle.base_latitude, vehicle.base_longitude)
    if is_within_service_area((lat, lng), base, 50):
        return 10
    if is_within_service_area((lat, lng), base, 200):
        return 5
    return 0

class MatchingService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_candidates(self, load: Load) -> List[Vehicle]:
        """
        Vehicles able to carry the load. Read-only.
        The query narrows on indexed columns; the canonical predicate decides.
        """
        result = await self.db.execute(
            select(Vehicle).where(
                Vehicle.status == VehicleStatus.AVAILABLE,
                Vehicle.is_approved == True,
                Vehicle.vehicle_type == load.vehicle_type,
                Vehicle.vehicle_size >= load.vehicle_size
            )
        )
        candidates = [v for v in result.scalars().all() if is_compatible(load, v)]
        logger.info("Load %s matched %d candidate vehicles", load.id, len(candidates))
        return candidates

    async def owner_ratings(self, owner_ids: List) -> Dict:
        """Average received rating per vehicle owner"""
        if not owner_ids:
            return {}
        result = await self.db.execute(
            select(Rating.to_user_id, func.avg(Rating.rating))
            .where(Rating.to_user_id.in_(owner_ids))
            .group_by(Rating.to_user_id)
        )
        return {row[0]: float(row[1]) for row in result.all()}

    async def rank_candidates(self, load: Load) -> List[Tuple[Vehicle, int, Optional[str]]]:
        """
        Candidates with their compatibility score and the status of any
        vehicle request already sent for this load, best score first
        """
        candidates = await self.find_candidates(load)
        ratings = await self.owner_ratings(list({v.owner_id for v in candidates}))

        result = await self.db.execute(
            select(VehicleRequest).where(VehicleRequest.load_id == load.id)
        )
        requests = {r.vehicle_id: r for r in result.scalars().all()}

        ranked = []
        for vehicle in candidates:
            request = requests.get(vehicle.id)
            ranked.append((
                vehicle,
                score_vehicle(load, vehicle, ratings.get(vehicle.owner_id)),
                request.status.value if request else None
            ))
        ranked.sort(key=lambda item: item[1], reverse=True)
        return ranked
