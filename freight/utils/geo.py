from math import radians, cos, sin, asin, sqrt
from typing import Tuple

# Mean radius of the earth in kilometres
EARTH_RADIUS_KM = 6371.0

def calculate_distance(point1: Tuple[float, float], point2: Tuple[float, float]) -> float:
    """
    Calculate distance between two geographic points using Haversine formula
    Returns distance in kilometres
    
    Args:
        point1: (latitude, longitude)
        point2: (latitude, longitude)
    """
    lat1, lon1 = point1
    lat2, lon2 = point2
    
    lat1, lon1, lat2, lon2 = map(radians, [lat1, lon1, lat2, lon2])
    
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = sin(dlat/2)**2 + cos(lat1) * cos(lat2) * sin(dlon/2)**2
    c = 2 * asin(sqrt(a))
    
    return c * EARTH_RADIUS_KM

def is_within_service_area(
    point: Tuple[float, float],
    center: Tuple[float, float],
    radius_km: float
) -> bool:
    """True if point lies within radius_km of center"""
    return calculate_distance(point, center) <= radius_km

def covers_location(operating_areas: list, location: dict) -> int:
    """
    How closely a vehicle's operating areas cover a location.
    Returns 2 for a district match, 1 for a state-only match, 0 otherwise.
    """
    state = (location.get("state") or "").strip().lower()
    district = (location.get("district") or "").strip().lower()
    best = 0
    for area in operating_areas or []:
        if (area.get("state") or "").strip().lower() != state:
            continue
        if (area.get("district") or "").strip().lower() == district:
            return 2
        best = 1
    return best
