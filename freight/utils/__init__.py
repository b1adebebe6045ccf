from freight.utils.geo import (
    calculate_distance,
    is_within_service_area,
    covers_location,
)
from freight.utils.response import success_response, error_response
from freight.utils.timeutils import utcnow, as_utc

__all__ = [
    "calculate_distance",
    "is_within_service_area",
    "covers_location",
    "success_response",
    "error_response",
    "utcnow",
    "as_utc",
]
