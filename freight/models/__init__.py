from freight.models.user import User, UserRole
from freight.models.load import (
    Load, Material, LoadStatus, VehicleType, TrailerType, PaymentTerms, PackType, LOAD_SIZES
)
from freight.models.vehicle import Vehicle, VehicleStatus, Tarpaulin, VEHICLE_NUMBER_PATTERN
from freight.models.bidding import (
    BiddingSession, SessionStatus,
    Bid, BidStatus,
    TransportRequest, TransportRequestStatus
)
from freight.models.offer import (
    VehicleApplication, ApplicationStatus, OPEN_APPLICATION_STATUSES,
    VehicleRequest, RequestStatus
)
from freight.models.assignment import LoadAssignment, AssignmentStatus
from freight.models.other import Rating, RatingType, Message, MessageType

__all__ = [
    "User", "UserRole",
    "Load", "Material", "LoadStatus", "VehicleType", "TrailerType", "PaymentTerms", "PackType", "LOAD_SIZES",
    "Vehicle", "VehicleStatus", "Tarpaulin", "VEHICLE_NUMBER_PATTERN",
    "BiddingSession", "SessionStatus",
    "Bid", "BidStatus",
    "TransportRequest", "TransportRequestStatus",
    "VehicleApplication", "ApplicationStatus", "OPEN_APPLICATION_STATUSES",
    "VehicleRequest", "RequestStatus",
    "LoadAssignment", "AssignmentStatus",
    "Rating", "RatingType", "Message", "MessageType",
]
