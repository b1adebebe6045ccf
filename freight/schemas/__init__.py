from freight.schemas.user import UserBase, UserCreate, UserLogin, UserResponse, TokenResponse
from freight.schemas.load import (
    Location, MaterialIn, MaterialResponse, LoadCreate, LoadResponse, LoadStatusForce,
)
from freight.schemas.vehicle import (
    OperatingArea, VehicleCreate, VehicleResponse, VehicleStatusUpdate,
    VehicleApproval, MatchingVehicle,
)
from freight.schemas.bidding import (
    BiddingSessionCreate, BiddingSessionResponse, BidCreate, BidResponse,
    BidSelection, TransportRequestResponse, TransportRequestRespond, BidStats,
)
from freight.schemas.offer import (
    ApplicationCreate, ApplicationResponse, ApplicationRespond, ApplicationReview,
    VehicleSelect, VehicleRequestCreate, VehicleRequestResponse, VehicleRequestRespond,
)
from freight.schemas.assignment import (
    AssignmentResponse, AssignmentStatusUpdate, AssignmentNotes, AdminMatchRequest,
)
from freight.schemas.other import RatingCreate, RatingResponse, MessageCreate, MessageResponse

__all__ = [
    "UserBase", "UserCreate", "UserLogin", "UserResponse", "TokenResponse",
    "Location", "MaterialIn", "MaterialResponse", "LoadCreate", "LoadResponse", "LoadStatusForce",
    "OperatingArea", "VehicleCreate", "VehicleResponse", "VehicleStatusUpdate",
    "VehicleApproval", "MatchingVehicle",
    "BiddingSessionCreate", "BiddingSessionResponse", "BidCreate", "BidResponse",
    "BidSelection", "TransportRequestResponse", "TransportRequestRespond", "BidStats",
    "ApplicationCreate", "ApplicationResponse", "ApplicationRespond", "ApplicationReview",
    "VehicleSelect", "VehicleRequestCreate", "VehicleRequestResponse", "VehicleRequestRespond",
    "AssignmentResponse", "AssignmentStatusUpdate", "AssignmentNotes", "AdminMatchRequest",
    "RatingCreate", "RatingResponse", "MessageCreate", "MessageResponse",
]
