from freight.services.auth_service import AuthService
from freight.services.matching_service import MatchingService
from freight.services.notification_service import ConnectionManager, NotificationService
from freight.services.assignment_service import AssignmentService
from freight.services.status_service import AssignmentStatusService
from freight.services.offer_service import OfferService
from freight.services.bidding_service import BiddingService

__all__ = [
    "AuthService",
    "MatchingService",
    "ConnectionManager",
    "NotificationService",
    "AssignmentService",
    "AssignmentStatusService",
    "OfferService",
    "BiddingService",
]
