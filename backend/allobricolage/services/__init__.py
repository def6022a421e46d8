"""Business logic services."""

from allobricolage.services.booking_service import BookingService
from allobricolage.services.job_service import JobService
from allobricolage.services.lifecycle import InvalidTransitionError
from allobricolage.services.matching_service import MatchingService
from allobricolage.services.notification_service import NotificationService
from allobricolage.services.payment_service import PaymentMethodUnavailableError, PaymentService
from allobricolage.services.pricing_service import PricingService
from allobricolage.services.review_service import ReviewService
from allobricolage.services.technician_service import TechnicianService
from allobricolage.services.user_service import UserService

__all__ = [
    "BookingService",
    "JobService",
    "InvalidTransitionError",
    "MatchingService",
    "NotificationService",
    "PaymentMethodUnavailableError",
    "PaymentService",
    "PricingService",
    "ReviewService",
    "TechnicianService",
    "UserService",
]
