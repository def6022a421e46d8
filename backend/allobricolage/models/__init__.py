"""SQLAlchemy models."""

from allobricolage.models.user import User, UserRole
from allobricolage.models.technician import Technician
from allobricolage.models.job import Job, JobStatus, JobStatusHistory
from allobricolage.models.booking import Booking, BookingStatus
from allobricolage.models.review import Review
from allobricolage.models.payment import Payment, PaymentMethod, PaymentStatus
from allobricolage.models.notification import DeliveryStatus, Notification, NotificationType

__all__ = [
    "User",
    "UserRole",
    "Technician",
    "Job",
    "JobStatus",
    "JobStatusHistory",
    "Booking",
    "BookingStatus",
    "Review",
    "Payment",
    "PaymentMethod",
    "PaymentStatus",
    "DeliveryStatus",
    "Notification",
    "NotificationType",
]
