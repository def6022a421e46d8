"""Pydantic schemas for API request/response validation."""

from allobricolage.schemas.booking import BookingCancel, BookingComplete, BookingCreate, BookingResponse
from allobricolage.schemas.job import JobAnalyzeRequest, JobCreate, JobCreateResponse, JobResponse
from allobricolage.schemas.notification import NotificationResponse
from allobricolage.schemas.payment import (
    CashPlusWebhook,
    CMIWebhook,
    PaymentConfirm,
    PaymentCreate,
    PaymentMethodInfo,
    PaymentResponse,
)
from allobricolage.schemas.pricing import DiscountRequest, PriceEstimateRequest, TotalCostRequest
from allobricolage.schemas.review import ReviewCreate, ReviewReply, ReviewResponse
from allobricolage.schemas.technician import (
    PendingJobResponse,
    TechnicianCreate,
    TechnicianResponse,
    TechnicianStats,
)
from allobricolage.schemas.user import UserCreate, UserResponse

__all__ = [
    # Booking
    "BookingCancel",
    "BookingComplete",
    "BookingCreate",
    "BookingResponse",
    # Job
    "JobAnalyzeRequest",
    "JobCreate",
    "JobCreateResponse",
    "JobResponse",
    # Notification
    "NotificationResponse",
    # Payment
    "CashPlusWebhook",
    "CMIWebhook",
    "PaymentConfirm",
    "PaymentCreate",
    "PaymentMethodInfo",
    "PaymentResponse",
    # Pricing
    "DiscountRequest",
    "PriceEstimateRequest",
    "TotalCostRequest",
    # Review
    "ReviewCreate",
    "ReviewReply",
    "ReviewResponse",
    # Technician
    "PendingJobResponse",
    "TechnicianCreate",
    "TechnicianResponse",
    "TechnicianStats",
    # User
    "UserCreate",
    "UserResponse",
]
