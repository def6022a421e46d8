"""Main router for API v1."""

from fastapi import APIRouter

from allobricolage.api.v1 import (
    bookings,
    jobs,
    notifications,
    payments,
    pricing,
    reviews,
    technicians,
    users,
    webhooks,
)

api_router = APIRouter()

# =============================================================================
# Marketplace
# =============================================================================
api_router.include_router(users.router, prefix="/users", tags=["Users"])
api_router.include_router(technicians.router, prefix="/technicians", tags=["Technicians"])
api_router.include_router(jobs.router, prefix="/jobs", tags=["Jobs"])
api_router.include_router(bookings.router, prefix="/bookings", tags=["Bookings"])
api_router.include_router(reviews.router, prefix="/reviews", tags=["Reviews"])

# =============================================================================
# Money
# =============================================================================
api_router.include_router(pricing.router, prefix="/pricing", tags=["Pricing"])
api_router.include_router(payments.router, prefix="/payments", tags=["Payments"])

# =============================================================================
# Inbox and external callbacks
# =============================================================================
api_router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
api_router.include_router(webhooks.router, prefix="/webhooks", tags=["Webhooks"])
