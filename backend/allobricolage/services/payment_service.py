"""Payment service - payment records, confirmation and gateway callbacks."""

import logging
import secrets
import string
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from allobricolage.config import Settings, get_settings
from allobricolage.engine.pricing import round_half_up
from allobricolage.models.booking import Booking, BookingStatus
from allobricolage.models.notification import NotificationType
from allobricolage.models.payment import Payment, PaymentMethod, PaymentStatus
from allobricolage.schemas.payment import PaymentCreate
from allobricolage.services.notification_service import NotificationService
from allobricolage.services.technician_service import TechnicianService

logger = logging.getLogger(__name__)


class PaymentMethodUnavailableError(ValueError):
    """The requested payment method is not configured."""


@dataclass
class MethodInfo:
    name: str
    icon: str
    fee_rate: float = 0.0
    flat_fee: int = 0


PAYMENT_METHODS: Dict[PaymentMethod, MethodInfo] = {
    PaymentMethod.STRIPE: MethodInfo("Carte bancaire (Stripe)", "💳", fee_rate=0.029),
    PaymentMethod.CMI: MethodInfo("Carte bancaire marocaine (CMI)", "🏦", fee_rate=0.025),
    PaymentMethod.CASHPLUS: MethodInfo("Cash Plus", "💵", flat_fee=15),
    PaymentMethod.BANK_TRANSFER: MethodInfo("Virement bancaire", "🏛️"),
    PaymentMethod.CASH: MethodInfo("Paiement en espèces", "💰"),
}


def payment_fee(amount: int, method: PaymentMethod) -> int:
    info = PAYMENT_METHODS[method]
    if info.flat_fee:
        return info.flat_fee
    return round_half_up(amount * info.fee_rate)


def _reference(prefix: str, booking_id: UUID) -> str:
    chars = string.ascii_uppercase + string.digits
    random_part = "".join(secrets.choice(chars) for _ in range(6))
    return f"{prefix}{str(booking_id)[:8].upper()}{random_part}"


class PaymentService:
    def __init__(
        self,
        db: AsyncSession,
        notifications: Optional[NotificationService] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.now = clock
        self.notifications = notifications or NotificationService(db, clock=clock)

    def enabled_methods(self) -> Dict[PaymentMethod, bool]:
        return {
            PaymentMethod.STRIPE: bool(self.settings.STRIPE_SECRET_KEY),
            PaymentMethod.CMI: bool(self.settings.CMI_MERCHANT_ID),
            PaymentMethod.CASHPLUS: bool(self.settings.CASHPLUS_MERCHANT_ID),
            PaymentMethod.BANK_TRANSFER: True,
            PaymentMethod.CASH: True,
        }

    def methods(self) -> List[dict]:
        enabled = self.enabled_methods()
        return [
            {
                "method": method,
                "name": info.name,
                "icon": info.icon,
                "enabled": enabled[method],
                "fee": f"{info.flat_fee} MAD" if info.flat_fee else f"{info.fee_rate * 100:g}%",
            }
            for method, info in PAYMENT_METHODS.items()
        ]

    async def get_by_id(self, payment_id: UUID) -> Optional[Payment]:
        result = await self.db.execute(select(Payment).where(Payment.id == payment_id))
        return result.scalar_one_or_none()

    async def get_for_booking(self, booking_id: UUID) -> List[Payment]:
        result = await self.db.execute(
            select(Payment)
            .where(Payment.booking_id == booking_id)
            .order_by(Payment.created_at.desc())
        )
        return list(result.scalars())

    async def create(self, data: PaymentCreate) -> Optional[Payment]:
        """Record a pending payment. Returns None for an unknown booking."""
        booking = (await self.db.execute(
            select(Booking).where(Booking.id == data.booking_id)
        )).scalar_one_or_none()
        if not booking:
            return None

        if not self.enabled_methods()[data.payment_method]:
            raise PaymentMethodUnavailableError(f"{data.payment_method.value} is not available")

        now = self.now()
        payment = Payment(
            booking_id=booking.id,
            amount=data.amount,
            currency="MAD",
            payment_method=data.payment_method,
            status=PaymentStatus.PENDING,
            bank_reference=data.bank_reference,
            payment_details=data.payment_details,
            created_at=now,
            updated_at=now,
        )

        # Gateways identify the payment by the reference we hand them
        if data.payment_method == PaymentMethod.CMI:
            payment.gateway_reference = f"cmi_{_reference('', booking.id)}"
            payment.transaction_id = payment.gateway_reference
            payment.payment_details = {
                **(data.payment_details or {}),
                "redirect_url": f"{self.settings.CMI_ENDPOINT}/payment/{payment.gateway_reference}",
            }
        elif data.payment_method == PaymentMethod.CASHPLUS:
            payment.gateway_reference = _reference("CP", booking.id)
            payment.transaction_id = payment.gateway_reference
        elif data.payment_method == PaymentMethod.BANK_TRANSFER and not payment.bank_reference:
            payment.bank_reference = _reference("ALB-", booking.id)

        self.db.add(payment)
        await self.db.commit()
        await self.db.refresh(payment)
        return payment

    async def confirm(
        self,
        payment_id: UUID,
        transaction_id: Optional[str] = None,
        title: str = "💰 Paiement reçu",
    ) -> Optional[Payment]:
        """
        Mark a payment completed, accept its pending booking and notify
        both the technician and the client.
        """
        payment = await self.get_by_id(payment_id)
        if not payment:
            return None
        if payment.status == PaymentStatus.COMPLETED:
            return payment
        if payment.status in (PaymentStatus.CANCELLED, PaymentStatus.REFUNDED):
            raise ValueError(f"Cannot confirm a {payment.status.value} payment")

        now = self.now()
        payment.status = PaymentStatus.COMPLETED
        payment.paid_at = now
        payment.updated_at = now
        if transaction_id:
            payment.transaction_id = transaction_id

        booking = (await self.db.execute(
            select(Booking).where(Booking.id == payment.booking_id)
        )).scalar_one_or_none()

        if booking:
            if booking.status == BookingStatus.PENDING:
                booking.status = BookingStatus.ACCEPTED
                booking.accepted_at = now
                booking.updated_at = now
            await self._notify_paid(payment, booking, title)

        await self.db.commit()
        await self.db.refresh(payment)
        logger.info("Payment %s confirmed (%s MAD)", payment.id, payment.amount)
        return payment

    async def _notify_paid(self, payment: Payment, booking: Booking, title: str) -> None:
        technician = await TechnicianService(self.db).get_by_id(booking.technician_id)
        if technician:
            await self.notifications.notify(
                user_id=technician.user_id,
                type=NotificationType.PAYMENT,
                title=title,
                message=(
                    f"Paiement de {payment.amount} MAD confirmé pour votre réservation "
                    f"du {booking.scheduled_date.isoformat()}"
                ),
                booking_id=booking.id,
                payment_id=payment.id,
            )
        if booking.client_id:
            await self.notifications.notify(
                user_id=booking.client_id,
                type=NotificationType.BOOKING,
                title="✅ Réservation confirmée",
                message=(
                    f"Votre réservation du {booking.scheduled_date.isoformat()} à "
                    f"{booking.scheduled_time.strftime('%H:%M')} est confirmée"
                ),
                booking_id=booking.id,
                payment_id=payment.id,
            )

    async def handle_gateway_webhook(
        self,
        reference: str,
        succeeded: bool,
        transaction_id: Optional[str] = None,
        title: str = "💰 Paiement reçu",
    ) -> Optional[Payment]:
        """
        Apply a gateway status callback to the payment carrying `reference`.
        Returns None when no payment matches.
        """
        payment = (await self.db.execute(
            select(Payment).where(Payment.gateway_reference == reference)
        )).scalar_one_or_none()
        if not payment:
            logger.warning("Gateway callback for unknown reference %s", reference)
            return None

        if succeeded:
            return await self.confirm(payment.id, transaction_id, title=title)

        if payment.status in (PaymentStatus.PENDING, PaymentStatus.PROCESSING):
            payment.status = PaymentStatus.FAILED
            payment.updated_at = self.now()
            await self.db.commit()
            await self.db.refresh(payment)
        return payment
