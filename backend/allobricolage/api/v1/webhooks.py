"""Gateway status callbacks."""

import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from allobricolage.api.deps import get_db
from allobricolage.schemas.payment import CashPlusWebhook, CMIWebhook
from allobricolage.services.payment_service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter()


async def _apply(db: AsyncSession, reference: str, succeeded: bool, transaction_id, title: str) -> dict:
    try:
        payment = await PaymentService(db).handle_gateway_webhook(
            reference, succeeded, transaction_id=transaction_id, title=title
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if not payment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Payment not found")
    return {"received": True, "payment_id": str(payment.id), "status": payment.status.value}


@router.post("/cmi")
async def cmi_webhook(
    payload: CMIWebhook,
    db: AsyncSession = Depends(get_db),
):
    logger.info("CMI callback for %s: %s", payload.session_id, payload.status)
    return await _apply(
        db,
        payload.session_id,
        payload.status.lower() == "success",
        payload.transaction_id,
        "💳 Paiement CMI reçu",
    )


@router.post("/cashplus")
async def cashplus_webhook(
    payload: CashPlusWebhook,
    db: AsyncSession = Depends(get_db),
):
    logger.info("Cash Plus callback for %s: %s", payload.reference_code, payload.status)
    return await _apply(
        db,
        payload.reference_code,
        payload.status.lower() == "paid",
        None,
        "💵 Paiement Cash Plus reçu",
    )
