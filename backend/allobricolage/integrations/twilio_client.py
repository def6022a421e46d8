"""Twilio integration for SMS."""

import asyncio
import logging
from tenacity import retry, stop_after_attempt, wait_exponential
from twilio.base.exceptions import TwilioRestException
from twilio.rest import Client

from allobricolage.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


class SMSDeliveryError(Exception):
    """Twilio refused or failed to send a message."""


class TwilioClient:
    """Client for Twilio SMS."""

    def __init__(self):
        self.client = Client(
            settings.TWILIO_ACCOUNT_SID,
            settings.TWILIO_AUTH_TOKEN
        ) if settings.TWILIO_ACCOUNT_SID else None
        self.from_number = settings.TWILIO_PHONE_NUMBER

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def send_sms(self, to: str, message: str) -> dict:
        """
        Send an SMS message.
        Returns dict with 'sid' and 'status'.
        """
        if not self.client:
            # Dev mode - just log
            logger.info("[DEV] SMS to %s: %s", to, message)
            return {"sid": "dev_mode", "status": "sent"}

        try:
            # Twilio SDK is synchronous, run in executor
            loop = asyncio.get_running_loop()
            result = await loop.run_in_executor(
                None,
                lambda: self.client.messages.create(
                    body=message,
                    from_=self.from_number,
                    to=to,
                )
            )
        except TwilioRestException as e:
            raise SMSDeliveryError(f"Twilio SMS error: {e.msg}") from e

        return {
            "sid": result.sid,
            "status": result.status,
        }
