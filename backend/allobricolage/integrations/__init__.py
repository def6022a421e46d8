"""External service integrations."""

from allobricolage.integrations.openai_client import LLMError, OpenAIClient
from allobricolage.integrations.twilio_client import SMSDeliveryError, TwilioClient

__all__ = [
    "LLMError",
    "OpenAIClient",
    "SMSDeliveryError",
    "TwilioClient",
]
