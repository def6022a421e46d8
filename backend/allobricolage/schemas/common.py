"""Shared validators."""

import phonenumbers

PHONE_REGION = "MA"


def normalize_phone(value: str) -> str:
    """Validate a phone number and return it in E.164 (Moroccan numbers by default)."""
    try:
        parsed = phonenumbers.parse(value, PHONE_REGION)
    except phonenumbers.NumberParseException as e:
        raise ValueError(f"Invalid phone number: {e}")
    if not phonenumbers.is_valid_number(parsed):
        raise ValueError("Invalid phone number")
    return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)
