"""Local checks run before settings are sent to the gateway"""

from typing import Any, Optional

from api.errors import ValidationError

RATE_LIMIT_FIELD = "rateLimitSeconds"
MAX_RATE_LIMIT_SECONDS = 3600


def validate_rate_limit(value: Any) -> Optional[int]:
    """Check the minimum number of seconds between upstream requests

    Empty values mean "no rate limit" and are accepted.

    Returns:
        The value as an int, or None when empty

    Raises:
        ValidationError: if the value is negative, above one hour or fractional
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(RATE_LIMIT_FIELD, "Rate limit must be a whole number")
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            raise ValidationError(RATE_LIMIT_FIELD, "Rate limit must be a whole number")

    if value < 0:
        raise ValidationError(RATE_LIMIT_FIELD, "Rate limit cannot be negative")
    if value > MAX_RATE_LIMIT_SECONDS:
        raise ValidationError(RATE_LIMIT_FIELD, "Rate limit cannot exceed 3600 seconds (1 hour)")
    if isinstance(value, float) and not value.is_integer():
        raise ValidationError(RATE_LIMIT_FIELD, "Rate limit must be a whole number")
    return int(value)
