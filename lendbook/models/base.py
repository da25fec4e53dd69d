from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from bson import Decimal128


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes; the driver hands them back naive."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def as_decimal(value: Any) -> Any:
    """Unwrap BSON decimals so pydantic can validate them as ``Decimal``."""
    if isinstance(value, Decimal128):
        return value.to_decimal()
    if isinstance(value, float):
        return Decimal(str(value))
    return value
