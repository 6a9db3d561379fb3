from datetime import datetime, timezone
from typing import Annotated

from pydantic import AfterValidator


def as_naive_utc(value: datetime) -> datetime:
    """Stored datetimes are naive UTC; convert aware input accordingly."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


UTCDatetime = Annotated[datetime, AfterValidator(as_naive_utc)]
