from __future__ import annotations

import calendar
from datetime import datetime, timedelta, timezone

from pydantic import BaseModel, ConfigDict, Field

NANOS_PER_SECOND = 1_000_000_000
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_epoch_ns(moment: datetime) -> int:
    """Convert a datetime to UTC epoch nanoseconds; naive values are taken as UTC."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return calendar.timegm(moment.timetuple()) * NANOS_PER_SECOND + moment.microsecond * 1000


def from_epoch_ns(epoch_ns: int) -> datetime:
    return _EPOCH + timedelta(microseconds=epoch_ns // 1000)


class CorrelationRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    source: str
    action_at: int
    created_at_ns: int = Field(..., description="Local insertion time as UTC epoch nanoseconds")

    @property
    def created_at(self) -> datetime:
        return from_epoch_ns(self.created_at_ns)
