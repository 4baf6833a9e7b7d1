"""The thing being swapped: either an owned week or a held booking."""

import uuid
from dataclasses import dataclass
from typing import ClassVar

from timeshare.domain.enums import SourceType


@dataclass(frozen=True)
class WeekSource:
    id: uuid.UUID
    type: ClassVar[SourceType] = SourceType.WEEK


@dataclass(frozen=True)
class BookingSource:
    id: uuid.UUID
    type: ClassVar[SourceType] = SourceType.BOOKING


SwapSource = WeekSource | BookingSource


def make_source(source_type: SourceType | str, source_id: uuid.UUID) -> SwapSource:
    """Build the typed source for a stored ``(type, id)`` pair."""
    if SourceType(source_type) is SourceType.WEEK:
        return WeekSource(source_id)
    return BookingSource(source_id)
