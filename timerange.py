from dataclasses import dataclass

from errors import InvalidRange

WEEK_SECONDS = 7 * 24 * 3600

# bounds of the BIGINT columns the slots are stored in
INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


@dataclass(frozen=True)
class TimeRange:
    """Half-open interval [start, end) in epoch seconds."""

    start: int
    end: int

    def __post_init__(self):
        if self.start < INT64_MIN or self.end > INT64_MAX:
            raise InvalidRange("timestamp out of range")
        if self.start >= self.end:
            raise InvalidRange()

    def overlaps(self, other: "TimeRange") -> bool:
        # touching ranges (self.end == other.start) do not overlap
        return self.start < other.end and other.start < self.end

    def contains(self, other: "TimeRange") -> bool:
        return self.start <= other.start and other.end <= self.end

    def shift_weeks(self, weeks: int) -> "TimeRange":
        offset = weeks * WEEK_SECONDS
        return TimeRange(self.start + offset, self.end + offset)

    @property
    def duration(self) -> int:
        return self.end - self.start
