"""Calendar arithmetic - Pure functions.

This module represents timezone-naive calendar days and converts them
to and from absolute instants in a reference timezone. All functions
are pure with no side effects.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo


# Reference timezone used when none is given
REFERENCE_TIMEZONE: tzinfo = timezone.utc


@dataclass(frozen=True, order=True)
class GregorianDay:
    """A calendar day with no timezone attached.

    Ordering follows the calendar. Construction fails for dates that
    do not exist (e.g. 2021-02-30).

    Attributes:
        year: Calendar year
        month: Month (1-12)
        day: Day of month
    """
    year: int
    month: int
    day: int

    def __post_init__(self) -> None:
        # Raises ValueError for impossible dates
        date(self.year, self.month, self.day)

    def __str__(self) -> str:
        return self.as_date().isoformat()

    def as_date(self) -> date:
        """Return the equivalent datetime.date."""
        return date(self.year, self.month, self.day)

    def advanced(self, by: int) -> "GregorianDay":
        """Return the day `by` days after this one (negative goes back)."""
        return GregorianDay.from_date(self.as_date() + timedelta(days=by))

    def days_until(self, other: "GregorianDay") -> int:
        """Signed number of days from this day to `other`."""
        return (other.as_date() - self.as_date()).days

    def start_date(self, tz: tzinfo = REFERENCE_TIMEZONE) -> datetime:
        """Instant of local midnight at the start of this day in `tz`."""
        return datetime(self.year, self.month, self.day, tzinfo=tz)

    @classmethod
    def from_date(cls, value: date) -> "GregorianDay":
        return cls(value.year, value.month, value.day)

    @classmethod
    def from_datetime(
        cls,
        instant: datetime,
        tz: tzinfo = REFERENCE_TIMEZONE,
    ) -> "GregorianDay":
        """Calendar day on which `instant` falls in `tz`.

        Naive datetimes are treated as already being in `tz`.
        """
        if instant.tzinfo is not None:
            instant = instant.astimezone(tz)
        return cls.from_date(instant.date())

    @classmethod
    def today(
        cls,
        tz: tzinfo = REFERENCE_TIMEZONE,
        now: datetime | None = None,
    ) -> "GregorianDay":
        """Current calendar day in `tz`.

        This reads the clock unless `now` is supplied, so only the shell
        should call it without `now`.
        """
        return cls.from_datetime(now or datetime.now(tz), tz)

    @classmethod
    def parse(cls, value: str) -> "GregorianDay":
        """Parse an ISO-8601 day ("2021-07-13").

        Raises:
            ValueError: If the string is not a valid ISO day
        """
        return cls.from_date(date.fromisoformat(value))


@dataclass(frozen=True)
class DayRange:
    """Half-open range of days [start, end).

    Attributes:
        start: First day in the range
        end: First day after the range
    """
    start: GregorianDay
    end: GregorianDay

    @property
    def length(self) -> int:
        """Number of days in the range (0 if empty)."""
        return max(self.start.days_until(self.end), 0)

    @property
    def is_empty(self) -> bool:
        return self.end <= self.start

    def contains(self, day: GregorianDay) -> bool:
        """Check if a day falls inside the range."""
        return self.start <= day < self.end

    def clamped_to(self, max_end: GregorianDay) -> "DayRange":
        """Return the range with its end pulled back to `max_end` if later."""
        return DayRange(start=self.start, end=min(self.end, max_end))

    @classmethod
    def starting(cls, start: GregorianDay, length: int) -> "DayRange":
        """Range of `length` days beginning at `start`."""
        return cls(start=start, end=start.advanced(length))
