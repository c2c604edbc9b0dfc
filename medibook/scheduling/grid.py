"""Business-day slot grid and the time conventions shared by the scheduler.

Instants are stored as naive UTC. The grid, "today" and the boundaries of a
calendar day are all evaluated in one configured zone.
"""

from datetime import date, datetime, time, timedelta, timezone, tzinfo

from medibook.scheduling.errors import InvalidInput

OPEN_TIME = time(9, 0)
CLOSE_TIME = time(17, 0)
SLOT_MINUTES = 30


class SlotGrid:
    def __init__(
        self,
        zone: tzinfo = timezone.utc,
        opens_at: time = OPEN_TIME,
        closes_at: time = CLOSE_TIME,
        slot_minutes: int = SLOT_MINUTES,
    ):
        if slot_minutes <= 0:
            raise ValueError('slot_minutes must be positive')
        if closes_at < opens_at:
            raise ValueError('closes_at must not be earlier than opens_at')

        self.zone = zone
        self.opens_at = opens_at
        self.closes_at = closes_at
        self.slot_minutes = slot_minutes

    def cells(self) -> list[time]:
        """Return every cell start from opening to closing time, both inclusive."""
        first = self.opens_at.hour * 60 + self.opens_at.minute
        last = self.closes_at.hour * 60 + self.closes_at.minute
        return [time(minute // 60, minute % 60) for minute in range(first, last + 1, self.slot_minutes)]

    def to_local(self, when: datetime) -> datetime:
        if when.tzinfo is None:
            return when.replace(tzinfo=self.zone)
        return when.astimezone(self.zone)

    def to_storage(self, when: datetime) -> datetime:
        return self.to_local(when).astimezone(timezone.utc).replace(tzinfo=None)

    def from_storage(self, stored: datetime) -> datetime:
        return stored.replace(tzinfo=timezone.utc).astimezone(self.zone)

    def _floor(self, local: datetime) -> datetime:
        minute_of_day = local.hour * 60 + local.minute
        floored = minute_of_day - minute_of_day % self.slot_minutes
        return local.replace(hour=floored // 60, minute=floored % 60, second=0, microsecond=0)

    def cell_start(self, when: datetime) -> datetime:
        """Start of the grid cell containing ``when``, as naive UTC."""
        return self.to_storage(self._floor(self.to_local(when)))

    def cell_label(self, stored: datetime) -> time:
        """Local time of day of the cell containing a stored instant."""
        return self._floor(self.from_storage(stored)).time()

    def day_bounds(self, day: date) -> tuple[datetime, datetime]:
        start = datetime.combine(day, time.min, tzinfo=self.zone)
        end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=self.zone)
        return self.to_storage(start), self.to_storage(end)

    def today(self) -> date:
        return datetime.now(self.zone).date()

    @staticmethod
    def parse_day(value) -> date:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value

        try:
            return date.fromisoformat(value.strip())
        except (AttributeError, TypeError, ValueError) as exc:
            raise InvalidInput(f'Invalid date {value!r}; expected YYYY-MM-DD.') from exc

    @staticmethod
    def parse_instant(value) -> datetime:
        if isinstance(value, datetime):
            return value

        try:
            return datetime.fromisoformat(value.strip())
        except (AttributeError, TypeError, ValueError) as exc:
            raise InvalidInput(f'Invalid date and time {value!r}; expected ISO 8601.') from exc
