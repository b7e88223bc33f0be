"""Pure booking rules: time slots, status transitions and cancellation eligibility.

Functions take the booking fields and the current instant explicitly so they
can be evaluated without a database or a wall clock.
"""
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Optional

from app.core.exceptions import InvalidStateError, ValidationError
from app.models.booking import BookingStatus
from app.utils.validators import is_valid_time, parse_time

ACTIVE_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS)

ALLOWED_TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED, BookingStatus.NO_SHOW},
    BookingStatus.IN_PROGRESS: {BookingStatus.COMPLETED},
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
    BookingStatus.NO_SHOW: set(),
}

STATUS_MESSAGES = {
    BookingStatus.CONFIRMED: "Your booking has been confirmed",
    BookingStatus.IN_PROGRESS: "Your car wash service has started",
    BookingStatus.COMPLETED: "Your car wash service is complete",
    BookingStatus.CANCELLED: "Your booking has been cancelled",
    BookingStatus.NO_SHOW: "You missed your appointment",
}

STATUS_COLORS = {
    BookingStatus.PENDING: "#F59E0B",
    BookingStatus.CONFIRMED: "#10B981",
    BookingStatus.IN_PROGRESS: "#3B82F6",
    BookingStatus.COMPLETED: "#6B7280",
    BookingStatus.CANCELLED: "#EF4444",
    BookingStatus.NO_SHOW: "#EF4444",
}


@dataclass(frozen=True)
class TimeSlot:
    start: time
    end: time

    @classmethod
    def parse(cls, start: str, end: str) -> "TimeSlot":
        if not is_valid_time(start) or not is_valid_time(end):
            raise ValidationError("Time must be in HH:mm format")
        slot = cls(parse_time(start), parse_time(end))
        if slot.end <= slot.start:
            raise ValidationError("Time slot end must be after its start")
        return slot

    @property
    def minutes(self) -> int:
        return (self.end.hour * 60 + self.end.minute) - (self.start.hour * 60 + self.start.minute)

    def overlaps(self, other: "TimeSlot") -> bool:
        return slots_overlap(self, other)

    def __str__(self):
        return f"{self.start:%H:%M}-{self.end:%H:%M}"


def slots_overlap(a: TimeSlot, b: TimeSlot) -> bool:
    """Half-open [start, end) overlap: touching slots do not conflict"""
    return a.start < b.end and b.start < a.end


def scheduled_start(scheduled_date: date, slot_start: str, tz: tzinfo) -> datetime:
    return datetime.combine(scheduled_date, parse_time(slot_start), tzinfo=tz)


def scheduled_end(scheduled_date: date, slot_end: str, tz: tzinfo) -> datetime:
    return datetime.combine(scheduled_date, parse_time(slot_end), tzinfo=tz)


def is_schedulable(scheduled_date: date, now: datetime, tz: tzinfo, max_past: timedelta) -> bool:
    """A booking date may lie at most ``max_past`` before now"""
    return datetime.combine(scheduled_date, time.min, tzinfo=tz) >= now - max_past


def can_be_cancelled(status: BookingStatus, starts_at: datetime, now: datetime,
                     cutoff: timedelta = timedelta(hours=2)) -> bool:
    """Pending bookings are always cancellable; confirmed ones only before the cutoff."""
    if status == BookingStatus.PENDING:
        return True
    if status == BookingStatus.CONFIRMED:
        return starts_at - now >= cutoff
    return False


def check_transition(current: BookingStatus, target: BookingStatus) -> bool:
    """Return True when the transition changes the status, False for a no-op.

    Raises InvalidStateError when the state machine does not allow it.
    """
    if current == target:
        return False
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStateError(f"Cannot change booking status from {current.value} to {target.value}")
    return True


def duration_in_minutes(estimated_duration: int, actual_start: Optional[datetime] = None,
                        actual_end: Optional[datetime] = None) -> int:
    if actual_start and actual_end:
        return round((actual_end - actual_start).total_seconds() / 60)
    return estimated_duration


def is_today(scheduled_date: date, now: datetime, tz: tzinfo) -> bool:
    return now.astimezone(tz).date() == scheduled_date


def is_past_due(status: BookingStatus, scheduled_date: date, slot_end: str, now: datetime, tz: tzinfo) -> bool:
    return (now > scheduled_end(scheduled_date, slot_end, tz)
            and status not in (BookingStatus.COMPLETED, BookingStatus.CANCELLED))


def status_color(status: BookingStatus) -> str:
    return STATUS_COLORS.get(status, "#6B7280")
