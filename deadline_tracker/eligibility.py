import re
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Union

import dateparser
from loguru import logger

from .models import DeadlineStatus, ReminderEligibility, TrackedDeadline


DateLike = Union[str, date, datetime]

_ISO_DATE_PREFIX = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")


def parse_calendar_date(value: DateLike) -> date:
    """
    Reduce a deadline date to its calendar day.

    The directory stores dates as ISO timestamps ("2025-01-01T00:00:00.000Z");
    only the date part carries meaning. Other formats go through dateparser.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = (value or "").strip()
    match = _ISO_DATE_PREFIX.match(text)
    if match:
        try:
            return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        except ValueError:
            pass
    parsed = dateparser.parse(
        text,
        settings={
            "RETURN_AS_TIMEZONE_AWARE": False,
            "PREFER_DAY_OF_MONTH": "first",
        },
    ) if text else None
    if parsed is None:
        raise ValueError(f"Unrecognised date: {value!r}")
    return parsed.date()


def days_until(deadline_date: DateLike, reference_date: DateLike) -> int:
    """Whole calendar days from reference to deadline; negative once past."""
    return (parse_calendar_date(deadline_date) - parse_calendar_date(reference_date)).days


def remaining_days(deadline_date: DateLike, reference_date: DateLike) -> Optional[int]:
    """Like days_until, but None for a deadline date that cannot be read."""
    try:
        return days_until(deadline_date, reference_date)
    except ValueError as e:
        logger.warning(f"Skipping deadline with unreadable date: {e}")
        return None


def classify(days: Optional[int]) -> DeadlineStatus:
    if days is None:
        return DeadlineStatus.UNKNOWN
    if days < 0:
        return DeadlineStatus.PAST_DUE
    if days == 0:
        return DeadlineStatus.DUE_TODAY
    if days <= 7:
        return DeadlineStatus.DUE_SOON
    if days <= 30:
        return DeadlineStatus.UPCOMING
    return DeadlineStatus.FUTURE


def is_reminder_due(deadline: TrackedDeadline, reference_date: DateLike) -> bool:
    # Exact-day match: a day the check does not run on is a missed reminder.
    if not deadline.reminder_enabled or not deadline.reminder_days_before:
        return False
    remaining = remaining_days(deadline.date, reference_date)
    if remaining is None:
        return False
    return remaining == deadline.reminder_days_before and remaining > 0


def evaluate(deadline: TrackedDeadline, reference_date: DateLike) -> ReminderEligibility:
    ref = parse_calendar_date(reference_date)
    return ReminderEligibility(
        deadline=deadline,
        reference_date=ref,
        days_until=remaining_days(deadline.date, ref),
        is_due=is_reminder_due(deadline, ref),
    )


def due_reminders(deadlines: Iterable[TrackedDeadline], reference_date: Optional[DateLike] = None) -> List[TrackedDeadline]:
    ref = parse_calendar_date(reference_date or date.today())
    return [d for d in deadlines if is_reminder_due(d, ref)]


def reminder_send_date(deadline_date: DateLike, days_before: int) -> date:
    return parse_calendar_date(deadline_date) - timedelta(days=days_before)


def describe_days(days: Optional[int]) -> str:
    if days is None:
        return "-"
    if days == 0:
        return "Today"
    if days == 1:
        return "1 day left"
    if days > 1:
        return f"{days} days left"
    ago = abs(days)
    return f"{ago} day{'s' if ago != 1 else ''} ago"
