from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Optional

from loguru import logger

from .eligibility import DateLike, days_until, due_reminders, parse_calendar_date
from .models import TrackedDeadline
from .notifications import ReminderNotifier


@dataclass
class ReminderCheckReport:
    reference_date: date
    total_checked: int
    reminders_sent: int = 0
    reminders_failed: int = 0
    due: List[TrackedDeadline] = field(default_factory=list)


def check_reminders(
    deadlines: Iterable[TrackedDeadline],
    notifier: ReminderNotifier,
    recipient: str,
    today: Optional[DateLike] = None,
) -> ReminderCheckReport:
    """
    Send today's reminders.

    Reminders fire only on the exact day, so this has to run at least once
    per calendar day; a skipped day is a skipped reminder.
    """
    reference = parse_calendar_date(today or date.today())
    items = list(deadlines)
    due = due_reminders(items, reference)
    report = ReminderCheckReport(
        reference_date=reference,
        total_checked=sum(1 for d in items if d.reminder_enabled),
        due=due,
    )
    for deadline in due:
        try:
            sent = notifier.send_reminder(recipient, deadline, days_until(deadline.date, reference))
        except Exception as e:
            logger.error(f"Error sending reminder for {deadline.title}: {e}")
            sent = False
        if sent:
            report.reminders_sent += 1
        else:
            report.reminders_failed += 1
    logger.info(
        f"Reminder check for {reference.isoformat()}: {len(due)} due, "
        f"{report.reminders_sent} sent, {report.reminders_failed} failed"
    )
    return report
