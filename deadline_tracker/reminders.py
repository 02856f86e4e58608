from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import List, Optional

from loguru import logger

from .eligibility import DateLike, parse_calendar_date, remaining_days
from .models import DEFAULT_REMINDER_DAYS, MAX_REMINDER_DAYS, MIN_REMINDER_DAYS
from .notifications import ALL_REMINDERS, ReminderNotifier, format_deadline_date
from .store import TrackedDeadlineStore


class WorkflowState(Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    SAVING = "saving"
    SUCCEEDED = "succeeded"
    SAVED_LOCALLY_ONLY = "saved_locally_only"
    FAILED = "failed"


CLOSED_STATES = (WorkflowState.SUCCEEDED, WorkflowState.SAVED_LOCALLY_ONLY)

INVALID_DAYS_MESSAGE = f"Please enter a number between {MIN_REMINDER_DAYS} and {MAX_REMINDER_DAYS}"


def parse_days_input(text) -> Optional[int]:
    """Days-before from a form field, or None unless a whole number in range."""
    if isinstance(text, bool):
        return None
    if isinstance(text, int):
        value = text
    else:
        raw = str(text if text is not None else "").strip()
        if not raw or not raw.lstrip("+-").isdecimal():
            return None
        try:
            value = int(raw)
        except ValueError:
            return None
    if MIN_REMINDER_DAYS <= value <= MAX_REMINDER_DAYS:
        return value
    return None


def _days_phrase(n: int) -> str:
    return f"{n} day{'s' if n != 1 else ''}"


@dataclass
class SaveOutcome:
    state: WorkflowState
    message: str
    detail: str = ""
    email_sent: bool = False

    @property
    def rejected(self) -> bool:
        return self.state == WorkflowState.IDLE


class ReminderConfigSession:
    """
    One open reminder dialog for one tracked deadline.

    The store commit happens as soon as the input validates; the email that
    follows is advisory, so a failed send only downgrades the outcome to
    SAVED_LOCALLY_ONLY and never undoes the commit.
    """

    def __init__(
        self,
        store: TrackedDeadlineStore,
        notifier: ReminderNotifier,
        recipient: str,
        deadline_id: str,
        today: Optional[DateLike] = None,
    ):
        deadline = store.get(deadline_id)
        if deadline is None:
            raise KeyError(f"Deadline {deadline_id!r} is not tracked")
        self.store = store
        self.notifier = notifier
        self.recipient = recipient
        self.deadline = deadline
        self.today = parse_calendar_date(today) if today is not None else None
        self.reminder_enabled = bool(deadline.reminder_enabled)
        self.days_input = str(deadline.reminder_days_before or DEFAULT_REMINDER_DAYS)
        self.state = WorkflowState.IDLE
        self.history: List[WorkflowState] = [WorkflowState.IDLE]

    def _enter(self, state: WorkflowState) -> None:
        self.state = state
        self.history.append(state)

    def _reference_date(self) -> date:
        return self.today or date.today()

    @property
    def is_open(self) -> bool:
        return self.state not in CLOSED_STATES

    def save_allowed(self, reminder_enabled: Optional[bool] = None, days_input=None) -> bool:
        enabled = self.reminder_enabled if reminder_enabled is None else reminder_enabled
        text = self.days_input if days_input is None else days_input
        return self.is_open and (not enabled or parse_days_input(text) is not None)

    def preview(self, days_input=None) -> str:
        days = parse_days_input(self.days_input if days_input is None else days_input)
        if days is None:
            return "Enter a valid number of days to see when you'll receive the reminder."
        return (
            f"You'll receive an email {_days_phrase(days)} before the deadline on "
            f"{format_deadline_date(self.deadline.date)}."
        )

    def save(self, reminder_enabled: Optional[bool] = None, days_input=None) -> SaveOutcome:
        if not self.is_open:
            raise RuntimeError("This reminder configuration session is already closed")
        if reminder_enabled is not None:
            self.reminder_enabled = bool(reminder_enabled)
        if days_input is not None:
            self.days_input = str(days_input)

        self._enter(WorkflowState.VALIDATING)
        days = parse_days_input(self.days_input)
        if self.reminder_enabled and days is None:
            self._enter(WorkflowState.IDLE)
            return SaveOutcome(WorkflowState.IDLE, INVALID_DAYS_MESSAGE)

        self._enter(WorkflowState.SAVING)
        final_days = days if self.reminder_enabled else None
        try:
            committed = self.store.update(
                self.deadline.deadline_id,
                reminder_enabled=self.reminder_enabled,
                reminder_days_before=final_days,
            )
            if not committed:
                raise LookupError(f"Deadline {self.deadline.deadline_id!r} is no longer tracked")
        except Exception as e:
            logger.error(f"Error saving reminder settings: {e}")
            self._enter(WorkflowState.FAILED)
            return SaveOutcome(
                WorkflowState.FAILED,
                "Failed to save reminder settings",
                "There was an error saving your reminder preferences. Please try again.",
            )

        if self.reminder_enabled:
            return self._confirm_enabled(final_days)
        return self._confirm_disabled()

    def _confirm_enabled(self, days: int) -> SaveOutcome:
        remaining = remaining_days(self.deadline.date, self._reference_date())
        if remaining is None or remaining <= 0:
            # Past, due today or undated: nothing to confirm by email
            self._enter(WorkflowState.SUCCEEDED)
            return SaveOutcome(
                WorkflowState.SUCCEEDED,
                "Reminder scheduled",
                f"You'll receive a reminder email {_days_phrase(days)} before the deadline.",
            )
        try:
            sent = self.notifier.send_reminder_confirmation(
                self.recipient,
                deadline_title=self.deadline.title,
                institution_name=self.deadline.institution_name,
                deadline_date=self.deadline.date,
                reminder_days_before=days,
                institution_website=self.deadline.institution_website or None,
            )
        except Exception as e:
            logger.error(f"Backend sync error: {e}")
            sent = False
        if not sent:
            self._enter(WorkflowState.SAVED_LOCALLY_ONLY)
            return SaveOutcome(
                WorkflowState.SAVED_LOCALLY_ONLY,
                "Settings saved locally",
                f"Email reminder scheduled ({_days_phrase(days)} before), but couldn't verify email service.",
            )
        self._enter(WorkflowState.SUCCEEDED)
        return SaveOutcome(
            WorkflowState.SUCCEEDED,
            "Reminder scheduled! Confirmation sent.",
            "Check your inbox for confirmation. "
            f"You'll receive a reminder {_days_phrase(days)} before the deadline.",
            email_sent=True,
        )

    def _confirm_disabled(self) -> SaveOutcome:
        try:
            sent = self.notifier.send_unsubscribe_confirmation(
                self.recipient, deadline_title=self.deadline.title, all_reminders=False
            )
        except Exception as e:
            logger.error(f"Error sending unsubscribe confirmation: {e}")
            sent = False
        if not sent:
            self._enter(WorkflowState.SAVED_LOCALLY_ONLY)
            return SaveOutcome(WorkflowState.SAVED_LOCALLY_ONLY, "Settings saved locally", "Email reminders disabled.")
        self._enter(WorkflowState.SUCCEEDED)
        return SaveOutcome(
            WorkflowState.SUCCEEDED,
            "Reminders disabled and confirmation sent",
            "Check your inbox for confirmation. You will no longer receive email reminders for this deadline.",
            email_sent=True,
        )


@dataclass
class UnsubscribeResult:
    message: str
    all_reminders: bool
    matched: bool
    email_sent: bool = False


def unsubscribe(
    store: TrackedDeadlineStore,
    notifier: ReminderNotifier,
    recipient: str,
    deadline_ref: str,
) -> UnsubscribeResult:
    """Handle an unsubscribe link: a deadline id, a deadline title, or "all"."""
    if not recipient or not deadline_ref:
        raise ValueError("Invalid unsubscribe link. Missing required parameters.")

    all_reminders = deadline_ref == ALL_REMINDERS
    title = None
    matched = True
    if all_reminders:
        for d in store.list():
            store.update(d.deadline_id, reminder_enabled=False)
        message = "You have been unsubscribed from all email reminders."
    else:
        deadline = store.find(deadline_ref)
        if deadline:
            store.update(deadline.deadline_id, reminder_enabled=False)
            title = deadline.title
            message = f'You have been unsubscribed from reminders for "{deadline.title}".'
        else:
            matched = False
            title = deadline_ref
            message = "Unsubscribe request processed. If you were subscribed, you have been unsubscribed."

    try:
        sent = notifier.send_unsubscribe_confirmation(
            recipient, deadline_title=title, all_reminders=all_reminders
        )
    except Exception as e:
        logger.error(f"Error sending unsubscribe confirmation: {e}")
        sent = False
    return UnsubscribeResult(message=message, all_reminders=all_reminders, matched=matched, email_sent=sent)
