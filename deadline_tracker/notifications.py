from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import resend
from bs4 import BeautifulSoup
from loguru import logger

from .config import TrackerConfig
from .eligibility import DateLike, parse_calendar_date, reminder_send_date
from .email_templates import confirmation_template, reminder_template, unsubscribe_template
from .models import TrackedDeadline


ALL_REMINDERS = "all"


def format_deadline_date(value: DateLike) -> str:
    try:
        d = parse_calendar_date(value)
    except ValueError:
        return str(value) if value else "Unknown date"
    return f"{d.strftime('%B')} {d.day}, {d.year}"


def build_unsubscribe_url(app_url: str, recipient: str, deadline_id: str) -> str:
    query = urlencode({"email": recipient, "deadlineId": deadline_id})
    return f"{app_url.rstrip('/')}/?{query}"


def html_to_text(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "title"]):
        tag.extract()
    return soup.get_text(" ", strip=True)


class ReminderNotifier:
    """Renders reminder emails and hands them to the Resend API."""

    def __init__(self, config: TrackerConfig):
        self.config = config
        self._executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="mail")

    @property
    def dashboard_url(self) -> str:
        return f"{self.config.app_url.rstrip('/')}/"

    def _send(self, to: str, subject: str, html: str) -> bool:
        if not self.config.resend_api_key:
            logger.error("Resend not configured: RESEND_API_KEY is missing")
            return False
        if not to:
            logger.error(f"No recipient for email {subject!r}")
            return False

        params: Dict[str, Any] = {
            "from": self.config.resend_from_email,
            "to": [to],
            "subject": subject,
            "html": html,
            "text": html_to_text(html),
        }

        def deliver():
            resend.api_key = self.config.resend_api_key
            return resend.Emails.send(params)

        future = self._executor.submit(deliver)
        try:
            response = future.result(timeout=self.config.request_timeout)
        except FutureTimeoutError:
            logger.error(f"Timed out after {self.config.request_timeout}s sending {subject!r} to {to}")
            return False
        except Exception as e:
            logger.error(f"Error sending email via Resend to {to}: {e}")
            return False

        email_id = response.get("id") if isinstance(response, dict) else getattr(response, "id", None)
        logger.info(f"Email sent successfully: {email_id} ({subject!r})")
        return True

    def send_reminder(self, recipient: str, deadline: TrackedDeadline, days_until: int) -> bool:
        subject = f"Reminder: {deadline.title} deadline in {days_until} day{'s' if days_until != 1 else ''}"
        html = reminder_template(
            deadline_title=deadline.title,
            institution_name=deadline.institution_name,
            deadline_date=format_deadline_date(deadline.date),
            days_until=days_until,
            unsubscribe_url=build_unsubscribe_url(self.config.app_url, recipient, deadline.deadline_id),
            dashboard_url=self.dashboard_url,
            institution_website=deadline.institution_website or None,
        )
        return self._send(recipient, subject, html)

    def send_reminder_confirmation(
        self,
        recipient: str,
        deadline_title: str,
        institution_name: str,
        deadline_date: DateLike,
        reminder_days_before: int,
        institution_website: Optional[str] = None,
    ) -> bool:
        title = deadline_title or "Application Deadline"
        institution = institution_name or "Institution"
        html = confirmation_template(
            deadline_title=title,
            institution_name=institution,
            deadline_date=format_deadline_date(deadline_date),
            reminder_date=format_deadline_date(reminder_send_date(deadline_date, reminder_days_before)),
            reminder_days_before=reminder_days_before,
            unsubscribe_all_url=build_unsubscribe_url(self.config.app_url, recipient, ALL_REMINDERS),
            dashboard_url=self.dashboard_url,
            institution_website=institution_website,
        )
        return self._send(recipient, f"Reminder scheduled: {title} at {institution}", html)

    def send_unsubscribe_confirmation(
        self,
        recipient: str,
        deadline_title: Optional[str] = None,
        all_reminders: bool = False,
    ) -> bool:
        # No title means every reminder
        all_reminders = all_reminders or not deadline_title
        subject = (
            "Unsubscribed from all reminders"
            if all_reminders
            else f"Unsubscribed from {deadline_title} reminders"
        )
        html = unsubscribe_template(self.dashboard_url, deadline_title=deadline_title, all_reminders=all_reminders)
        return self._send(recipient, subject, html)

    def close(self) -> None:
        self._executor.shutdown(wait=False)
