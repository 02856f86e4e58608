"""Shared fixtures for the deadline tracker tests."""

from typing import List, Optional

import pytest

from deadline_tracker.config import TrackerConfig
from deadline_tracker.models import TrackedDeadline
from deadline_tracker.storage import MemoryKeyValueStore
from deadline_tracker.store import TrackedDeadlineStore


class FakeNotifier:
    """Stands in for ReminderNotifier; records every call."""

    def __init__(self, result: bool = True, error: Optional[Exception] = None):
        self.result = result
        self.error = error
        self.calls: List[tuple] = []

    def _respond(self, name, *args, **kwargs):
        self.calls.append((name, args, kwargs))
        if self.error is not None:
            raise self.error
        return self.result

    def send_reminder(self, recipient, deadline, days_until):
        return self._respond("reminder", recipient, deadline, days_until)

    def send_reminder_confirmation(self, recipient, **kwargs):
        return self._respond("confirmation", recipient, **kwargs)

    def send_unsubscribe_confirmation(self, recipient, deadline_title=None, all_reminders=False):
        return self._respond("unsubscribe", recipient, deadline_title=deadline_title, all_reminders=all_reminders)

    def names(self) -> List[str]:
        return [c[0] for c in self.calls]


def make_deadline(**overrides) -> TrackedDeadline:
    fields = dict(
        deadline_id="mit-1-2025-01-01",
        title="Early Action",
        date="2025-01-01",
        institution_id=1,
        institution_name="MIT",
        institution_website="https://mit.edu",
    )
    fields.update(overrides)
    return TrackedDeadline(**fields)


@pytest.fixture
def storage():
    return MemoryKeyValueStore()


@pytest.fixture
def store(storage):
    return TrackedDeadlineStore(storage).mount()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def config():
    return TrackerConfig(
        resend_api_key="re_test_key",
        resend_from_email="reminders@example.edu",
        app_url="https://tracker.example.edu",
        request_timeout=2.0,
    )
