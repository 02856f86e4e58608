import pytest
from typer.testing import CliRunner

import deadline_tracker_cli
from deadline_tracker import FileKeyValueStore, TrackedDeadlineStore

from conftest import FakeNotifier, make_deadline

runner = CliRunner()


@pytest.fixture
def profile(tmp_path, monkeypatch):
    monkeypatch.delenv("DT_USER_EMAIL", raising=False)
    path = tmp_path / "profile.json"
    store = TrackedDeadlineStore(FileKeyValueStore(path)).mount()
    store.add(make_deadline(deadline_id="a", title="EA", date="2025-01-08", reminder_enabled=True, reminder_days_before=7))
    store.add(make_deadline(deadline_id="b", title="RD", date="2025-03-01"))
    return str(path)


@pytest.fixture
def fake_notifier(monkeypatch):
    notifier = FakeNotifier()
    notifier.close = lambda: None
    monkeypatch.setattr(deadline_tracker_cli, "ReminderNotifier", lambda cfg: notifier)
    return notifier


def test_list(profile):
    result = runner.invoke(deadline_tracker_cli.app, ["list", "--profile", profile, "--date", "2025-01-01"])
    assert result.exit_code == 0
    assert "Due Soon" in result.stdout
    assert "Future" in result.stdout
    assert "Showing 2 tracked deadlines" in result.stdout


def test_list_empty(tmp_path):
    result = runner.invoke(deadline_tracker_cli.app, ["list", "--profile", str(tmp_path / "none.json")])
    assert result.exit_code == 0
    assert "No deadlines tracked yet." in result.stdout


def test_bad_date(profile):
    result = runner.invoke(deadline_tracker_cli.app, ["list", "--profile", profile, "--date", "01/01/2025"])
    assert result.exit_code != 0


def test_due(profile):
    result = runner.invoke(deadline_tracker_cli.app, ["due", "--profile", profile, "--date", "2025-01-01"])
    assert result.exit_code == 0
    assert "EA" in result.stdout

    result = runner.invoke(deadline_tracker_cli.app, ["due", "--profile", profile, "--date", "2025-01-02"])
    assert "No reminders due on 2025-01-02." in result.stdout


def test_check_sends_reminders(profile, fake_notifier):
    result = runner.invoke(
        deadline_tracker_cli.app,
        ["check", "--profile", profile, "--email", "s@example.com", "--date", "2025-01-01"],
    )
    assert result.exit_code == 0
    assert "Sent: 1" in result.stdout
    assert fake_notifier.names() == ["reminder"]


def test_check_reports_failure(profile, fake_notifier):
    fake_notifier.result = False
    result = runner.invoke(
        deadline_tracker_cli.app,
        ["check", "--profile", profile, "--email", "s@example.com", "--date", "2025-01-01"],
    )
    assert result.exit_code == 1


def test_check_requires_recipient(profile, fake_notifier):
    result = runner.invoke(deadline_tracker_cli.app, ["check", "--profile", profile])
    assert result.exit_code == 2
    assert fake_notifier.calls == []


def test_list_shows_undated_deadline(profile):
    store = TrackedDeadlineStore(FileKeyValueStore(profile)).mount()
    store.add(make_deadline(deadline_id="c", title="ED", date=""))

    result = runner.invoke(deadline_tracker_cli.app, ["list", "--profile", profile, "--date", "2025-01-01"])

    assert result.exit_code == 0
    assert "Unknown" in result.stdout
    assert "Showing 3 tracked deadlines" in result.stdout
