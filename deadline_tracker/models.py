from dataclasses import asdict, dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional


DEFAULT_REMINDER_DAYS = 7
MIN_REMINDER_DAYS = 1
MAX_REMINDER_DAYS = 365


class DeadlineStatus(Enum):
    PAST_DUE = "Past Due"
    DUE_TODAY = "Due Today"
    DUE_SOON = "Due Soon"
    UPCOMING = "Upcoming"
    FUTURE = "Future"
    UNKNOWN = "Unknown date"

    @property
    def label(self) -> str:
        return self.value


@dataclass
class Deadline:
    title: str
    date: str
    id: Optional[str] = None

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Deadline":
        raw_id = data.get("id")
        return Deadline(
            title=str(data.get("title", "")),
            date=str(data.get("date", "")),
            id=str(raw_id) if raw_id not in (None, "") else None,
        )


@dataclass
class Institution:
    id: int
    name: str
    website: str
    timezone: str = "America/New_York"
    deadlines: List[Deadline] = field(default_factory=list)

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Institution":
        return Institution(
            id=int(data["id"]),
            name=str(data.get("name", "")),
            website=str(data.get("website", "")),
            timezone=str(data.get("timezone") or "America/New_York"),
            deadlines=[Deadline.from_dict(d) for d in (data.get("deadlines") or [])],
        )


def make_deadline_id(institution: Institution, deadline: Deadline) -> str:
    """Directory id when present, else institution id + title + date."""
    if deadline.id:
        return deadline.id
    return f"{institution.id}-{deadline.title}-{deadline.date}"


# Persisted documents keep the camelCase keys the web client writes
_FIELD_TO_KEY = {
    "deadline_id": "deadlineId",
    "title": "title",
    "date": "date",
    "institution_id": "institutionId",
    "institution_name": "institutionName",
    "institution_website": "institutionWebsite",
    "reminder_enabled": "reminderEnabled",
    "reminder_days_before": "reminderDaysBefore",
}
_KEY_TO_FIELD = {v: k for k, v in _FIELD_TO_KEY.items()}


def _checked_days(days: Any) -> Optional[int]:
    # Out-of-range values from older or edited profiles fall back to the default
    if days is None:
        return None
    value = int(days)
    if not MIN_REMINDER_DAYS <= value <= MAX_REMINDER_DAYS:
        return DEFAULT_REMINDER_DAYS
    return value


@dataclass
class TrackedDeadline:
    deadline_id: str
    title: str
    date: str
    institution_id: int
    institution_name: str
    institution_website: str
    reminder_enabled: bool = False
    reminder_days_before: Optional[int] = DEFAULT_REMINDER_DAYS

    def to_dict(self) -> Dict[str, Any]:
        doc = {_FIELD_TO_KEY[k]: v for k, v in asdict(self).items()}
        if doc["reminderDaysBefore"] is None:
            del doc["reminderDaysBefore"]
        return doc

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "TrackedDeadline":
        if not isinstance(data, dict):
            raise ValueError(f"Tracked deadline must be an object, got {type(data).__name__}")
        missing = [k for k in ("deadlineId", "title", "date", "institutionId") if k not in data]
        if missing:
            raise ValueError(f"Tracked deadline is missing fields: {', '.join(missing)}")
        days = data.get("reminderDaysBefore")
        return TrackedDeadline(
            deadline_id=str(data["deadlineId"]),
            title=str(data["title"]),
            date=str(data["date"]),
            institution_id=int(data["institutionId"]),
            institution_name=str(data.get("institutionName", "")),
            institution_website=str(data.get("institutionWebsite", "")),
            reminder_enabled=bool(data.get("reminderEnabled", False)),
            reminder_days_before=_checked_days(days),
        )

    @staticmethod
    def field_name(key: str) -> str:
        """Map a camelCase document key (or a field name) to the field name."""
        if key in _FIELD_TO_KEY:
            return key
        if key in _KEY_TO_FIELD:
            return _KEY_TO_FIELD[key]
        raise KeyError(f"Unknown tracked deadline field: {key}")


@dataclass
class ReminderEligibility:
    deadline: TrackedDeadline
    reference_date: date
    days_until: Optional[int]
    is_due: bool
