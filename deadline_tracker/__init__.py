__all__ = [
    "TrackerConfig",
    "Deadline",
    "DeadlineStatus",
    "Institution",
    "TrackedDeadline",
    "ReminderEligibility",
    "TrackedDeadlineStore",
    "TrackedDeadlinesScopeError",
    "provide_tracked_deadlines",
    "use_tracked_deadlines",
    "FileKeyValueStore",
    "MemoryKeyValueStore",
    "StorageChannel",
    "DirectoryClient",
    "DebouncedSearch",
    "ReminderNotifier",
    "ReminderConfigSession",
    "WorkflowState",
    "check_reminders",
]

from .config import TrackerConfig
from .models import Deadline, DeadlineStatus, Institution, ReminderEligibility, TrackedDeadline
from .storage import FileKeyValueStore, MemoryKeyValueStore, StorageChannel
from .store import (
    TrackedDeadlineStore,
    TrackedDeadlinesScopeError,
    provide_tracked_deadlines,
    use_tracked_deadlines,
)
from .directory import DebouncedSearch, DirectoryClient
from .notifications import ReminderNotifier
from .reminders import ReminderConfigSession, WorkflowState
from .checker import check_reminders
