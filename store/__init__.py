"""Store package: application data store, notifications and statistics."""

from store.app_store import AppDataStore
from store.notifier import Notifier, LoggingNotifier, RecordingNotifier
from store.statistics import WritingStatistics, StoryTotals, compute_statistics

__all__ = [
    "AppDataStore",
    "Notifier",
    "LoggingNotifier",
    "RecordingNotifier",
    "WritingStatistics",
    "StoryTotals",
    "compute_statistics",
]
