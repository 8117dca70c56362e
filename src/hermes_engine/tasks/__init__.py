"""Task queue and background workers."""

from .task_manager import TaskManager, prioritize, queue_key
from .background import BackgroundWorker
from .scheduler import DailyStatsRunner

__all__ = ["TaskManager", "prioritize", "queue_key", "BackgroundWorker", "DailyStatsRunner"]
