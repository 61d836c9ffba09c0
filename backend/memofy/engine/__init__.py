"""Core engine - edit locks, memo workflow, activity trail"""
from .activity_logger import ActivityLogger
from .lock_manager import LockManager
from .memo_workflow import MemoWorkflow

__all__ = [
    "ActivityLogger",
    "LockManager",
    "MemoWorkflow",
]
