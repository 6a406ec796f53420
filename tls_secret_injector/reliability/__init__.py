"""
Reliability Module — Work queues and backoff for the reconcile loops.
"""

from .work_queue import BackoffPolicy, QueueStats, WorkQueue

__all__ = [
    "WorkQueue",
    "BackoffPolicy",
    "QueueStats",
]
