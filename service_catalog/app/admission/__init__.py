"""
Request admission: bounded concurrency with an optional FIFO wait queue.
"""

from .controller import (
    AdmissionClosedError,
    AdmissionController,
    AdmissionTicket,
    EntryState,
    QueueEntry,
    QueueTimeoutError,
)
from .middleware import AdmissionMiddleware

__all__ = [
    "AdmissionClosedError",
    "AdmissionController",
    "AdmissionMiddleware",
    "AdmissionTicket",
    "EntryState",
    "QueueEntry",
    "QueueTimeoutError",
]
