from enum import Enum


class ComplaintStatus(str, Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


# Statuses that hold an agent; assigned_to is set exactly for these.
BOUND_STATUSES = (ComplaintStatus.ASSIGNED.value, ComplaintStatus.IN_PROGRESS.value)
TERMINAL_STATUSES = (ComplaintStatus.RESOLVED.value, ComplaintStatus.CLOSED.value)
