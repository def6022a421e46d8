"""
Job and booking state machines.

Forward moves only, plus explicit cancellation. Terminal states have no
outgoing transitions.
"""

from typing import Dict, FrozenSet, TypeVar

from allobricolage.models.booking import BookingStatus
from allobricolage.models.job import JobStatus


class InvalidTransitionError(ValueError):
    """Raised when a status change is not allowed from the current state."""

    def __init__(self, entity: str, current, target):
        self.entity = entity
        self.current = current
        self.target = target
        super().__init__(
            f"Cannot move {entity} from '{_value(current)}' to '{_value(target)}'"
        )


JOB_TRANSITIONS: Dict[JobStatus, FrozenSet[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.ACCEPTED, JobStatus.CANCELLED}),
    # accepted -> completed when a booking is closed without an explicit start
    JobStatus.ACCEPTED: frozenset({JobStatus.IN_PROGRESS, JobStatus.COMPLETED, JobStatus.CANCELLED}),
    JobStatus.IN_PROGRESS: frozenset({JobStatus.COMPLETED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.CANCELLED: frozenset(),
}

BOOKING_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({
        BookingStatus.ACCEPTED, BookingStatus.CANCELLED, BookingStatus.NO_SHOW,
    }),
    BookingStatus.ACCEPTED: frozenset({
        BookingStatus.IN_PROGRESS, BookingStatus.COMPLETED,
        BookingStatus.CANCELLED, BookingStatus.NO_SHOW,
    }),
    BookingStatus.IN_PROGRESS: frozenset({
        BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.NO_SHOW,
    }),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.NO_SHOW: frozenset(),
}

S = TypeVar("S")


def _value(status) -> str:
    return getattr(status, "value", status)


def can_transition(table: Dict[S, FrozenSet[S]], current: S, target: S) -> bool:
    return target in table.get(current, frozenset())


def can_transition_job(current: JobStatus, target: JobStatus) -> bool:
    return can_transition(JOB_TRANSITIONS, current, target)


def can_transition_booking(current: BookingStatus, target: BookingStatus) -> bool:
    return can_transition(BOOKING_TRANSITIONS, current, target)


def check_job_transition(current: JobStatus, target: JobStatus) -> None:
    if not can_transition_job(current, target):
        raise InvalidTransitionError("job", current, target)


def check_booking_transition(current: BookingStatus, target: BookingStatus) -> None:
    if not can_transition_booking(current, target):
        raise InvalidTransitionError("booking", current, target)


def is_terminal_booking(status: BookingStatus) -> bool:
    return not BOOKING_TRANSITIONS[status]
