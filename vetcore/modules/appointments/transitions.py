from typing import assert_never
from vetcore.modules.appointments.models import AppointmentStatus
from vetcore.modules.notifications.service import NotificationEvent

S = AppointmentStatus

VALID_NEXT: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    S.PENDING: frozenset({S.CONFIRMED, S.CANCELLED}),
    S.CONFIRMED: frozenset({S.COMPLETED, S.CANCELLED, S.NO_SHOW}),
    S.CANCELLED: frozenset(),
    S.COMPLETED: frozenset(),
    S.NO_SHOW: frozenset(),
}

TERMINAL = frozenset(s for s, nxt in VALID_NEXT.items() if not nxt)

def can_transition(old: AppointmentStatus, new: AppointmentStatus) -> bool:
    return new in VALID_NEXT[old]

def event_for(status: AppointmentStatus) -> NotificationEvent:
    """Notification emitted when an appointment enters ``status``."""
    match status:
        case S.PENDING:
            return NotificationEvent.NEW_APPOINTMENT
        case S.CONFIRMED:
            return NotificationEvent.APPOINTMENT_CONFIRMED
        case S.CANCELLED:
            return NotificationEvent.APPOINTMENT_CANCELLED
        case S.COMPLETED:
            return NotificationEvent.APPOINTMENT_COMPLETED
        case S.NO_SHOW:
            return NotificationEvent.APPOINTMENT_NO_SHOW
        case _:
            assert_never(status)
