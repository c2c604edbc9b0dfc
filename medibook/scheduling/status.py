"""Appointment status lifecycle.

    pending ──> confirmed ──> completed
       │            │
       └────────────┴──> cancelled

``cancelled`` and ``completed`` are terminal. Providers may confirm and
complete; either participant may cancel.
"""

from medibook.auth.principal import Principal, Role
from medibook.models.appointment import Appointment, AppointmentStatus
from medibook.scheduling.errors import Forbidden, InvalidInput, InvalidTransition, NotFound
from medibook.scheduling.policy import AuthorizationPolicy

TRANSITIONS = {
    AppointmentStatus.PENDING: frozenset({AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.CONFIRMED: frozenset({AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED}),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.COMPLETED: frozenset(),
}

ALLOWED_ROLES = {
    AppointmentStatus.CONFIRMED: frozenset({Role.PROVIDER}),
    AppointmentStatus.COMPLETED: frozenset({Role.PROVIDER}),
    AppointmentStatus.CANCELLED: frozenset({Role.PROVIDER, Role.REQUESTER}),
}


def parse_status(value) -> AppointmentStatus:
    try:
        return AppointmentStatus(value)
    except ValueError as exc:
        valid = ', '.join(status.value for status in AppointmentStatus)
        raise InvalidInput(f'Invalid status {value!r}; expected one of: {valid}.') from exc


def allowed_targets(status) -> frozenset:
    return TRANSITIONS[parse_status(status)]


def is_terminal(status) -> bool:
    return not allowed_targets(status)


class StatusMachine:
    def __init__(self, policy: AuthorizationPolicy | None = None):
        self.policy = policy or AuthorizationPolicy()

    def transition(self, appointment: Appointment | None, requested, principal: Principal) -> Appointment:
        """Validate ``current -> requested`` for ``principal`` and apply it to ``appointment``."""
        if appointment is None:
            raise NotFound('Appointment not found.')

        target = parse_status(requested)
        current = parse_status(appointment.status)

        if not self.policy.is_participant(principal, appointment):
            raise Forbidden('Not authorized to update this appointment status.')

        if target == current:
            raise InvalidTransition(f'Appointment is already {current.value}.')

        if target not in TRANSITIONS[current]:
            raise InvalidTransition(f'Cannot change status from {current.value} to {target.value}.')

        if principal.role not in ALLOWED_ROLES[target]:
            raise Forbidden(f'Only the provider can mark an appointment as {target.value}.')

        appointment.status = target.value
        return appointment
