"""Who may see and touch an appointment.

Pure rules over a principal and an appointment record; no I/O.
"""

from medibook.auth.principal import Principal, Role
from medibook.models.appointment import Appointment


class AuthorizationPolicy:
    @staticmethod
    def is_provider_of(principal: Principal, appointment: Appointment) -> bool:
        return principal.role == Role.PROVIDER and principal.id == appointment.provider_id

    @staticmethod
    def is_requester_of(principal: Principal, appointment: Appointment) -> bool:
        return principal.role == Role.REQUESTER and principal.id == appointment.requester_id

    def is_participant(self, principal: Principal, appointment: Appointment) -> bool:
        return self.is_provider_of(principal, appointment) or self.is_requester_of(principal, appointment)

    def can_view(self, principal: Principal, appointment: Appointment) -> bool:
        return self.is_participant(principal, appointment)

    def can_mutate(self, principal: Principal, appointment: Appointment) -> bool:
        # Status changes go through StatusMachine, which is stricter per edge.
        return self.is_participant(principal, appointment)

    @staticmethod
    def can_book(principal: Principal, provider_id: int, requester_id: int) -> bool:
        if principal.role == Role.PROVIDER:
            return principal.id == provider_id
        return principal.id == requester_id

    @staticmethod
    def can_list(principal: Principal, role: Role, subject_id: int) -> bool:
        return principal.role == role and principal.id == subject_id
