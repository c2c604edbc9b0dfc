"""Booking use cases.

BookingService is the only entry point the transport layer calls. Each write
runs as one store transaction; nothing is retried here.
"""

import logging
from datetime import datetime

from sqlalchemy.engine import Engine

from medibook.auth.directory import UserDirectory
from medibook.auth.principal import Principal, Role
from medibook.models.appointment import Appointment, AppointmentStatus
from medibook.models.user import User
from medibook.scheduling.availability import AvailabilityCalculator
from medibook.scheduling.conflicts import ConflictChecker
from medibook.scheduling.errors import Forbidden, InvalidInput, NoChange, NotFound, SlotUnavailable
from medibook.scheduling.grid import SlotGrid
from medibook.scheduling.policy import AuthorizationPolicy
from medibook.scheduling.status import StatusMachine
from medibook.scheduling.store import AppointmentStore

logger = logging.getLogger(__name__)

SLOT_TAKEN_MESSAGE = 'This time slot is already booked.'


class BookingService:
    def __init__(
        self,
        store: AppointmentStore,
        directory: UserDirectory,
        grid: SlotGrid | None = None,
        policy: AuthorizationPolicy | None = None,
        availability: AvailabilityCalculator | None = None,
    ):
        self.store = store
        self.directory = directory
        self.grid = grid or SlotGrid()
        self.policy = policy or AuthorizationPolicy()
        self.conflicts = ConflictChecker(store, self.grid)
        self.status_machine = StatusMachine(self.policy)
        self.availability = availability or AvailabilityCalculator(store, self.grid)

    def _load(self, appointment_id: int) -> Appointment:
        appointment = self.store.find_by_id(appointment_id)
        if appointment is None:
            raise NotFound('Appointment not found.')
        return appointment

    def _require(self, user_id: int, role: Role, label: str) -> None:
        if not self.directory.resolve_principal(user_id, role):
            raise NotFound(f'{label} not found.')

    def create(
        self,
        principal: Principal,
        provider_id: int | None,
        requester_id: int | None,
        when: datetime | None,
        note: str | None = None,
    ) -> Appointment:
        if requester_id is None and principal.role == Role.REQUESTER:
            requester_id = principal.id

        if provider_id is None or requester_id is None or when is None:
            raise InvalidInput('Please provide a date, a provider and a requester.')

        when = self.grid.parse_instant(when)

        if not self.policy.can_book(principal, provider_id, requester_id):
            logger.warning(
                '%s %s refused booking for provider %s', principal.role.value, principal.id, provider_id
            )
            raise Forbidden('You can only book appointments you take part in.')

        self._require(provider_id, Role.PROVIDER, 'Provider')
        self._require(requester_id, Role.REQUESTER, 'Requester')

        scheduled_at = self.grid.to_storage(when)
        with self.store.transaction() as session:
            if self.conflicts.has_conflict(provider_id, when, session=session):
                logger.warning('Slot %s already booked for provider %s', scheduled_at.isoformat(), provider_id)
                raise SlotUnavailable(SLOT_TAKEN_MESSAGE)

            appointment = self.store.insert(
                Appointment(
                    status=AppointmentStatus.PENDING.value,
                    scheduled_at=scheduled_at,
                    slot_start=self.grid.cell_start(when),
                    note=note,
                    provider_id=provider_id,
                    requester_id=requester_id,
                ),
                session=session,
            )

        logger.info(
            'Created appointment %s for provider %s at %s', appointment.id, provider_id, scheduled_at.isoformat()
        )
        return appointment

    def get(self, principal: Principal, appointment_id: int) -> Appointment:
        appointment = self._load(appointment_id)
        if not self.policy.can_view(principal, appointment):
            raise Forbidden('Not authorized to view this appointment.')
        return appointment

    def update(
        self,
        principal: Principal,
        appointment_id: int,
        when: datetime | None = None,
        note: str | None = None,
    ) -> Appointment:
        appointment = self._load(appointment_id)
        if not self.policy.can_mutate(principal, appointment):
            raise Forbidden('Not authorized to update this appointment.')

        values = {}
        if note is not None:
            values['note'] = note
        if when is not None:
            when = self.grid.parse_instant(when)
            values['scheduled_at'] = self.grid.to_storage(when)
            values['slot_start'] = self.grid.cell_start(when)
        if not values:
            raise InvalidInput('Provide a new date or note to update.')

        with self.store.transaction() as session:
            moves = when is not None and appointment.status != AppointmentStatus.CANCELLED.value
            if moves and self.conflicts.has_conflict(
                appointment.provider_id,
                when,
                exclude_id=appointment.id,
                session=session,
            ):
                raise SlotUnavailable(SLOT_TAKEN_MESSAGE)

            if self.store.update(appointment.id, values, session=session) == 0:
                raise NoChange('Appointment not found or no changes made.')

            updated = self.store.find_by_id(appointment.id, session=session)

        logger.info('Updated appointment %s fields %s', appointment.id, sorted(values))
        return updated

    def set_status(self, principal: Principal, appointment_id: int, status) -> Appointment:
        appointment = self.store.find_by_id(appointment_id)
        previous = appointment.status if appointment is not None else None

        appointment = self.status_machine.transition(appointment, status, principal)

        affected = self.store.update(
            appointment.id,
            {'status': appointment.status},
            expected_status=previous,
        )
        if affected == 0:
            raise NoChange('Appointment not found or no changes made.')

        logger.info(
            'Appointment %s status %s -> %s by %s %s',
            appointment.id,
            previous,
            appointment.status,
            principal.role.value,
            principal.id,
        )
        return appointment

    def delete(self, principal: Principal, appointment_id: int) -> None:
        appointment = self._load(appointment_id)
        if not self.policy.can_mutate(principal, appointment):
            raise Forbidden('Not authorized to delete this appointment.')

        if self.store.delete(appointment.id) == 0:
            raise NoChange('Appointment not found.')

        logger.info('Deleted appointment %s', appointment.id)

    def list_for_provider(self, principal: Principal, provider_id: int) -> list[Appointment]:
        if not self.policy.can_list(principal, Role.PROVIDER, provider_id):
            raise Forbidden("You can only list your own appointments.")
        return self.store.find_by_provider(provider_id)

    def list_for_requester(self, principal: Principal, requester_id: int) -> list[Appointment]:
        if not self.policy.can_list(principal, Role.REQUESTER, requester_id):
            raise Forbidden("You can only list your own appointments.")
        return self.store.find_by_requester(requester_id)

    def participants(self, appointments) -> dict[int, User]:
        """Users referenced by ``appointments`` as provider or requester, keyed by id."""
        ids = set()
        for appointment in appointments:
            ids.add(appointment.provider_id)
            ids.add(appointment.requester_id)
        return self.directory.get_users(ids)

    def available_slots(self, provider_id: int, day=None) -> dict:
        day = self.grid.today() if day is None else self.grid.parse_day(day)
        self._require(provider_id, Role.PROVIDER, 'Provider')

        return {
            'provider_id': provider_id,
            'date': day,
            'slots': self.availability.available_slots(provider_id, day),
        }


def build_booking_service(engine: Engine, grid: SlotGrid, include_cancelled: bool = True) -> BookingService:
    store = AppointmentStore(engine)
    return BookingService(
        store,
        UserDirectory(engine),
        grid=grid,
        availability=AvailabilityCalculator(store, grid, include_cancelled=include_cancelled),
    )
