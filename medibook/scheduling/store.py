"""Transactional persistence for appointment records."""

from contextlib import contextmanager
from datetime import datetime
from typing import Iterator

from sqlalchemy import delete, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from medibook.database import create_session_factory
from medibook.models.appointment import Appointment, AppointmentStatus
from medibook.scheduling.errors import SlotUnavailable

SLOT_INDEX_NAME = 'uq_appointments_provider_slot_active'
# SQLite names the indexed columns rather than the index.
SQLITE_SLOT_CONFLICT = 'UNIQUE constraint failed: appointments.provider_id, appointments.slot_start'


def is_slot_conflict(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    return SLOT_INDEX_NAME in message or SQLITE_SLOT_CONFLICT in message


class AppointmentStore:
    """CRUD over the ``appointments`` table.

    Every method accepts an optional ``session``. Without one the call runs in
    its own transaction; with one it joins the caller's transaction, which is
    how the booking service makes a conflict check and the following write a
    single atomic unit.

    A violation of the live-slot index is reported as ``SlotUnavailable``.
    Every other database error, other integrity failures included, propagates
    unchanged.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self._session_factory = create_session_factory(engine)

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            if is_slot_conflict(exc):
                raise SlotUnavailable('This time slot is already booked.') from exc
            raise
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def _scope(self, session: Session | None) -> Iterator[Session]:
        if session is not None:
            yield session
            return

        with self.transaction() as owned:
            yield owned

    def close(self) -> None:
        self.engine.dispose()

    def insert(self, appointment: Appointment, session: Session | None = None) -> Appointment:
        with self._scope(session) as db:
            db.add(appointment)
            db.flush()
            return appointment

    def find_by_id(self, appointment_id: int, session: Session | None = None) -> Appointment | None:
        with self._scope(session) as db:
            return db.get(Appointment, appointment_id, populate_existing=True)

    def find_by_provider(self, provider_id: int, session: Session | None = None) -> list[Appointment]:
        with self._scope(session) as db:
            return list(
                db.scalars(
                    select(Appointment)
                    .where(Appointment.provider_id == provider_id)
                    .order_by(Appointment.id)
                )
            )

    def find_by_requester(self, requester_id: int, session: Session | None = None) -> list[Appointment]:
        with self._scope(session) as db:
            return list(
                db.scalars(
                    select(Appointment)
                    .where(Appointment.requester_id == requester_id)
                    .order_by(Appointment.id)
                )
            )

    def find_by_provider_and_range(
        self,
        provider_id: int,
        start: datetime,
        end: datetime,
        session: Session | None = None,
    ) -> list[Appointment]:
        """Appointments of a provider with ``start <= scheduled_at < end``."""
        with self._scope(session) as db:
            return list(
                db.scalars(
                    select(Appointment)
                    .where(
                        Appointment.provider_id == provider_id,
                        Appointment.scheduled_at >= start,
                        Appointment.scheduled_at < end,
                    )
                    .order_by(Appointment.scheduled_at.asc())
                )
            )

    def find_active_in_slot(
        self,
        provider_id: int,
        slot_start: datetime,
        exclude_id: int | None = None,
        session: Session | None = None,
    ) -> Appointment | None:
        with self._scope(session) as db:
            query = select(Appointment).where(
                Appointment.provider_id == provider_id,
                Appointment.slot_start == slot_start,
                Appointment.status != AppointmentStatus.CANCELLED.value,
            )
            if exclude_id is not None:
                query = query.where(Appointment.id != exclude_id)
            return db.scalars(query.limit(1)).first()

    def update(
        self,
        appointment_id: int,
        values: dict,
        expected_status: str | None = None,
        session: Session | None = None,
    ) -> int:
        """Apply ``values`` and return the number of rows affected.

        With ``expected_status`` the row is only touched while it still has
        that status.
        """
        with self._scope(session) as db:
            statement = update(Appointment).where(Appointment.id == appointment_id)
            if expected_status is not None:
                statement = statement.where(Appointment.status == expected_status)
            result = db.execute(
                statement.values(**values).execution_options(synchronize_session=False)
            )
            return result.rowcount

    def delete(self, appointment_id: int, session: Session | None = None) -> int:
        with self._scope(session) as db:
            result = db.execute(
                delete(Appointment)
                .where(Appointment.id == appointment_id)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount
