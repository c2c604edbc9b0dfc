from datetime import datetime, timezone
from typing import Callable

from sqlalchemy import DateTime, Integer, column, create_engine, inspect, select, table, text, update
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool


Base = declarative_base()


def create_database_engine(database_url: str) -> Engine:
    if database_url.startswith('sqlite'):
        options = {'connect_args': {'check_same_thread': False}}
        if ':memory:' in database_url or database_url in {'sqlite://', 'sqlite+pysqlite://'}:
            # Every session must see the same in-memory database.
            options['poolclass'] = StaticPool
        return create_engine(database_url, **options)

    return create_engine(database_url, pool_pre_ping=True)


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )


def ensure_appointment_schema(engine: Engine, cell_start: Callable[[datetime], datetime]) -> None:
    """Bring an appointments table created by an older release up to date.

    ``cell_start`` maps an aware instant to the naive UTC start of its grid
    cell; legacy rows are backfilled through it so they occupy the same cell a
    new booking at that time would.
    """
    inspector = inspect(engine)

    if 'appointments' not in inspector.get_table_names():
        return

    existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
    migration_steps = [
        ('note', 'ALTER TABLE appointments ADD COLUMN note VARCHAR'),
        ('slot_start', 'ALTER TABLE appointments ADD COLUMN slot_start TIMESTAMP'),
    ]
    appointments = table(
        'appointments',
        column('id', Integer),
        column('scheduled_at', DateTime),
        column('slot_start', DateTime),
    )

    with engine.begin() as connection:
        for column_name, statement in migration_steps:
            if column_name not in existing_columns:
                connection.execute(text(statement))

        pending = connection.execute(
            select(appointments.c.id, appointments.c.scheduled_at).where(
                appointments.c.slot_start.is_(None),
                appointments.c.scheduled_at.is_not(None),
            )
        ).all()
        for appointment_id, scheduled_at in pending:
            connection.execute(
                update(appointments)
                .where(appointments.c.id == appointment_id)
                .values(slot_start=cell_start(scheduled_at.replace(tzinfo=timezone.utc)))
            )

        connection.execute(
            text(
                'CREATE INDEX IF NOT EXISTS idx_appointments_provider_time '
                'ON appointments(provider_id, scheduled_at)'
            )
        )
        connection.execute(
            text(
                'CREATE UNIQUE INDEX IF NOT EXISTS uq_appointments_provider_slot_active '
                "ON appointments(provider_id, slot_start) WHERE status != 'cancelled'"
            )
        )
