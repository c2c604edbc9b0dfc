import os

import pytest

os.environ.setdefault('DATABASE_URL', 'sqlite://')

from medibook.auth.directory import UserDirectory  # noqa: E402
from medibook.auth.principal import Principal, Role  # noqa: E402
from medibook.database import Base, create_database_engine, create_session_factory  # noqa: E402
from medibook.models.appointment import Appointment  # noqa: E402
from medibook.models.user import User  # noqa: E402
from medibook.scheduling.grid import SlotGrid  # noqa: E402
from medibook.scheduling.service import BookingService  # noqa: E402
from medibook.scheduling.store import AppointmentStore  # noqa: E402

PROVIDER_ID = 1
REQUESTER_ID = 2
OTHER_PROVIDER_ID = 3
OTHER_REQUESTER_ID = 4


@pytest.fixture
def engine():
    engine = create_database_engine('sqlite://')
    Base.metadata.create_all(bind=engine, tables=[User.__table__, Appointment.__table__])

    db = create_session_factory(engine)()
    try:
        db.add_all([
            User(id=PROVIDER_ID, email='doc@example.com', name='Dr. One', role='provider', specialty='Cardiology'),
            User(id=REQUESTER_ID, email='client@example.com', name='Client Two', role='requester'),
            User(id=OTHER_PROVIDER_ID, email='doc3@example.com', name='Dr. Three', role='provider'),
            User(id=OTHER_REQUESTER_ID, email='client4@example.com', name='Client Four', role='requester'),
        ])
        db.commit()
    finally:
        db.close()

    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine, tables=[Appointment.__table__, User.__table__])
        engine.dispose()


@pytest.fixture
def store(engine):
    return AppointmentStore(engine)


@pytest.fixture
def service(engine, store):
    return BookingService(store, UserDirectory(engine), grid=SlotGrid())


@pytest.fixture
def provider() -> Principal:
    return Principal(id=PROVIDER_ID, role=Role.PROVIDER)


@pytest.fixture
def requester() -> Principal:
    return Principal(id=REQUESTER_ID, role=Role.REQUESTER)


@pytest.fixture
def outsider() -> Principal:
    return Principal(id=OTHER_REQUESTER_ID, role=Role.REQUESTER)
