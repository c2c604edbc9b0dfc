import logging
from zoneinfo import ZoneInfo

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from medibook.core import config
from medibook.database import Base, create_database_engine, ensure_appointment_schema
from medibook.models import appointment, user
from medibook.routes import appointment_routes, auth_routes
from medibook.scheduling.grid import SlotGrid
from medibook.scheduling.service import build_booking_service

app = FastAPI(title='Medibook Scheduling API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


def build_slot_grid() -> SlotGrid:
    return SlotGrid(
        zone=ZoneInfo(config.SCHEDULE_TIMEZONE),
        opens_at=config.BUSINESS_OPEN_TIME,
        closes_at=config.BUSINESS_CLOSE_TIME,
        slot_minutes=config.SLOT_MINUTES,
    )


@app.on_event('startup')
def initialize_services() -> None:
    logging.getLogger('medibook').setLevel(config.LOG_LEVEL)
    config.validate_runtime_config()

    grid = build_slot_grid()
    engine = create_database_engine(config.DATABASE_URL)
    try:
        Base.metadata.create_all(bind=engine, tables=[user.User.__table__, appointment.Appointment.__table__])
        ensure_appointment_schema(engine, grid.cell_start)
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')

    app.state.booking_service = build_booking_service(
        engine,
        grid,
        include_cancelled=config.AVAILABILITY_COUNTS_CANCELLED,
    )
    logger.info('Scheduling service ready (zone %s)', config.SCHEDULE_TIMEZONE)


@app.on_event('shutdown')
def close_services() -> None:
    service = getattr(app.state, 'booking_service', None)
    if service is not None:
        service.store.close()
        app.state.booking_service = None


@app.get('/')
def root():
    return {'status': 'Medibook Scheduling API Running'}


app.include_router(auth_routes.router, prefix='/auth')
app.include_router(appointment_routes.router, prefix='/appointments')
