import logging
from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError

from medibook.auth.dependencies import get_current_principal
from medibook.auth.principal import Principal
from medibook.core import config
from medibook.models.appointment import Appointment
from medibook.models.user import User
from medibook.scheduling.errors import (
    Forbidden,
    InvalidInput,
    InvalidTransition,
    NoChange,
    NotFound,
    SchedulingError,
    SlotUnavailable,
)
from medibook.scheduling.service import BookingService

router = APIRouter(tags=['appointments'])

logger = logging.getLogger(__name__)

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'
ERROR_STATUS_CODES = {
    InvalidInput: status.HTTP_400_BAD_REQUEST,
    NotFound: status.HTTP_404_NOT_FOUND,
    Forbidden: status.HTTP_403_FORBIDDEN,
    SlotUnavailable: status.HTTP_409_CONFLICT,
    InvalidTransition: status.HTTP_409_CONFLICT,
    NoChange: status.HTTP_404_NOT_FOUND,
}


def normalize_note(value: str | None) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    if not normalized:
        return None

    if len(normalized) > config.MAX_NOTE_LENGTH:
        raise ValueError(f'Notes must be {config.MAX_NOTE_LENGTH} characters or fewer.')

    return normalized


class CreateAppointmentRequest(BaseModel):
    provider_id: int
    requester_id: int | None = None
    when: datetime
    note: str | None = None

    @field_validator('note')
    @classmethod
    def validate_note(cls, value: str | None) -> str | None:
        return normalize_note(value)


class UpdateAppointmentRequest(BaseModel):
    when: datetime | None = None
    note: str | None = None

    @field_validator('note')
    @classmethod
    def validate_note(cls, value: str | None) -> str | None:
        return normalize_note(value)


class UpdateStatusRequest(BaseModel):
    status: str

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not normalized:
            raise ValueError('Status is required.')
        return normalized


class AppointmentResponse(BaseModel):
    id: int
    provider_id: int
    requester_id: int
    when: datetime
    status: str
    note: str | None = None
    provider_name: str | None = None
    provider_specialty: str | None = None
    requester_name: str | None = None


class AvailableSlotsResponse(BaseModel):
    provider_id: int
    date: date
    slots: list[str]


def to_response(appointment: Appointment, users: dict[int, User] | None = None) -> AppointmentResponse:
    users = users or {}
    provider = users.get(appointment.provider_id)
    requester = users.get(appointment.requester_id)
    return AppointmentResponse(
        id=appointment.id,
        provider_id=appointment.provider_id,
        requester_id=appointment.requester_id,
        when=appointment.scheduled_at.replace(tzinfo=timezone.utc),
        status=appointment.status,
        note=appointment.note,
        provider_name=provider.name if provider else None,
        provider_specialty=provider.specialty if provider else None,
        requester_name=requester.name if requester else None,
    )


def render(service: BookingService, appointments: list[Appointment]) -> list[AppointmentResponse]:
    users = service.participants(appointments)
    return [to_response(appointment, users) for appointment in appointments]


def to_http_exception(exc: SchedulingError) -> HTTPException:
    status_code = ERROR_STATUS_CODES.get(type(exc), status.HTTP_400_BAD_REQUEST)
    return HTTPException(status_code=status_code, detail=exc.message)


def database_unavailable() -> HTTPException:
    logger.exception('Appointment store failure.')
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=DATABASE_UNAVAILABLE_DETAIL,
    )


def get_booking_service(request: Request) -> BookingService:
    service = getattr(request.app.state, 'booking_service', None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Scheduling service is not ready.',
        )
    return service


@router.get('/available/{provider_id}', response_model=AvailableSlotsResponse)
def get_available_slots(
    provider_id: int,
    day: str | None = Query(default=None, alias='date'),
    service: BookingService = Depends(get_booking_service),
):
    try:
        result = service.available_slots(provider_id, day)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return AvailableSlotsResponse(
        provider_id=result['provider_id'],
        date=result['date'],
        slots=[slot.strftime('%H:%M') for slot in result['slots']],
    )


@router.get('/provider/{provider_id}', response_model=list[AppointmentResponse])
def list_provider_appointments(
    provider_id: int,
    principal: Principal = Depends(get_current_principal),
    service: BookingService = Depends(get_booking_service),
):
    try:
        return render(service, service.list_for_provider(principal, provider_id))
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/requester/{requester_id}', response_model=list[AppointmentResponse])
def list_requester_appointments(
    requester_id: int,
    principal: Principal = Depends(get_current_principal),
    service: BookingService = Depends(get_booking_service),
):
    try:
        return render(service, service.list_for_requester(principal, requester_id))
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    principal: Principal = Depends(get_current_principal),
    service: BookingService = Depends(get_booking_service),
):
    try:
        appointment = service.create(
            principal,
            provider_id=data.provider_id,
            requester_id=data.requester_id,
            when=data.when,
            note=data.note,
        )
        return render(service, [appointment])[0]
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/{appointment_id}', response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    principal: Principal = Depends(get_current_principal),
    service: BookingService = Depends(get_booking_service),
):
    try:
        appointment = service.get(principal, appointment_id)
        return render(service, [appointment])[0]
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.put('/{appointment_id}', response_model=AppointmentResponse)
def update_appointment(
    appointment_id: int,
    data: UpdateAppointmentRequest,
    principal: Principal = Depends(get_current_principal),
    service: BookingService = Depends(get_booking_service),
):
    try:
        appointment = service.update(principal, appointment_id, when=data.when, note=data.note)
        return render(service, [appointment])[0]
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.put('/{appointment_id}/status', response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: int,
    data: UpdateStatusRequest,
    principal: Principal = Depends(get_current_principal),
    service: BookingService = Depends(get_booking_service),
):
    try:
        appointment = service.set_status(principal, appointment_id, data.status)
        return render(service, [appointment])[0]
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.delete('/{appointment_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_appointment(
    appointment_id: int,
    principal: Principal = Depends(get_current_principal),
    service: BookingService = Depends(get_booking_service),
):
    try:
        service.delete(principal, appointment_id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return Response(status_code=status.HTTP_204_NO_CONTENT)
