from datetime import date, datetime, timezone
from types import SimpleNamespace

import pytest
from fastapi import HTTPException
from pydantic import ValidationError
from sqlalchemy.exc import OperationalError

from medibook.models.appointment import Appointment
from medibook.routes.appointment_routes import (
    CreateAppointmentRequest,
    UpdateAppointmentRequest,
    UpdateStatusRequest,
    create_appointment,
    delete_appointment,
    get_appointment,
    get_available_slots,
    get_booking_service,
    list_provider_appointments,
    list_requester_appointments,
    render,
    router,
    update_appointment,
    update_appointment_status,
)

WHEN = datetime(2024, 3, 10, 13, 0, tzinfo=timezone.utc)


def create(service, principal, when=WHEN, note='checkup'):
    return create_appointment(
        CreateAppointmentRequest(provider_id=1, requester_id=2, when=when, note=note),
        principal=principal,
        service=service,
    )


def test_create_appointment_request_normalizes_note() -> None:
    request = CreateAppointmentRequest(provider_id=1, when=WHEN, note='  checkup  ')

    assert request.note == 'checkup'
    assert request.requester_id is None


def test_create_appointment_request_turns_blank_note_into_none() -> None:
    assert CreateAppointmentRequest(provider_id=1, when=WHEN, note='   ').note is None


def test_create_appointment_request_rejects_long_note() -> None:
    with pytest.raises(ValidationError):
        CreateAppointmentRequest(provider_id=1, when=WHEN, note='x' * 601)


def test_update_status_request_normalizes_status() -> None:
    assert UpdateStatusRequest(status=' Confirmed ').status == 'confirmed'

    with pytest.raises(ValidationError):
        UpdateStatusRequest(status='  ')


def test_create_appointment_returns_utc_timestamp(service, requester) -> None:
    response = create(service, requester)

    assert response.status == 'pending'
    assert response.when == WHEN
    assert response.note == 'checkup'


def test_create_appointment_conflict_is_409(service, requester) -> None:
    create(service, requester)

    with pytest.raises(HTTPException) as exception_info:
        create(service, requester)

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail == 'This time slot is already booked.'


def test_create_appointment_unknown_provider_is_404(service, requester) -> None:
    with pytest.raises(HTTPException) as exception_info:
        create_appointment(
            CreateAppointmentRequest(provider_id=99, when=WHEN),
            principal=requester,
            service=service,
        )

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Provider not found.'


def test_appointment_responses_include_participant_details(service, provider, requester) -> None:
    created = create(service, requester)

    assert created.provider_name == 'Dr. One'
    assert created.provider_specialty == 'Cardiology'
    assert created.requester_name == 'Client Two'

    fetched = get_appointment(created.id, principal=provider, service=service)
    listed = list_requester_appointments(2, principal=requester, service=service)

    assert (fetched.provider_name, fetched.requester_name) == ('Dr. One', 'Client Two')
    assert [(item.provider_name, item.provider_specialty, item.requester_name) for item in listed] == [
        ('Dr. One', 'Cardiology', 'Client Two')
    ]


def test_participant_details_are_empty_for_unknown_users(service) -> None:
    orphan = service.store.insert(
        Appointment(
            scheduled_at=datetime(2024, 3, 10, 13, 0),
            slot_start=datetime(2024, 3, 10, 13, 0),
            provider_id=1,
            requester_id=42,
        )
    )

    response = render(service, [orphan])[0]

    assert response.provider_name == 'Dr. One'
    assert response.requester_name is None


def test_get_appointment_outsider_is_403(service, requester, outsider) -> None:
    created = create(service, requester)

    with pytest.raises(HTTPException) as exception_info:
        get_appointment(created.id, principal=outsider, service=service)

    assert exception_info.value.status_code == 403


def test_get_missing_appointment_is_404(service, provider) -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_appointment(404, principal=provider, service=service)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Appointment not found.'


def test_update_appointment_applies_date_and_note(service, requester) -> None:
    created = create(service, requester)

    response = update_appointment(
        created.id,
        UpdateAppointmentRequest(when=datetime(2024, 3, 10, 16, 0, tzinfo=timezone.utc), note='later'),
        principal=requester,
        service=service,
    )

    assert response.when == datetime(2024, 3, 10, 16, 0, tzinfo=timezone.utc)
    assert response.note == 'later'


def test_update_appointment_without_fields_is_400(service, requester) -> None:
    created = create(service, requester)

    with pytest.raises(HTTPException) as exception_info:
        update_appointment(created.id, UpdateAppointmentRequest(), principal=requester, service=service)

    assert exception_info.value.status_code == 400


def test_update_status_maps_machine_errors(service, provider, requester) -> None:
    created = create(service, requester)

    with pytest.raises(HTTPException) as exception_info:
        update_appointment_status(
            created.id, UpdateStatusRequest(status='confirmed'), principal=requester, service=service
        )
    assert exception_info.value.status_code == 403

    response = update_appointment_status(
        created.id, UpdateStatusRequest(status='confirmed'), principal=provider, service=service
    )
    assert response.status == 'confirmed'

    with pytest.raises(HTTPException) as exception_info:
        update_appointment_status(
            created.id, UpdateStatusRequest(status='pending'), principal=provider, service=service
        )
    assert exception_info.value.status_code == 409

    with pytest.raises(HTTPException) as exception_info:
        update_appointment_status(
            created.id, UpdateStatusRequest(status='archived'), principal=provider, service=service
        )
    assert exception_info.value.status_code == 400


def test_delete_appointment_returns_204_and_removes_record(service, requester) -> None:
    created = create(service, requester)

    response = delete_appointment(created.id, principal=requester, service=service)

    assert response.status_code == 204
    assert service.store.find_by_id(created.id) is None


def test_list_routes_are_self_only(service, provider, requester) -> None:
    created = create(service, requester)

    assert [item.id for item in list_provider_appointments(1, principal=provider, service=service)] == [created.id]
    assert [item.id for item in list_requester_appointments(2, principal=requester, service=service)] == [created.id]

    with pytest.raises(HTTPException) as exception_info:
        list_requester_appointments(4, principal=requester, service=service)
    assert exception_info.value.status_code == 403


def test_available_slots_formats_times(service, requester) -> None:
    create(service, requester)

    response = get_available_slots(1, day='2024-03-10', service=service)

    assert response.provider_id == 1
    assert response.date == date(2024, 3, 10)
    assert response.slots[0] == '09:00'
    assert response.slots[-1] == '17:00'
    assert '13:00' not in response.slots
    assert len(response.slots) == 16


def test_available_slots_rejects_malformed_date(service) -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_available_slots(1, day='March 10th', service=service)

    assert exception_info.value.status_code == 400


def test_available_slots_day_is_read_from_date_query_parameter() -> None:
    route = next(route for route in router.routes if route.path == '/available/{provider_id}')

    assert [param.alias for param in route.dependant.query_params] == ['date']


def test_store_failure_is_503(service, provider, monkeypatch) -> None:
    def fail(*args, **kwargs):
        raise OperationalError('SELECT 1', {}, Exception('database is locked'))

    monkeypatch.setattr(service.store, 'find_by_id', fail)

    with pytest.raises(HTTPException) as exception_info:
        get_appointment(1, principal=provider, service=service)

    assert exception_info.value.status_code == 503
    assert exception_info.value.detail == 'Database unavailable. Verify DATABASE_URL and database credentials.'


def test_get_booking_service_requires_initialized_app(service) -> None:
    ready = SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace(booking_service=service)))
    not_ready = SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace()))

    assert get_booking_service(ready) is service
    with pytest.raises(HTTPException) as exception_info:
        get_booking_service(not_ready)
    assert exception_info.value.status_code == 503
