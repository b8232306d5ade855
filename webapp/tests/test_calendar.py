from datetime import date, datetime

import pytest

from dental_clinic.domain.appointments import Appointment, AppointmentStatus
from dental_clinic.services.calendar_service import (
    AppointmentService, day_agenda, hourly_slots, month_grid,
)


def _appt(appt_id, start, dentist_id=1, status=AppointmentStatus.SCHEDULED):
    start = datetime.fromisoformat(start)
    return Appointment(id=appt_id, patient_id=1, dentist_id=dentist_id, start_time=start,
                       end_time=start.replace(minute=start.minute + 30), status=status)


APPOINTMENTS = [
    _appt(1, "2024-06-03 11:00"),
    _appt(2, "2024-06-03 09:15", dentist_id=2),
    _appt(3, "2024-06-03 09:00", status=AppointmentStatus.CANCELLED),
    _appt(4, "2024-06-04 10:00"),
]


def test_day_agenda_sorted_by_start():
    agenda = day_agenda(APPOINTMENTS, date(2024, 6, 3))
    assert [a.id for a in agenda] == [3, 2, 1]


def test_day_agenda_filters():
    assert [a.id for a in day_agenda(APPOINTMENTS, date(2024, 6, 3), dentist_id=1)] == [3, 1]
    assert [a.id for a in day_agenda(APPOINTMENTS, date(2024, 6, 3),
                                     status=AppointmentStatus.CANCELLED)] == [3]


def test_hourly_slots_cover_working_hours():
    slots = hourly_slots(day_agenda(APPOINTMENTS, date(2024, 6, 3)), 9, 12)
    assert [hour for hour, _ in slots] == [9, 10, 11]
    assert [a.id for a in slots[0][1]] == [3, 2]
    assert slots[1][1] == []
    assert hourly_slots([], 17, 9) == []


def test_month_grid_starts_on_sunday():
    grid = month_grid(2024, 6, APPOINTMENTS)
    first = grid[0][0]
    assert first["date"].weekday() == 6
    assert not first["in_month"]
    cells = {cell["date"]: cell for week in grid for cell in week}
    assert cells[date(2024, 6, 3)]["count"] == 3
    assert all(len(week) == 7 for week in grid)


@pytest.fixture
def people(clinic):
    return clinic.patient.id, clinic.dentist.id


def test_appointment_defaults_to_thirty_minutes(people):
    patient_id, dentist_id = people
    appt = AppointmentService().create({
        "patient_id": patient_id, "dentist_id": dentist_id, "start_time": "2024-06-03T10:00",
    })
    assert appt.duration_minutes == 30
    assert appt.status == AppointmentStatus.SCHEDULED


def test_appointment_must_end_after_start(people):
    patient_id, dentist_id = people
    with pytest.raises(ValueError):
        AppointmentService().create({
            "patient_id": patient_id, "dentist_id": dentist_id,
            "start_time": "2024-06-03T10:00", "end_time": "2024-06-03T09:00",
        })


def test_rescheduling_resets_reminder(people):
    patient_id, dentist_id = people
    service = AppointmentService()
    appt = service.create({
        "patient_id": patient_id, "dentist_id": dentist_id,
        "start_time": "2024-06-03T10:00", "reminder_time": "1_hour_before",
    })
    appt.reminder_sent = True
    service.appointment_repo.update(appt)

    same_time = service.update(appt.id, {
        "patient_id": patient_id, "dentist_id": dentist_id,
        "start_time": "2024-06-03T10:00", "reason": "Check-up",
    })
    assert same_time.reminder_sent

    moved = service.update(appt.id, {
        "patient_id": patient_id, "dentist_id": dentist_id, "start_time": "2024-06-04T10:00",
    })
    assert not moved.reminder_sent


def test_day_endpoint(admin_client):
    dentist = admin_client.post("/billing/dentists", json={"name": "Dr. Omar"}).get_json()["dentist"]
    patient = admin_client.post("/patients/", json={"name": "Karim"}).get_json()["patient"]
    response = admin_client.post("/scheduler/appointments", json={
        "patient_id": patient["id"], "dentist_id": dentist["id"], "start_time": "2024-06-03T10:00",
    })
    assert response.status_code == 201

    day = admin_client.get("/scheduler/day?date=2024-06-03").get_json()
    assert [a["patient_name"] for a in day["appointments"]] == ["Karim"]
    ten = next(slot for slot in day["slots"] if slot["hour"] == 10)
    assert ten["appointment_ids"] == [day["appointments"][0]["id"]]

    assert admin_client.get("/scheduler/day?date=not-a-date").status_code == 400
