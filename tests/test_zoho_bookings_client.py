"""
Tests for the Zoho Bookings adapter against canned HTTP responses.
"""

from __future__ import annotations

import json
from datetime import date, datetime
from urllib.parse import parse_qs

import httpx

from booking_agent.application.ports.scheduling import AppointmentRequest
from booking_agent.domain.entities.calendar_time import TimeOfDay
from booking_agent.domain.entities.scheduling import Service, ServiceCategory
from booking_agent.domain.entities.session import Session
from booking_agent.infrastructure.http.resilient_client import ResilientApiClient
from booking_agent.infrastructure.zoho.bookings_client import ZohoBookingsClient

BASE = "https://www.zohoapis.in/bookings/v1/json"


class StaticToken:
    def get_token(self, session: Session) -> str:
        return "tok"


def _zoho(handler) -> ZohoBookingsClient:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    api = ResilientApiClient(client, credentials=StaticToken(), sleep=lambda _: None)
    return ZohoBookingsClient(api, BASE)


def _success(data) -> httpx.Response:
    return httpx.Response(200, json={"response": {"status": "success", "returnvalue": {"data": data}}})


def _form(request: httpx.Request) -> dict[str, str]:
    return {key: values[0] for key, values in parse_qs(request.content.decode()).items()}


def test_list_services_parses_category_price_and_duration():
    def handler(request):
        assert request.url.path.endswith("/services")
        return _success(
            [
                {"id": "s1", "name": "Consultation", "duration": "45 mins", "price": "0", "service_type": "APPOINTMENT",
                 "assigned_staffs": ["st1", "st2"]},
                {"id": "s2", "name": "Studio", "duration": "60 mins", "price": 750, "currency": "INR",
                 "service_type": "RESOURCE", "assigned_resources": ["r1"]},
                {"name": "no id"},
            ]
        )

    services = _zoho(handler).list_services(Session(user_id="u1"))

    assert [s.id for s in services] == ["s1", "s2"]
    assert services[0].duration_minutes == 45
    assert services[0].assignee_ids == ("st1", "st2")
    assert not services[0].requires_payment
    assert services[1].category is ServiceCategory.RESOURCE
    assert services[1].price == 750.0
    assert services[1].requires_payment


def test_resource_services_list_resources():
    paths = []

    def handler(request):
        paths.append(request.url.path)
        return _success([{"id": "r1", "name": "Room A"}])

    service = Service(id="s2", name="Studio", duration_minutes=60, category=ServiceCategory.RESOURCE)
    assignees = _zoho(handler).list_assignees(Session(user_id="u1"), service)

    assert paths == ["/bookings/v1/json/resources"]
    assert assignees[0].name == "Room A"


def test_available_times_are_normalized_sorted_and_deduplicated():
    seen = {}

    def handler(request):
        seen.update(dict(request.url.params))
        return _success(["02:30 PM", "09:00 AM", "14:30", "bogus"])

    service = Service(id="s1", name="Consultation", duration_minutes=30)
    times = _zoho(handler).get_available_times(Session(user_id="u1"), service, "st1", date(2025, 9, 16))

    assert times == [TimeOfDay(9, 0), TimeOfDay(14, 30)]
    assert seen == {"service_id": "s1", "selected_date": "16-Sep-2025", "staff_id": "st1"}


def test_slots_not_available_string_is_empty():
    handler = lambda request: _success("Slots Not Available")  # noqa: E731
    service = Service(id="s1", name="Consultation", duration_minutes=30)
    assert _zoho(handler).get_available_times(Session(user_id="u1"), service, None, date(2025, 9, 16)) == []


def test_malformed_body_is_treated_as_empty():
    handler = lambda request: httpx.Response(200, text="<html>maintenance</html>")  # noqa: E731
    assert _zoho(handler).list_services(Session(user_id="u1")) == []


def test_create_appointment_sends_form_and_reads_booking():
    captured = {}

    def handler(request):
        captured["form"] = _form(request)
        captured["auth"] = request.headers["Authorization"]
        return httpx.Response(
            200,
            json={
                "response": {
                    "status": "success",
                    "returnvalue": {
                        "booking_id": "#AB-00012",
                        "status": "upcoming",
                        "summary_url": "https://bookings.zoho.in/summary/AB-00012",
                    },
                }
            },
        )

    service = Service(id="s1", name="Consultation", duration_minutes=30)
    request = AppointmentRequest(
        service=service,
        assignee_id="st1",
        starts_at=datetime(2025, 9, 16, 14, 30),
        ends_at=datetime(2025, 9, 16, 15, 0),
        customer_name="Asha Rao",
        customer_email="asha@example.com",
        customer_phone="+919800000001",
        timezone="Asia/Kolkata",
    )
    result = _zoho(handler).create_appointment(Session(user_id="u1"), request)

    assert result.success
    assert result.booking_id == "#AB-00012"
    assert result.summary_url.endswith("AB-00012")
    form = captured["form"]
    assert form["from_time"] == "16-Sep-2025 14:30:00"
    assert form["to_time"] == "16-Sep-2025 15:00:00"
    assert form["staff_id"] == "st1"
    assert json.loads(form["customer_details"]) == {
        "name": "Asha Rao",
        "email": "asha@example.com",
        "phone_number": "+919800000001",
    }
    assert json.loads(form["payment_info"]) == {"cost_paid": "0.00"}
    assert captured["auth"] == "Zoho-oauthtoken tok"


def test_failure_status_is_reported_as_failed_command():
    handler = lambda request: httpx.Response(  # noqa: E731
        200,
        json={"response": {"status": "success", "returnvalue": {"status": "failure", "message": "Slot taken"}}},
    )
    result = _zoho(handler).cancel_appointment(Session(user_id="u1"), "#AB-1")
    assert not result.success
    assert result.message == "Slot taken"


def test_find_appointments_parses_start_time():
    def handler(request):
        assert json.loads(_form(request)["data"])["customer_email"] == "asha@example.com"
        return _success(
            [
                {"booking_id": "#AB-1", "service_id": "s1", "service_name": "Consultation", "staff_id": "st1",
                 "start_time": "16-Sep-2025 02:30 PM", "status": "upcoming"},
                {"service_id": "missing booking id"},
            ]
        )

    appointments = _zoho(handler).find_appointments(Session(user_id="u1"), "asha@example.com")

    assert len(appointments) == 1
    assert appointments[0].starts_at == datetime(2025, 9, 16, 14, 30)
