from __future__ import annotations

import json
import logging
from datetime import date, datetime
from typing import Any

from booking_agent.application.dto.api_result import ApiResponse, ParsedError
from booking_agent.application.ports.scheduling import AppointmentRequest, CommandResult, SchedulingPort
from booking_agent.domain.entities.calendar_time import (
    TimeOfDay,
    format_api_date,
    format_api_datetime,
    parse_api_datetime,
    parse_duration_minutes,
)
from booking_agent.domain.entities.scheduling import Appointment, Service, ServiceCategory, Staff
from booking_agent.domain.entities.session import Session
from booking_agent.infrastructure.http.resilient_client import ApiRequest, ResilientApiClient

ASSIGNEE_ENDPOINTS = {
    ServiceCategory.APPOINTMENT: "staffs",
    ServiceCategory.COLLECTIVE: "staffs",
    ServiceCategory.RESOURCE: "resources",
}


class ZohoBookingsClient(SchedulingPort):
    def __init__(self, api: ResilientApiClient, base_url: str, workspace_id: str | None = None) -> None:
        self._api = api
        self._base_url = base_url.rstrip("/")
        self._workspace_id = workspace_id
        self._logger = logging.getLogger(__name__)

    def list_services(self, session: Session) -> list[Service]:
        params = {"workspace_id": self._workspace_id} if self._workspace_id else None
        resp = self._api.call(ApiRequest("GET", self._url("services"), params=params), session)
        services: list[Service] = []
        for item in _data_list(resp, "services"):
            service = _parse_service(item)
            if service is not None:
                services.append(service)
        return services

    def list_assignees(self, session: Session, service: Service) -> list[Staff]:
        endpoint = ASSIGNEE_ENDPOINTS[service.category]
        resp = self._api.call(ApiRequest("GET", self._url(endpoint), params={"service_id": service.id}), session)
        assignees: list[Staff] = []
        for item in _data_list(resp, endpoint):
            if isinstance(item, dict) and item.get("id"):
                assignees.append(Staff(id=str(item["id"]), name=str(item.get("name") or item["id"])))
        return assignees

    def get_available_times(
        self,
        session: Session,
        service: Service,
        assignee_id: str | None,
        day: date,
    ) -> list[TimeOfDay]:
        params: dict[str, Any] = {"service_id": service.id, "selected_date": format_api_date(day)}
        if assignee_id:
            params[service.category.assignee_field] = assignee_id
        resp = self._api.call(ApiRequest("GET", self._url("availableslots"), params=params), session)

        times: list[TimeOfDay] = []
        # "Slots Not Available" arrives as a string in place of the list.
        for raw in _data_list(resp, "availableslots"):
            try:
                times.append(TimeOfDay.parse(str(raw)))
            except ValueError:
                self._logger.warning("Skipping unparseable slot time", extra={"reason": str(raw)})
        return sorted(set(times))

    def create_appointment(self, session: Session, request: AppointmentRequest) -> CommandResult:
        form: dict[str, Any] = {
            "service_id": request.service.id,
            "from_time": format_api_datetime(request.starts_at),
            "to_time": format_api_datetime(request.ends_at),
            "timezone": request.timezone,
            "customer_details": json.dumps(
                {
                    "name": request.customer_name,
                    "email": request.customer_email,
                    "phone_number": request.customer_phone,
                }
            ),
            "notes": request.notes,
            "payment_info": json.dumps({"cost_paid": f"{request.cost_paid:.2f}"}),
        }
        if request.assignee_id:
            form[request.service.category.assignee_field] = request.assignee_id
        resp = self._api.call(ApiRequest("POST", self._url("appointment"), data=form), session)
        return _command_result(resp, "appointment")

    def cancel_appointment(self, session: Session, booking_id: str) -> CommandResult:
        form = {"booking_id": booking_id, "action": "cancel"}
        resp = self._api.call(ApiRequest("POST", self._url("updateappointment"), data=form), session)
        return _command_result(resp, "updateappointment", fallback_booking_id=booking_id)

    def reschedule_appointment(
        self,
        session: Session,
        booking_id: str,
        assignee_id: str | None,
        starts_at: datetime,
    ) -> CommandResult:
        form: dict[str, Any] = {"booking_id": booking_id, "start_time": format_api_datetime(starts_at)}
        if assignee_id:
            form["staff_id"] = assignee_id
        resp = self._api.call(ApiRequest("POST", self._url("rescheduleappointment"), data=form), session)
        return _command_result(resp, "rescheduleappointment", fallback_booking_id=booking_id)

    def find_appointments(self, session: Session, email: str) -> list[Appointment]:
        form = {"data": json.dumps({"customer_email": email, "status": "UPCOMING"})}
        resp = self._api.call(ApiRequest("POST", self._url("fetchappointment"), data=form), session)
        appointments: list[Appointment] = []
        for item in _data_list(resp, "fetchappointment"):
            appointment = _parse_appointment(item)
            if appointment is not None:
                appointments.append(appointment)
        return appointments

    def _url(self, endpoint: str) -> str:
        return f"{self._base_url}/{endpoint}"


def _returnvalue(resp: ApiResponse, endpoint: str) -> dict[str, Any] | None:
    logger = logging.getLogger(__name__)
    if isinstance(resp.body, ParsedError):
        logger.warning("Zoho response not parseable", extra={"url": endpoint, "reason": resp.body.reason})
        return None
    response = resp.json_or_empty().get("response")
    if not isinstance(response, dict) or response.get("status") != "success":
        logger.warning("Zoho call unsuccessful", extra={"url": endpoint, "status": resp.status})
        return None
    returnvalue = response.get("returnvalue")
    return returnvalue if isinstance(returnvalue, dict) else None


def _data_list(resp: ApiResponse, endpoint: str) -> list[Any]:
    returnvalue = _returnvalue(resp, endpoint)
    if returnvalue is None:
        return []
    data = returnvalue.get("data", returnvalue.get("response"))
    return data if isinstance(data, list) else []


def _command_result(resp: ApiResponse, endpoint: str, fallback_booking_id: str | None = None) -> CommandResult:
    returnvalue = _returnvalue(resp, endpoint)
    if returnvalue is None:
        return CommandResult(success=False, message="provider_error")
    status = str(returnvalue.get("status") or "").lower()
    if status == "failure":
        return CommandResult(success=False, status=status, message=returnvalue.get("message"))
    booking_id = returnvalue.get("booking_id") or fallback_booking_id
    if not booking_id:
        return CommandResult(success=False, status=status, message="missing_booking_id")
    return CommandResult(
        success=True,
        booking_id=str(booking_id),
        summary_url=returnvalue.get("summary_url"),
        status=status or None,
        message=returnvalue.get("message"),
    )


def _parse_service(item: Any) -> Service | None:
    if not isinstance(item, dict) or not item.get("id"):
        return None
    category = ServiceCategory.from_provider(item.get("service_type"))
    assignees = item.get("assigned_resources") if category is ServiceCategory.RESOURCE else item.get("assigned_staffs")
    try:
        price = float(item.get("price") or 0)
    except (TypeError, ValueError):
        price = 0.0
    return Service(
        id=str(item["id"]),
        name=str(item.get("name") or item["id"]),
        duration_minutes=parse_duration_minutes(item.get("duration")),
        price=price,
        currency=item.get("currency"),
        category=category,
        assignee_ids=tuple(str(a) for a in assignees) if isinstance(assignees, list) else (),
    )


def _parse_appointment(item: Any) -> Appointment | None:
    if not isinstance(item, dict) or not item.get("booking_id"):
        return None
    starts_at = None
    if item.get("start_time"):
        try:
            starts_at = parse_api_datetime(str(item["start_time"]))
        except ValueError:
            starts_at = None
    return Appointment(
        booking_id=str(item["booking_id"]),
        service_id=item.get("service_id"),
        service_name=item.get("service_name"),
        staff_id=item.get("staff_id"),
        staff_name=item.get("staff_name"),
        starts_at=starts_at,
        status=item.get("status"),
        summary_url=item.get("summary_url"),
        duration_minutes=parse_duration_minutes(item.get("duration")) if item.get("duration") else None,
    )
