from __future__ import annotations

import logging
import threading
import time
from datetime import datetime
from typing import Any
from urllib.parse import quote

import httpx

from booking_assistant.application.exceptions import CalendarError
from booking_assistant.application.ports.calendar import CalendarPort
from booking_assistant.application.utils.intent_payload import parse_iso_datetime
from booking_assistant.domain.entities.calendar_event import CalendarEvent, DeleteOutcome

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_CALENDAR_API = "https://www.googleapis.com/calendar/v3"

# Refresh this many seconds before the provider-reported expiry.
TOKEN_EXPIRY_MARGIN_SECONDS = 300


class GoogleAccessTokenProvider:
    """OAuth refresh-token flow with an in-process cache; one instance per process."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        refresh_token: str,
        http_client: httpx.Client,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._refresh_token = refresh_token
        self._client = http_client
        self._access_token: str | None = None
        self._expires_at = 0.0
        self._lock = threading.Lock()
        self._logger = logging.getLogger(__name__)

    def get_token(self) -> str:
        with self._lock:
            if self._access_token and time.time() < self._expires_at - TOKEN_EXPIRY_MARGIN_SECONDS:
                return self._access_token
            self._logger.info("Refreshing Google Calendar access token")
            try:
                response = self._client.post(
                    GOOGLE_TOKEN_URL,
                    data={
                        "client_id": self._client_id,
                        "client_secret": self._client_secret,
                        "refresh_token": self._refresh_token,
                        "grant_type": "refresh_token",
                    },
                )
            except httpx.HTTPError as e:
                raise CalendarError(f"Token refresh failed: {e}") from e

            if response.status_code != 200:
                raise CalendarError(f"Token refresh failed: HTTP {response.status_code}")

            tokens = _json_body(response, "calendar.token")
            access_token = tokens.get("access_token")
            if not access_token:
                raise CalendarError("No access token in refresh response")

            self._access_token = access_token
            self._expires_at = time.time() + float(tokens.get("expires_in", 3600))
            return access_token


class GoogleCalendar(CalendarPort):
    def __init__(
        self,
        calendar_id: str,
        token_provider: GoogleAccessTokenProvider,
        http_client: httpx.Client,
    ) -> None:
        if not calendar_id:
            raise ValueError("GOOGLE_CALENDAR_ID is required for Google Calendar")
        self._calendar_id = calendar_id
        self._tokens = token_provider
        self._client = http_client
        self._events_url = f"{GOOGLE_CALENDAR_API}/calendars/{quote(calendar_id, safe='')}/events"
        self._logger = logging.getLogger(__name__)

    @property
    def calendar_id(self) -> str:
        return self._calendar_id

    def list_events(self, start: datetime, end: datetime) -> list[CalendarEvent]:
        params = {
            "timeMin": start.isoformat(),
            "timeMax": end.isoformat(),
            "singleEvents": "true",
            "showDeleted": "true",
            "maxResults": 50,
        }
        response = self._request("GET", self._events_url, step="calendar.list_events", params=params)
        items = _json_body(response, "calendar.list_events").get("items") or []
        if not isinstance(items, list):
            raise CalendarError("calendar.list_events: items is not a list")
        return [_to_event(item) for item in items]

    def create_event(
        self,
        start: datetime,
        end: datetime,
        summary: str,
        description: str | None = None,
        attendee_email: str | None = None,
    ) -> str:
        payload: dict[str, Any] = {
            "summary": summary,
            "description": description or "",
            "start": {"dateTime": start.isoformat()},
            "end": {"dateTime": end.isoformat()},
        }
        if attendee_email:
            payload["attendees"] = [{"email": attendee_email}]

        response = self._request("POST", self._events_url, step="calendar.create_event", json=payload)
        event_id = _json_body(response, "calendar.create_event").get("id")
        if not event_id:
            raise CalendarError("No event ID returned from Google Calendar API")

        self._logger.info("Calendar event created", extra={"event_id": event_id})
        return str(event_id)

    def update_event(self, event_id: str, start: datetime, end: datetime) -> None:
        payload = {
            "start": {"dateTime": start.isoformat()},
            "end": {"dateTime": end.isoformat()},
        }
        self._request("PATCH", f"{self._events_url}/{quote(event_id, safe='')}", step="calendar.update_event", json=payload)
        self._logger.info("Calendar event updated", extra={"event_id": event_id})

    def delete_event(self, event_id: str) -> DeleteOutcome:
        url = f"{self._events_url}/{quote(event_id, safe='')}"
        response = self._request("DELETE", url, step="calendar.delete_event", allow_missing=True)
        if response.status_code in (404, 410):
            self._logger.info("Calendar event already deleted", extra={"event_id": event_id})
            return DeleteOutcome.NOT_FOUND
        self._logger.info("Calendar event deleted", extra={"event_id": event_id})
        return DeleteOutcome.DELETED

    def _request(self, method: str, url: str, step: str, allow_missing: bool = False, **kwargs: Any) -> httpx.Response:
        token = self._tokens.get_token()
        headers = {"Authorization": f"Bearer {token}"}
        try:
            response = self._client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            self._logger.error("Google Calendar request failed", extra={"step": step, "reason": str(e)})
            raise CalendarError(f"{step}: {e}") from e

        if allow_missing and response.status_code in (404, 410):
            return response
        if response.status_code >= 400:
            self._logger.error(
                "Google Calendar returned an error",
                extra={"step": step, "status": response.status_code, "reason": response.text[:300]},
            )
            raise CalendarError(f"{step}: HTTP {response.status_code}")
        return response


def _json_body(response: httpx.Response, step: str) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError as e:
        raise CalendarError(f"{step}: response is not valid JSON") from e
    if not isinstance(body, dict):
        raise CalendarError(f"{step}: expected a JSON object")
    return body


def _to_event(item: dict[str, Any]) -> CalendarEvent:
    start = item.get("start") or {}
    end = item.get("end") or {}
    return CalendarEvent(
        id=str(item.get("id", "")),
        start=parse_iso_datetime(start.get("dateTime")),
        end=parse_iso_datetime(end.get("dateTime")),
        status=item.get("status") or "confirmed",
        transparency=item.get("transparency") or "opaque",
        summary=item.get("summary"),
    )
