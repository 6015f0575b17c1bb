from __future__ import annotations

import copy
import json
import re
import threading
import time
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from booking_assistant.application.exceptions import DuplicateSlotError, RepositoryError
from booking_assistant.application.ports.repository import RepositoryPort
from booking_assistant.domain.entities.appointment import Appointment
from booking_assistant.domain.entities.conversation_turn import ConversationTurn, TurnRole
from booking_assistant.domain.entities.customer import Customer, OnboardingState

PROCESSED_IDS_LIMIT = 2000


class JsonRepository(RepositoryPort):
    """
    File-backed repository for dev and single-instance deployments.

    Layout under data_dir:
      customers/<address>.json  customer record, appointments and conversation turns
      index.json                slot uniqueness index and appointment owners
      processed.json            recently seen inbound message ids
    Lock order is always customer lock, then index lock.
    """

    def __init__(self, data_dir: str = "./data/customers", history_limit: int = 50) -> None:
        self._data_dir = Path(data_dir)
        self._customers_dir = self._data_dir / "customers"
        self._customers_dir.mkdir(parents=True, exist_ok=True)
        self._index_path = self._data_dir / "index.json"
        self._processed_path = self._data_dir / "processed.json"
        self._history_limit = history_limit
        self._locks: dict[str, threading.RLock] = {}
        self._lock_lock = threading.Lock()  # Lock for managing locks dict
        self._index_lock = threading.RLock()
        self._processed_lock = threading.Lock()

    def _get_lock(self, address: str) -> threading.RLock:
        """Get or create a lock for a customer address."""
        with self._lock_lock:
            if address not in self._locks:
                self._locks[address] = threading.RLock()
            return self._locks[address]

    def _get_file_path(self, address: str) -> Path:
        safe = re.sub(r"[^A-Za-z0-9_+\-]", "_", address)
        return self._customers_dir / f"{safe}.json"

    def _load_customer_data(self, address: str) -> dict[str, Any] | None:
        file_path = self._get_file_path(address)
        if not file_path.exists():
            return None
        return self._read_json(file_path)

    def _read_json(self, file_path: Path) -> dict[str, Any]:
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            raise RepositoryError(f"Could not read {file_path.name}: {e}") from e

    def _write_json(self, file_path: Path, data: dict[str, Any]) -> None:
        """Write JSON atomically via temp file + rename."""
        temp_path = file_path.with_suffix(".json.tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            temp_path.replace(file_path)
        except OSError as e:
            if temp_path.exists():
                temp_path.unlink(missing_ok=True)
            raise RepositoryError(f"Could not write {file_path.name}: {e}") from e

    def _load_index(self) -> dict[str, Any]:
        if not self._index_path.exists():
            return {"slots": {}, "owners": {}, "version": 1}
        data = self._read_json(self._index_path)
        data.setdefault("slots", {})
        data.setdefault("owners", {})
        return data

    def get_customer(self, address: str) -> Customer | None:
        with self._get_lock(address):
            data = self._load_customer_data(address)
            return _deserialize_customer(data["customer"]) if data else None

    def create_customer(self, address: str, state: OnboardingState) -> Customer:
        with self._get_lock(address):
            data = self._load_customer_data(address)
            if data is not None:
                return _deserialize_customer(data["customer"])
            now_ts = time.time()
            customer = Customer(address=address, onboarding_state=state, created_at=now_ts, updated_at=now_ts)
            self._write_json(
                self._get_file_path(address),
                {"customer": _serialize_customer(customer), "appointments": [], "turns": [], "version": 1},
            )
            return customer

    def save_customer(self, customer: Customer) -> Customer:
        with self._get_lock(customer.address):
            data = self._require_customer_data(customer.address)
            data["customer"] = _serialize_customer(customer)
            self._write_json(self._get_file_path(customer.address), data)
            return customer

    def delete_customer(self, address: str) -> None:
        with self._get_lock(address):
            data = self._load_customer_data(address)
            if data is None:
                return
            with self._index_lock:
                index = self._load_index()
                for raw in data.get("appointments", []):
                    index["slots"].pop(_slot_key(raw["calendar_id"], _parse_dt(raw["start_time"])), None)
                    index["owners"].pop(raw["id"], None)
                self._write_json(self._index_path, index)
            self._get_file_path(address).unlink(missing_ok=True)

    def add_appointment(
        self,
        customer_address: str,
        start_time: datetime,
        end_time: datetime,
        external_event_id: str,
        calendar_id: str,
    ) -> Appointment:
        with self._get_lock(customer_address):
            data = self._require_customer_data(customer_address)
            appointment = Appointment(
                id=uuid.uuid4().hex,
                customer_address=customer_address,
                start_time=start_time,
                end_time=end_time,
                external_event_id=external_event_id,
                calendar_id=calendar_id,
                created_at=time.time(),
            )
            data.setdefault("appointments", []).append(_serialize_appointment(appointment))
            with self._index_lock:
                index = self._load_index()
                key = _slot_key(calendar_id, start_time)
                if key in index["slots"]:
                    raise DuplicateSlotError(f"Slot {start_time.isoformat()} already booked on {calendar_id}")
                snapshot = copy.deepcopy(index)
                index["slots"][key] = appointment.id
                index["owners"][appointment.id] = customer_address
                self._write_json(self._index_path, index)
                self._write_customer_or_restore(customer_address, data, snapshot)
            return appointment

    def update_appointment_time(self, appointment_id: str, start_time: datetime, end_time: datetime) -> Appointment:
        address = self._owner_of(appointment_id)
        with self._get_lock(address):
            data = self._require_customer_data(address)
            rows = data.get("appointments", [])
            position = next((i for i, raw in enumerate(rows) if raw["id"] == appointment_id), None)
            if position is None:
                raise RepositoryError(f"Unknown appointment {appointment_id}")
            current = _deserialize_appointment(rows[position])

            with self._index_lock:
                index = self._load_index()
                new_key = _slot_key(current.calendar_id, start_time)
                holder = index["slots"].get(new_key)
                if holder is not None and holder != appointment_id:
                    raise DuplicateSlotError(f"Slot {start_time.isoformat()} already booked on {current.calendar_id}")
                snapshot = copy.deepcopy(index)
                index["slots"].pop(_slot_key(current.calendar_id, current.start_time), None)
                index["slots"][new_key] = appointment_id
                self._write_json(self._index_path, index)

                updated = replace(current, start_time=start_time, end_time=end_time)
                rows[position] = _serialize_appointment(updated)
                self._write_customer_or_restore(address, data, snapshot)
            return updated

    def delete_appointment(self, appointment_id: str) -> None:
        with self._index_lock:
            address = self._load_index()["owners"].get(appointment_id)
        if address is None:
            return
        with self._get_lock(address):
            data = self._load_customer_data(address)
            if data is None:
                return
            rows = data.get("appointments", [])
            removed = [raw for raw in rows if raw["id"] == appointment_id]
            data["appointments"] = [raw for raw in rows if raw["id"] != appointment_id]
            with self._index_lock:
                index = self._load_index()
                snapshot = copy.deepcopy(index)
                for raw in removed:
                    index["slots"].pop(_slot_key(raw["calendar_id"], _parse_dt(raw["start_time"])), None)
                index["owners"].pop(appointment_id, None)
                self._write_json(self._index_path, index)
                self._write_customer_or_restore(address, data, snapshot)

    def list_future_appointments(self, customer_address: str, now: datetime, limit: int) -> list[Appointment]:
        with self._get_lock(customer_address):
            data = self._load_customer_data(customer_address)
        if data is None:
            return []
        upcoming = [_deserialize_appointment(raw) for raw in data.get("appointments", [])]
        upcoming = [a for a in upcoming if a.start_time > now]
        upcoming.sort(key=lambda a: a.start_time)
        return upcoming[:limit]

    def append_turn(self, customer_address: str, role: TurnRole, content: str, created_at: float) -> None:
        with self._get_lock(customer_address):
            data = self._require_customer_data(customer_address)
            turns = data.get("turns", [])
            turns.append({"role": role.value, "content": content, "ts": created_at})
            # Keep last N turns
            if len(turns) > self._history_limit:
                turns = turns[-self._history_limit :]
            data["turns"] = turns
            self._write_json(self._get_file_path(customer_address), data)

    def get_recent_turns(self, customer_address: str, limit: int = 10) -> list[ConversationTurn]:
        with self._get_lock(customer_address):
            data = self._load_customer_data(customer_address)
        if data is None:
            return []
        return [
            ConversationTurn(
                customer_address=customer_address,
                role=TurnRole(raw["role"]),
                content=raw["content"],
                created_at=raw["ts"],
            )
            for raw in data.get("turns", [])[-limit:]
        ]

    def mark_processed(self, message_id: str) -> bool:
        with self._processed_lock:
            data = self._read_json(self._processed_path) if self._processed_path.exists() else {"ids": []}
            ids = data.get("ids", [])
            if message_id in ids:
                return False
            ids.append(message_id)
            data["ids"] = ids[-PROCESSED_IDS_LIMIT:]
            self._write_json(self._processed_path, data)
            return True

    def _require_customer_data(self, address: str) -> dict[str, Any]:
        data = self._load_customer_data(address)
        if data is None:
            raise RepositoryError(f"Unknown customer {address}")
        return data

    def _write_customer_or_restore(self, address: str, data: dict[str, Any], index_snapshot: dict[str, Any]) -> None:
        """Write the customer file; if that fails, put the slot index back as it was. Caller holds the index lock."""
        try:
            self._write_json(self._get_file_path(address), data)
        except RepositoryError:
            self._write_json(self._index_path, index_snapshot)
            raise

    def _owner_of(self, appointment_id: str) -> str:
        with self._index_lock:
            address = self._load_index()["owners"].get(appointment_id)
        if address is None:
            raise RepositoryError(f"Unknown appointment {appointment_id}")
        return address


def _slot_key(calendar_id: str, start_time: datetime) -> str:
    return f"{calendar_id}|{start_time.astimezone(timezone.utc).isoformat()}"


def _parse_dt(value: str) -> datetime:
    return datetime.fromisoformat(value)


def _serialize_customer(customer: Customer) -> dict[str, Any]:
    return {
        "address": customer.address,
        "onboarding_state": customer.onboarding_state.value,
        "display_name": customer.display_name,
        "contact_email": customer.contact_email,
        "created_at": customer.created_at,
        "updated_at": customer.updated_at,
    }


def _deserialize_customer(data: dict[str, Any]) -> Customer:
    try:
        state = OnboardingState(data.get("onboarding_state", OnboardingState.NEW.value))
    except ValueError:
        state = OnboardingState.NEW
    return Customer(
        address=data["address"],
        onboarding_state=state,
        display_name=data.get("display_name"),
        contact_email=data.get("contact_email"),
        created_at=data.get("created_at"),
        updated_at=data.get("updated_at"),
    )


def _serialize_appointment(appointment: Appointment) -> dict[str, Any]:
    return {
        "id": appointment.id,
        "customer_address": appointment.customer_address,
        "start_time": appointment.start_time.isoformat(),
        "end_time": appointment.end_time.isoformat(),
        "external_event_id": appointment.external_event_id,
        "calendar_id": appointment.calendar_id,
        "created_at": appointment.created_at,
    }


def _deserialize_appointment(data: dict[str, Any]) -> Appointment:
    return Appointment(
        id=data["id"],
        customer_address=data["customer_address"],
        start_time=_parse_dt(data["start_time"]),
        end_time=_parse_dt(data["end_time"]),
        external_event_id=data["external_event_id"],
        calendar_id=data["calendar_id"],
        created_at=data.get("created_at"),
    )
