"""Reservation store interface and a JSON-backed in-memory implementation"""
import json
import logging
import threading
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence

from .errors import StoreError
from .models import ExistingReservation, PersistableReservation, Property

logger = logging.getLogger(__name__)


class ReservationStore(Protocol):
    """What the import pipeline needs from the property/reservation store"""

    def get_properties(self) -> List[Property]:
        ...

    def get_property(self, property_id: int) -> Optional[Property]:
        ...

    def find_overlapping_reservations(self, property_id: int,
                                      check_in: date, check_out: date) -> List[ExistingReservation]:
        ...

    def create_reservation(self, reservation: PersistableReservation) -> ExistingReservation:
        ...

    def record_activity(self, activity_type: str, description: str,
                        entity_id: Optional[int] = None, entity_type: Optional[str] = None) -> None:
        ...


class InMemoryStore:
    """Store kept in memory, optionally loaded from and saved to a JSON catalog

    Catalog file format:
        {"properties": [{"id": 1, "name": "Aroeira I", "cleaningCost": "45", ...}],
         "reservations": [{"id": 1, "propertyId": 1, "checkInDate": "2024-05-01", ...}]}
    """

    def __init__(self,
                 properties: Sequence[Property] = (),
                 reservations: Sequence[ExistingReservation] = ()):
        self.properties: Dict[int, Property] = {p.id: p for p in properties}
        self.reservations: List[ExistingReservation] = list(reservations)
        self.activities: List[Dict[str, Any]] = []
        self._next_id = max((r.id for r in self.reservations), default=0) + 1
        # Shared by concurrent requests in the API
        self._lock = threading.RLock()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InMemoryStore":
        return cls(
            properties=[Property.from_dict(p) for p in data.get("properties", [])],
            reservations=[ExistingReservation.from_dict(r) for r in data.get("reservations", [])],
        )

    @classmethod
    def from_file(cls, path: str) -> "InMemoryStore":
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Could not load catalog {path}: {e}") from e
        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "properties": [p.to_dict() for p in self.properties.values()],
                "reservations": [r.to_dict() for r in self.reservations],
            }

    def save(self, path: str) -> None:
        Path(path).write_text(json.dumps(self.to_dict(), indent=2, ensure_ascii=False), encoding='utf-8')

    def get_properties(self) -> List[Property]:
        return [p for p in self.properties.values() if p.active]

    def get_property(self, property_id: int) -> Optional[Property]:
        return self.properties.get(property_id)

    def find_overlapping_reservations(self, property_id: int,
                                      check_in: date, check_out: date) -> List[ExistingReservation]:
        with self._lock:
            return [
                r for r in self.reservations
                if r.property_id == property_id and r.overlaps(check_in, check_out)
            ]

    def create_reservation(self, reservation: PersistableReservation) -> ExistingReservation:
        if reservation.property_id not in self.properties:
            raise StoreError(f"Property {reservation.property_id} does not exist")

        data = reservation.to_dict()
        data["createdAt"] = datetime.now().isoformat(timespec="seconds")
        with self._lock:
            data["id"] = self._next_id
            created = ExistingReservation.from_dict(data)
            self._next_id += 1
            self.reservations.append(created)
        return created

    def record_activity(self, activity_type: str, description: str,
                        entity_id: Optional[int] = None, entity_type: Optional[str] = None) -> None:
        with self._lock:
            self.activities.append({
                "type": activity_type,
                "description": description,
                "entityId": entity_id,
                "entityType": entity_type,
                "createdAt": datetime.now().isoformat(timespec="seconds"),
            })
