import json

import fitz
import pytest

from control_importer.errors import ExtractionError
from control_importer.store import InMemoryStore


CATALOG = {
    "properties": [
        {"id": 1, "name": "Aroeira I", "cleaningCost": "50", "checkInFee": "15",
         "commission": "20", "teamPayment": "30"},
        {"id": 2, "name": "Aroeira II", "cleaningCost": "45", "commission": "15"},
        {"id": 3, "name": "Nazaré T2", "cleaningCost": "35"},
    ],
    "reservations": [
        {"id": 1, "propertyId": 1, "guestName": "Existing Guest",
         "checkInDate": "2024-07-10", "checkOutDate": "2024-07-15",
         "numGuests": 2, "totalAmount": "500.00", "platform": "Airbnb"},
    ],
}

CONTROL_TEXT = """EXCITING LISBON Aroeira I
Mapa de Reservas
Check-in Check-out Noites Cliente Hospedes Pais Site
01/06/2024 05/06/2024 4 Maria Silva 2 PT Airbnb
14/07/2024 18/07/2024 4 John Smith 3 UK Booking
"""


class FakeAdapter:
    """Extraction adapter returning a canned response"""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def extract(self, text, contract):
        self.calls.append((text, contract))
        if self.error is not None:
            raise self.error
        return self.response


def row(guest, check_in, check_out, guests=2, amount="500,00", platform="Airbnb"):
    return {
        "guestName": guest,
        "checkInDate": check_in,
        "checkOutDate": check_out,
        "numGuests": guests,
        "totalAmount": amount,
        "platform": platform,
    }


def make_pdf(text: str) -> bytes:
    doc = fitz.open()
    page = doc.new_page()
    if text:
        page.insert_text((50, 72), text, fontsize=9)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def store():
    return InMemoryStore.from_dict(json.loads(json.dumps(CATALOG)))


@pytest.fixture
def two_row_response():
    return json.dumps({"reservations": [
        row("Maria Silva", "01/06/2024", "05/06/2024"),
        row("John Smith", "14/07/2024", "18/07/2024", guests=3, platform="Booking"),
    ]})


@pytest.fixture
def failing_adapter():
    return FakeAdapter(error=ExtractionError("Extraction service call failed: timed out"))
