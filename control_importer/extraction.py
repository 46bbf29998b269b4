"""Contract with the extraction service and handling of its responses"""
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Protocol, Union

from .config import LLM_MAX_TOKENS, LLM_TEMPERATURE
from .errors import ResponseParseError

logger = logging.getLogger(__name__)

ExtractionResponse = Union[str, Dict[str, Any], List[Any]]

_CODE_FENCE = re.compile(r'^\s*```[a-zA-Z0-9_-]*\s*\n?(.*?)\n?\s*```\s*$', re.DOTALL)


@dataclass(frozen=True)
class ExtractionContract:
    """Instructions and output shape requested from the extraction service"""
    system_prompt: str
    fields: Dict[str, str] = field(default_factory=dict)
    temperature: float = LLM_TEMPERATURE
    max_tokens: int = LLM_MAX_TOKENS


CONTROL_FILE_CONTRACT = ExtractionContract(
    system_prompt=(
        "Extract every reservation listed in the following reservation control sheet. "
        "Return only a JSON object of the form {\"reservations\": [...]} with one object "
        "per reservation row and no additional text. Use an empty string for missing values."
    ),
    fields={
        "guestName": "guest or client name",
        "checkInDate": "check-in date in DD/MM/YYYY format",
        "checkOutDate": "check-out date in DD/MM/YYYY format",
        "numGuests": "number of guests",
        "totalAmount": "total reservation amount",
        "platform": "booking platform, e.g. Airbnb, Booking, VRBO or Direct",
        "notes": "additional notes, if any",
        "phoneNumber": "guest phone number, if any",
        "email": "guest e-mail, if any",
    },
)


class ExtractionAdapter(Protocol):
    """Anything that turns document text into candidate reservation rows"""

    def extract(self, text: str, contract: ExtractionContract) -> ExtractionResponse:
        ...


def sanitize_response(raw: ExtractionResponse) -> ExtractionResponse:
    """Strip a Markdown code fence wrapped around a JSON string; other values pass through"""
    if not isinstance(raw, str):
        return raw
    match = _CODE_FENCE.match(raw)
    if match:
        return match.group(1).strip()
    return raw.strip()


def parse_reservations(payload: ExtractionResponse) -> List[Dict[str, Any]]:
    """
    Read the list of reservation rows out of an extraction response

    Args:
        payload: A JSON array, an object with a "reservations" array,
            or a JSON string holding either

    Returns:
        The row objects; an empty list is a valid result

    Raises:
        ResponseParseError: when the payload is not JSON or has neither shape
    """
    if isinstance(payload, str):
        if not payload:
            raise ResponseParseError("Empty response from extraction service")
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            raise ResponseParseError(f"Extraction response is not valid JSON: {e}") from e

    if isinstance(payload, list):
        rows = payload
    elif isinstance(payload, dict) and isinstance(payload.get("reservations"), list):
        rows = payload["reservations"]
    else:
        raise ResponseParseError("Extraction response has no reservations array")

    reservations = []
    for index, row in enumerate(rows):
        if isinstance(row, dict):
            reservations.append(row)
        else:
            logger.warning("Dropping non-object row %d from extraction response", index)
    return reservations
