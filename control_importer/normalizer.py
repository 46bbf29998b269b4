"""Normalization of extracted reservation rows: dates, amounts, platform labels"""
import logging
import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Optional, Union

from .config import AMOUNT_REVIEW_THRESHOLD
from .models import NormalizedRecord

logger = logging.getLogger(__name__)

# Year first: 2024-05-01, 2024/5/1, 2024.05.01 (a trailing time part is ignored)
_YMD_PATTERN = re.compile(r'^(\d{4})[/.\-](\d{1,2})[/.\-](\d{1,2})(?:[T\s].*)?$')
# Day first: 01/05/2024, 1-5-24, 01.05.2024
_DMY_PATTERN = re.compile(r'^(\d{1,2})[/.\-](\d{1,2})[/.\-](\d{2}|\d{4})$')

# Larger amounts cannot be a booking total and would overflow fixed-point rounding
MAX_AMOUNT_DIGITS = 15

CANONICAL_PLATFORMS = ("Airbnb", "Booking.com", "VRBO", "Direct", "Other")

# Checked in order, first substring hit wins
_PLATFORM_KEYWORDS = (
    ("airbnb", "Airbnb"),
    ("booking", "Booking.com"),
    ("vrbo", "VRBO"),
    ("homeaway", "VRBO"),
    ("direct", "Direct"),
    ("direto", "Direct"),
)

# Alternative keys seen in extraction output, including the sheet's own headers
_FIELD_ALIASES = {
    "guest_name": ("guestName", "guest_name", "guest", "cliente", "nome", "name"),
    "check_in_date": ("checkInDate", "check_in_date", "check_in", "checkIn", "entrada", "data_entrada"),
    "check_out_date": ("checkOutDate", "check_out_date", "check_out", "checkOut", "saida", "data_saida"),
    "num_guests": ("numGuests", "num_guests", "guests", "hospedes", "guestCount"),
    "total_amount": ("totalAmount", "total_amount", "amount", "valor", "total"),
    "platform": ("platform", "site", "origem", "source"),
    "notes": ("notes", "info", "observacoes"),
    "phone": ("phoneNumber", "phone", "telefone", "contactPhone"),
    "email": ("email", "contactEmail", "guestEmail"),
}


def normalize_date(value: Any) -> str:
    """
    Convert a date in any accepted layout to YYYY-MM-DD

    Accepts DD/MM/YYYY, DD-MM-YYYY, DD.MM.YYYY (two-digit years become 20YY)
    and year-first variants with the same separators. Only range checks are
    applied (day 1-31, month 1-12, year 2000-2100), so 30/02/2024 passes here.

    Returns:
        The canonical date string, or "" when the value cannot be read
    """
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        return value.isoformat()
    if value is None:
        return ""

    text = str(value).strip()
    match = _YMD_PATTERN.match(text)
    if match:
        year, month, day = (int(g) for g in match.groups())
    else:
        match = _DMY_PATTERN.match(text)
        if not match:
            return ""
        day, month, year = (int(g) for g in match.groups())
        if len(match.group(3)) == 2:
            year += 2000

    if not (1 <= day <= 31 and 1 <= month <= 12 and 2000 <= year <= 2100):
        return ""
    return f"{year:04d}-{month:02d}-{day:02d}"


def format_date_for_display(value: str) -> str:
    """YYYY-MM-DD to DD/MM/YYYY; anything unparseable is returned unchanged"""
    if not value:
        return ""
    try:
        parsed = date.fromisoformat(value)
    except ValueError:
        return value
    return parsed.strftime("%d/%m/%Y")


def _clean_amount_text(text: str) -> str:
    cleaned = re.sub(r'[^\d.,]', '', text)
    if '.' in cleaned and ',' in cleaned:
        if cleaned.index('.') < cleaned.index(','):
            # European grouping: 1.234,56
            cleaned = cleaned.replace('.', '').replace(',', '.')
        else:
            # English grouping: 1,234.56
            cleaned = cleaned.replace(',', '')
    elif ',' in cleaned:
        cleaned = cleaned.replace(',', '.')

    if cleaned.count('.') > 1:
        # 1.234.567 is grouping only
        cleaned = cleaned.replace('.', '')
    return cleaned


def normalize_amount(value: Any) -> str:
    """
    Convert a currency value to a fixed-point string with two decimals

    Examples:
        "1.234,56" -> "1234.56", "1234,56" -> "1234.56",
        "-12" -> "12.00", "abc" -> "0.00", 1e30 -> "0.00"
    """
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        text = str(value)
    else:
        text = _clean_amount_text(str(value or ''))

    try:
        amount = Decimal(text)
    except InvalidOperation:
        amount = Decimal("0")
    if not amount.is_finite():
        amount = Decimal("0")
    elif amount and amount.adjusted() >= MAX_AMOUNT_DIGITS:
        logger.warning("Amount %r has more than %d integer digits, treated as 0", value, MAX_AMOUNT_DIGITS)
        amount = Decimal("0")

    # Negative amounts are silently made positive
    amount = abs(amount)
    return f"{amount.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)}"


def needs_manual_review(amount: str) -> bool:
    return Decimal(amount) > AMOUNT_REVIEW_THRESHOLD


def normalize_platform(label: Any) -> str:
    """Map a free-text booking channel onto the closed platform set"""
    text = str(label or '').strip().lower()
    if not text:
        return "Direct"
    for keyword, platform in _PLATFORM_KEYWORDS:
        if keyword in text:
            return platform
    return "Other"


def normalize_guest_count(value: Any) -> Union[int, str, None]:
    """Integral counts become int; anything else is left for validation to reject"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else str(value)
    text = str(value).strip()
    if re.fullmatch(r'\d+(?:[.,]0+)?', text):
        return int(re.split(r'[.,]', text)[0])
    return text or None


def _pick(raw: Dict[str, Any], field_name: str) -> Any:
    for key in _FIELD_ALIASES[field_name]:
        if key in raw and raw[key] not in (None, ""):
            return raw[key]
    return None


def normalize_record(raw: Dict[str, Any], property_id: Optional[int] = None) -> NormalizedRecord:
    """Build a NormalizedRecord from one loosely-typed extracted row"""
    total_amount = normalize_amount(_pick(raw, "total_amount"))

    review_flags = []
    if needs_manual_review(total_amount):
        review_flags.append(
            f"Amount {total_amount} is above {AMOUNT_REVIEW_THRESHOLD} and needs manual review"
        )
        logger.warning("Amount %s for %r flagged for manual review", total_amount, _pick(raw, "guest_name"))

    return NormalizedRecord(
        guest_name=str(_pick(raw, "guest_name") or '').strip(),
        check_in_date=normalize_date(_pick(raw, "check_in_date")),
        check_out_date=normalize_date(_pick(raw, "check_out_date")),
        num_guests=normalize_guest_count(_pick(raw, "num_guests")),
        total_amount=total_amount,
        platform=normalize_platform(_pick(raw, "platform")),
        notes=str(_pick(raw, "notes") or '').strip(),
        phone=str(_pick(raw, "phone") or '').strip(),
        email=str(_pick(raw, "email") or '').strip(),
        property_id=property_id,
        review_flags=tuple(review_flags),
    )
