"""Per-record validation and duplicate (date overlap) detection"""
import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Sequence, Tuple

from .config import MAX_GUESTS, MAX_STAY_DAYS, MIN_GUEST_NAME_LENGTH
from .errors import StoreError
from .models import ExistingReservation, NormalizedRecord, ValidationOutcome, ValidationSummary
from .store import ReservationStore

logger = logging.getLogger(__name__)


def _parse_iso(value: str) -> Optional[date]:
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        return None


def _as_decimal(value) -> Optional[Decimal]:
    if value is None or isinstance(value, bool) or value == "":
        return None
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


class ReservationValidator:
    """Checks normalized records and looks for overlapping stored reservations"""

    def __init__(self, store: ReservationStore,
                 max_stay_days: int = MAX_STAY_DAYS,
                 max_guests: int = MAX_GUESTS):
        self.store = store
        self.max_stay_days = max_stay_days
        self.max_guests = max_guests

    def check_record(self, record: NormalizedRecord) -> Tuple[bool, List[str]]:
        """
        Run every field check and collect all errors

        Returns:
            (is_valid, errors). Advisory errors (long stay, review flags)
            are listed without making the record invalid.
        """
        errors: List[str] = []
        is_valid = True

        def hard(message: str):
            nonlocal is_valid
            is_valid = False
            errors.append(message)

        if len(record.guest_name.strip()) < MIN_GUEST_NAME_LENGTH:
            hard("Guest name missing or too short")

        check_in = _parse_iso(record.check_in_date)
        check_out = _parse_iso(record.check_out_date)
        if not record.check_in_date:
            hard("Check-in date missing")
        elif check_in is None:
            hard("Check-in date invalid")
        if not record.check_out_date:
            hard("Check-out date missing")
        elif check_out is None:
            hard("Check-out date invalid")

        if check_in and check_out:
            if check_in > check_out:
                hard("Check-in date is after check-out date")
            else:
                nights = (check_out - check_in).days
                if nights > self.max_stay_days:
                    errors.append(f"Stay is unusually long ({nights} days)")

        guests = _as_decimal(record.num_guests)
        if guests is None or guests <= 0 or guests > self.max_guests:
            hard("Number of guests invalid")

        amount = _as_decimal(record.total_amount)
        if amount is None or amount <= 0:
            hard("Total amount invalid")

        if not record.property_id:
            hard("Property id missing")
        else:
            try:
                if self.store.get_property(record.property_id) is None:
                    hard(f"Property with id {record.property_id} not found")
            except StoreError as e:
                logger.error("Property lookup failed for id %s: %s", record.property_id, e)
                hard("Could not verify property")

        errors.extend(record.review_flags)
        return is_valid, errors

    def find_duplicate(self, record: NormalizedRecord) -> Optional[ExistingReservation]:
        """First stored reservation of the same property whose dates overlap, if any"""
        check_in = _parse_iso(record.check_in_date)
        check_out = _parse_iso(record.check_out_date)
        if not record.property_id or check_in is None or check_out is None:
            return None

        overlapping = self.store.find_overlapping_reservations(record.property_id, check_in, check_out)
        if overlapping:
            logger.info("Duplicate found for %r: reservation %s", record.guest_name, overlapping[0].id)
            return overlapping[0]
        return None

    def validate(self, record: NormalizedRecord) -> ValidationOutcome:
        is_valid, errors = self.check_record(record)

        conflicting = None
        try:
            conflicting = self.find_duplicate(record)
        except StoreError as e:
            logger.error("Duplicate check failed for %r: %s", record.guest_name, e)
            errors.append("Could not check for duplicates")

        return ValidationOutcome(
            record=record,
            is_valid=is_valid,
            is_duplicate=conflicting is not None,
            conflicting_record=conflicting,
            errors=tuple(errors),
        )

    def validate_all(self, records: Sequence[NormalizedRecord]) -> List[ValidationOutcome]:
        logger.info("Validating %d reservations", len(records))
        return [self.validate(record) for record in records]


def summarize(outcomes: Sequence[ValidationOutcome]) -> ValidationSummary:
    return ValidationSummary(
        valid=sum(1 for o in outcomes if o.is_valid and not o.is_duplicate),
        duplicates=sum(1 for o in outcomes if o.is_duplicate),
        invalid=sum(1 for o in outcomes if not o.is_valid and not o.is_duplicate),
        total=len(outcomes),
    )
