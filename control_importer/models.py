"""Data types flowing through the import pipeline"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple, Union


def _decimal(value: Any) -> Decimal:
    try:
        return Decimal(str(value)) if value not in (None, "") else Decimal("0")
    except InvalidOperation:
        return Decimal("0")


def _money(value: Decimal) -> str:
    return f"{value.quantize(Decimal('0.01'))}"


def ranges_overlap(check_in_a: date, check_out_a: date,
                   check_in_b: date, check_out_b: date) -> bool:
    """Inclusive-endpoint overlap: sharing a single day counts as overlapping."""
    return check_in_a <= check_out_b and check_out_a >= check_in_b


@dataclass(frozen=True)
class RawDocumentText:
    text: str
    source_name: str = ""


@dataclass(frozen=True)
class ControlFileDetectionResult:
    is_control_file: bool
    declared_property_name: str = ""


@dataclass
class Property:
    """A catalog row with the per-property defaults used for fee computation"""
    id: int
    name: str
    cleaning_cost: Decimal = Decimal("0")
    check_in_fee: Decimal = Decimal("0")
    commission: Decimal = Decimal("0")  # percentage
    team_payment: Decimal = Decimal("0")
    active: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Property":
        return cls(
            id=int(data["id"]),
            name=str(data["name"]),
            cleaning_cost=_decimal(data.get("cleaningCost")),
            check_in_fee=_decimal(data.get("checkInFee")),
            commission=_decimal(data.get("commission")),
            team_payment=_decimal(data.get("teamPayment")),
            active=bool(data.get("active", True)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "cleaningCost": _money(self.cleaning_cost),
            "checkInFee": _money(self.check_in_fee),
            "commission": _money(self.commission),
            "teamPayment": _money(self.team_payment),
            "active": self.active,
        }


@dataclass(frozen=True)
class PropertyCandidate:
    property_id: int
    canonical_name: str
    match_score: float


@dataclass(frozen=True)
class NormalizedRecord:
    """An extracted row with canonical dates, amounts and platform label"""
    guest_name: str = ""
    check_in_date: str = ""
    check_out_date: str = ""
    num_guests: Union[int, str, None] = None
    total_amount: str = "0.00"
    platform: str = "Direct"
    notes: str = ""
    phone: str = ""
    email: str = ""
    property_id: Optional[int] = None
    review_flags: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "guestName": self.guest_name,
            "checkInDate": self.check_in_date,
            "checkOutDate": self.check_out_date,
            "numGuests": self.num_guests,
            "totalAmount": self.total_amount,
            "platform": self.platform,
            "notes": self.notes,
            "phoneNumber": self.phone,
            "email": self.email,
            "propertyId": self.property_id,
            "reviewFlags": list(self.review_flags),
        }


@dataclass
class ExistingReservation:
    id: int
    property_id: int
    guest_name: str
    check_in_date: str
    check_out_date: str
    num_guests: int = 1
    total_amount: str = "0.00"
    platform: str = "Direct"
    status: str = "confirmed"
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExistingReservation":
        known = {"id", "propertyId", "guestName", "checkInDate", "checkOutDate",
                 "numGuests", "totalAmount", "platform", "status"}
        return cls(
            id=int(data["id"]),
            property_id=int(data["propertyId"]),
            guest_name=str(data.get("guestName", "")),
            check_in_date=str(data["checkInDate"]),
            check_out_date=str(data["checkOutDate"]),
            num_guests=int(data.get("numGuests") or 1),
            total_amount=str(data.get("totalAmount", "0.00")),
            platform=str(data.get("platform") or "Direct"),
            status=str(data.get("status") or "confirmed"),
            extra={k: v for k, v in data.items() if k not in known},
        )

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data.update({
            "id": self.id,
            "propertyId": self.property_id,
            "guestName": self.guest_name,
            "checkInDate": self.check_in_date,
            "checkOutDate": self.check_out_date,
            "numGuests": self.num_guests,
            "totalAmount": self.total_amount,
            "platform": self.platform,
            "status": self.status,
        })
        return data

    def overlaps(self, check_in: date, check_out: date) -> bool:
        return ranges_overlap(
            date.fromisoformat(self.check_in_date),
            date.fromisoformat(self.check_out_date),
            check_in,
            check_out,
        )


@dataclass(frozen=True)
class ValidationOutcome:
    record: NormalizedRecord
    is_valid: bool
    is_duplicate: bool
    conflicting_record: Optional[ExistingReservation] = None
    errors: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ValidationSummary:
    valid: int
    duplicates: int
    invalid: int
    total: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "valid": self.valid,
            "duplicates": self.duplicates,
            "invalid": self.invalid,
            "total": self.total,
        }


@dataclass(frozen=True)
class PersistableReservation:
    property_id: int
    guest_name: str
    check_in_date: str
    check_out_date: str
    num_guests: int
    total_amount: str
    platform: str
    platform_fee: str
    cleaning_fee: str
    check_in_fee: str
    commission_fee: str
    team_payment: str
    net_amount: str
    notes: str = ""
    contact_phone: str = ""
    contact_email: str = ""
    status: str = "confirmed"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "propertyId": self.property_id,
            "guestName": self.guest_name,
            "checkInDate": self.check_in_date,
            "checkOutDate": self.check_out_date,
            "numGuests": self.num_guests,
            "totalAmount": self.total_amount,
            "status": self.status,
            "platform": self.platform,
            "platformFee": self.platform_fee,
            "cleaningFee": self.cleaning_fee,
            "checkInFee": self.check_in_fee,
            "commissionFee": self.commission_fee,
            "teamPayment": self.team_payment,
            "netAmount": self.net_amount,
            "notes": self.notes,
            "contactPhone": self.contact_phone,
            "contactEmail": self.contact_email,
        }


@dataclass
class PersistenceResult:
    """Outcome of the sequential create loop"""
    created: List[ExistingReservation] = field(default_factory=list)
    failed: List[Dict[str, Any]] = field(default_factory=list)
