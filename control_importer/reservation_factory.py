"""Fee computation and assembly of persistable reservations"""
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Mapping

from .config import PLATFORM_FEE_RATES
from .models import NormalizedRecord, PersistableReservation, Property
from .normalizer import normalize_platform

_CENT = Decimal("0.01")


def _round(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def _money(value: Decimal) -> str:
    return f"{_round(value)}"


def canonical_platform(label: str) -> str:
    """Fee-bearing platform for a label; "Other" and empty fall back to Direct"""
    platform = normalize_platform(label)
    return "Direct" if platform == "Other" else platform


class ReservationFactory:
    """Builds reservations ready for the store from validated records"""

    def __init__(self, fee_rates: Mapping[str, Decimal] = PLATFORM_FEE_RATES):
        self.fee_rates = dict(fee_rates)

    def compute_fees(self, total_amount: Decimal, platform: str, prop: Property) -> Dict[str, Decimal]:
        platform_fee = _round(total_amount * self.fee_rates.get(platform, Decimal("0")))
        cleaning_fee = _round(prop.cleaning_cost)
        commission_fee = _round(total_amount * prop.commission / Decimal("100"))
        return {
            "platform_fee": platform_fee,
            "cleaning_fee": cleaning_fee,
            "check_in_fee": prop.check_in_fee,
            "commission_fee": commission_fee,
            "team_payment": prop.team_payment,
            # Commission and team payment are settled with the owner, not netted here
            "net_amount": total_amount - platform_fee - cleaning_fee,
        }

    def build(self, record: NormalizedRecord, prop: Property) -> PersistableReservation:
        if record.property_id != prop.id:
            raise ValueError(f"Record property {record.property_id} does not match property {prop.id}")

        total_amount = Decimal(record.total_amount)
        platform = canonical_platform(record.platform)
        fees = self.compute_fees(total_amount, platform, prop)

        return PersistableReservation(
            property_id=prop.id,
            guest_name=record.guest_name.strip(),
            check_in_date=record.check_in_date,
            check_out_date=record.check_out_date,
            num_guests=int(Decimal(str(record.num_guests))),
            total_amount=_money(total_amount),
            platform=platform,
            platform_fee=_money(fees["platform_fee"]),
            cleaning_fee=_money(fees["cleaning_fee"]),
            check_in_fee=_money(fees["check_in_fee"]),
            commission_fee=_money(fees["commission_fee"]),
            team_payment=_money(fees["team_payment"]),
            net_amount=_money(fees["net_amount"]),
            notes=record.notes,
            contact_phone=record.phone,
            contact_email=record.email,
        )
