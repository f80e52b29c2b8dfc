"""Stay pricing.

All amounts are integer kobo (1 NGN = 100 kobo). Taxes are computed with
``Decimal`` and rounded half-up to the nearest kobo.
"""
import math
from dataclasses import asdict, dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from .exceptions import InvalidDateRange, InvalidRate

KOBO_PER_NAIRA = 100
VAT_RATE = Decimal("0.075")
SERVICE_RATE = Decimal("0.05")

SECONDS_PER_DAY = 24 * 60 * 60


@dataclass(frozen=True)
class Quote:
    nights: int
    subtotal: int
    vat: int
    service_charge: int
    total: int

    def as_dict(self):
        return asdict(self)


def round_kobo(amount):
    return int(Decimal(amount).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def naira_to_kobo(amount):
    return round_kobo(Decimal(str(amount)) * KOBO_PER_NAIRA)


def count_nights(check_in, check_out):
    """Whole nights between two dates; a partial day is billed as a full night."""
    if isinstance(check_in, datetime) != isinstance(check_out, datetime):
        raise InvalidDateRange("check_in and check_out must be the same kind of value")
    if not isinstance(check_in, date) or not isinstance(check_out, date):
        raise InvalidDateRange("check_in and check_out must be calendar dates")
    if check_out <= check_in:
        raise InvalidDateRange()

    if isinstance(check_in, datetime):
        return math.ceil((check_out - check_in).total_seconds() / SECONDS_PER_DAY)
    return (check_out - check_in).days


def compute_quote(nightly_rate_kobo, check_in, check_out):
    if isinstance(nightly_rate_kobo, bool) or not isinstance(nightly_rate_kobo, (int, Decimal)):
        raise InvalidRate()
    if isinstance(nightly_rate_kobo, Decimal) and not nightly_rate_kobo.is_finite():
        raise InvalidRate()
    if nightly_rate_kobo <= 0:
        raise InvalidRate()

    nights = count_nights(check_in, check_out)
    subtotal = round_kobo(Decimal(nightly_rate_kobo) * nights)
    vat = round_kobo(subtotal * VAT_RATE)
    service_charge = round_kobo(subtotal * SERVICE_RATE)
    return Quote(
        nights=nights,
        subtotal=subtotal,
        vat=vat,
        service_charge=service_charge,
        total=subtotal + vat + service_charge,
    )
