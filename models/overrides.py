"""
Manual per-day corrections for platform fees and shipping.

Amounts are whole rupees (not paise), keyed by YYYY-MM-DD. A missing key means
"no override"; an override of 0 is a real value.
"""
import logging
import math
from numbers import Real
from typing import Dict, Optional
from utils.dates import is_date_key
from utils.file_manager import read_json, write_json

LOG = logging.getLogger(__name__)

KINDS = ("shipping", "fee")


class JsonOverridePersistence:
    """Stores each override map as its own JSON file in the data directory."""

    FILES = {"shipping": "shipping_overrides.json", "fee": "fee_overrides.json"}

    def load(self, kind: str) -> Dict[str, float]:
        return read_json(self.FILES[kind])

    def save(self, kind: str, overrides: Dict[str, float]):
        write_json(self.FILES[kind], overrides)


class OverrideStore:

    def __init__(self, persistence=None):
        self.persistence = persistence or JsonOverridePersistence()

    def _validate(self, date: str, amount):
        # Date format check is stricter than the admin form, which accepted any key.
        if not is_date_key(date):
            raise ValueError(f"Override date must be YYYY-MM-DD, got {date!r}")
        if isinstance(amount, bool) or not isinstance(amount, Real) or not math.isfinite(amount):
            raise ValueError(f"Override amount must be a finite number, got {amount!r}")

    def _set(self, kind: str, date: str, amount):
        self._validate(date, amount)
        # Negative amounts are allowed; they model refunds or corrections.
        overrides = self.persistence.load(kind)
        overrides[date] = amount
        self.persistence.save(kind, overrides)
        LOG.info("Set %s override for %s to %s", kind, date, amount)
        return amount

    def _get(self, kind: str, date: str) -> Optional[float]:
        return self.persistence.load(kind).get(date)

    def set_shipping_override(self, date: str, amount_in_rupees):
        return self._set("shipping", date, amount_in_rupees)

    def set_fee_override(self, date: str, amount_in_rupees):
        return self._set("fee", date, amount_in_rupees)

    def get_shipping_override(self, date: str) -> Optional[float]:
        return self._get("shipping", date)

    def get_fee_override(self, date: str) -> Optional[float]:
        return self._get("fee", date)

    def shipping_overrides(self) -> Dict[str, float]:
        return dict(self.persistence.load("shipping"))

    def fee_overrides(self) -> Dict[str, float]:
        return dict(self.persistence.load("fee"))
