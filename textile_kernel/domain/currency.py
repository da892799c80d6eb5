"""Currency -- ISO 4217 registry and precision-derived rounding."""

from dataclasses import dataclass
from decimal import Decimal
from typing import ClassVar


@dataclass(frozen=True)
class CurrencyInfo:
    """Information about a single ISO 4217 currency."""

    code: str
    decimal_places: int
    name: str

    @property
    def rounding_tolerance(self) -> Decimal:
        """Smallest representable unit, derived from decimal places."""
        if self.decimal_places == 0:
            return Decimal("1")
        return Decimal("0." + "0" * (self.decimal_places - 1) + "1")

    @property
    def quantize_string(self) -> str:
        """String for Decimal.quantize() to round to this currency's precision."""
        if self.decimal_places == 0:
            return "1"
        return "0." + "0" * self.decimal_places


class CurrencyRegistry:
    """Registry of the ISO 4217 currencies the back office trades in."""

    _CURRENCIES: ClassVar[dict[str, CurrencyInfo]] = {
        # Home currency of the mills
        "PKR": CurrencyInfo("PKR", 2, "Pakistani Rupee"),
        # Regional trading partners
        "INR": CurrencyInfo("INR", 2, "Indian Rupee"),
        "BDT": CurrencyInfo("BDT", 2, "Bangladeshi Taka"),
        "AED": CurrencyInfo("AED", 2, "UAE Dirham"),
        "SAR": CurrencyInfo("SAR", 2, "Saudi Riyal"),
        "CNY": CurrencyInfo("CNY", 2, "Chinese Yuan"),
        "TRY": CurrencyInfo("TRY", 2, "Turkish Lira"),
        # Export invoicing
        "USD": CurrencyInfo("USD", 2, "US Dollar"),
        "EUR": CurrencyInfo("EUR", 2, "Euro"),
        "GBP": CurrencyInfo("GBP", 2, "Pound Sterling"),
        "JPY": CurrencyInfo("JPY", 0, "Japanese Yen"),
        "KWD": CurrencyInfo("KWD", 3, "Kuwaiti Dinar"),
        "OMR": CurrencyInfo("OMR", 3, "Omani Rial"),
    }

    @classmethod
    def is_valid(cls, code: str) -> bool:
        """True if the code is a registered ISO 4217 currency."""
        if not code or not isinstance(code, str):
            return False
        return code.upper().strip() in cls._CURRENCIES

    @classmethod
    def get_info(cls, code: str) -> CurrencyInfo | None:
        if not code or not isinstance(code, str):
            return None
        return cls._CURRENCIES.get(code.upper().strip())

    @classmethod
    def get_decimal_places(cls, code: str) -> int:
        """Decimal places for a currency; unknown codes default to 2."""
        info = cls.get_info(code)
        return info.decimal_places if info else 2

    @classmethod
    def get_rounding_tolerance(cls, code: str) -> Decimal:
        info = cls.get_info(code)
        return info.rounding_tolerance if info else Decimal("0.01")

    @classmethod
    def all_codes(cls) -> frozenset[str]:
        return frozenset(cls._CURRENCIES)
