"""Currency -- ISO 4217 registry for the currencies quotes are priced in."""

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
    def quantum(self) -> Decimal:
        """Smallest representable amount, used with Decimal.quantize()."""
        if self.decimal_places == 0:
            return Decimal("1")
        return Decimal("0." + "0" * (self.decimal_places - 1) + "1")


class CurrencyRegistry:
    """Registry of supported ISO 4217 currencies with their decimal places."""

    _CURRENCIES: ClassVar[dict[str, CurrencyInfo]] = {
        # Zero decimal currencies
        "VND": CurrencyInfo("VND", 0, "Vietnamese Dong"),
        "JPY": CurrencyInfo("JPY", 0, "Japanese Yen"),
        "KRW": CurrencyInfo("KRW", 0, "South Korean Won"),
        # Two decimal currencies
        "USD": CurrencyInfo("USD", 2, "US Dollar"),
        "IDR": CurrencyInfo("IDR", 2, "Indonesian Rupiah"),
        "EUR": CurrencyInfo("EUR", 2, "Euro"),
        "GBP": CurrencyInfo("GBP", 2, "Pound Sterling"),
        "AUD": CurrencyInfo("AUD", 2, "Australian Dollar"),
        "SGD": CurrencyInfo("SGD", 2, "Singapore Dollar"),
        "THB": CurrencyInfo("THB", 2, "Thai Baht"),
        "CNY": CurrencyInfo("CNY", 2, "Yuan Renminbi"),
        "HKD": CurrencyInfo("HKD", 2, "Hong Kong Dollar"),
        # Three decimal currencies
        "KWD": CurrencyInfo("KWD", 3, "Kuwaiti Dinar"),
        "BHD": CurrencyInfo("BHD", 3, "Bahraini Dinar"),
    }

    DEFAULT_DECIMAL_PLACES: ClassVar[int] = 2

    @classmethod
    def is_valid(cls, code: str) -> bool:
        """Check if a currency code is supported."""
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
        info = cls.get_info(code)
        return info.decimal_places if info else cls.DEFAULT_DECIMAL_PLACES

    @classmethod
    def get_quantum(cls, code: str) -> Decimal:
        """Rounding quantum derived from the currency's decimal places."""
        info = cls.get_info(code)
        if info is not None:
            return info.quantum
        return Decimal(1).scaleb(-cls.DEFAULT_DECIMAL_PLACES)

    @classmethod
    def all_codes(cls) -> frozenset[str]:
        return frozenset(cls._CURRENCIES.keys())
