"""Currency -- standard currency definitions and precision-derived rounding."""

from dataclasses import dataclass
from decimal import Decimal

from ledger_kernel.db.types import round_money


@dataclass(frozen=True)
class CurrencyInfo:
    """Code, name and minor-unit precision of a single currency."""

    code: str
    name: str
    precision: int
    symbol: str | None = None

    @property
    def smallest_unit(self) -> Decimal:
        return Decimal(1).scaleb(-self.precision)

    def quantize(self, amount: Decimal) -> Decimal:
        """Round ``amount`` half-to-even to this currency's precision."""
        return round_money(amount, self.precision)


DEFAULT_PRECISION = 2

# Currencies whose minor unit differs from two decimal places
NON_STANDARD_PRECISION: dict[str, int] = {
    "JPY": 0,
    "KRW": 0,
    "VND": 0,
    "HUF": 0,
    "KWD": 3,
    "BHD": 3,
    "OMR": 3,
    "BTC": 8,
    "ETH": 18,
}

STANDARD_CURRENCIES: tuple[CurrencyInfo, ...] = (
    CurrencyInfo("USD", "US Dollar", 2, "$"),
    CurrencyInfo("EUR", "Euro", 2, "€"),
    CurrencyInfo("GBP", "Pound Sterling", 2, "£"),
    CurrencyInfo("CHF", "Swiss Franc", 2, "CHF"),
    CurrencyInfo("CAD", "Canadian Dollar", 2, "$"),
    CurrencyInfo("AUD", "Australian Dollar", 2, "$"),
    CurrencyInfo("SGD", "Singapore Dollar", 2, "$"),
    CurrencyInfo("INR", "Indian Rupee", 2, "₹"),
    CurrencyInfo("IDR", "Indonesian Rupiah", 2, "Rp"),
    CurrencyInfo("JPY", "Japanese Yen", 0, "¥"),
    CurrencyInfo("KRW", "South Korean Won", 0, "₩"),
    CurrencyInfo("VND", "Vietnamese Dong", 0, "₫"),
    CurrencyInfo("HUF", "Hungarian Forint", 0, "Ft"),
    CurrencyInfo("KWD", "Kuwaiti Dinar", 3, "KD"),
    CurrencyInfo("BHD", "Bahraini Dinar", 3, "BD"),
    CurrencyInfo("OMR", "Omani Rial", 3, "OMR"),
    CurrencyInfo("BTC", "Bitcoin", 8, "₿"),
    CurrencyInfo("ETH", "Ether", 18, "Ξ"),
)


def default_precision(code: str) -> int:
    """Minor-unit precision for a currency code when none is given."""
    return NON_STANDARD_PRECISION.get(code.upper(), DEFAULT_PRECISION)
