"""
Currency collaborators consumed by the NVP rewriter.

The host shop owns exchange rates and store configuration. The rewriter only
depends on the two protocols below; the concrete classes are the defaults
used when the bridge is wired from settings.
"""

from decimal import Decimal
from typing import Protocol


class CurrencyConverter(Protocol):
    """Protocol for exchange-rate conversion."""

    def convert(
        self, amount: float, from_currency: str | None, to_currency: str
    ) -> float | Decimal:
        """Convert ``amount``; ``from_currency=None`` means the store currency."""
        ...


class StoreContext(Protocol):
    def get_base_currency_code(self) -> str: ...


class UnknownRateError(LookupError):
    pass


class RateTableConverter:
    """
    Converter backed by a fixed rate table.

    Rates are keyed by ``(from, to)`` pairs. Identity conversions always
    succeed with a rate of 1.
    """

    def __init__(self, rates: dict[tuple[str, str], Decimal], store_currency: str):
        self.rates = {
            (src.upper(), dst.upper()): Decimal(str(rate))
            for (src, dst), rate in rates.items()
        }
        self.store_currency = store_currency.upper()

    def convert(
        self, amount: float, from_currency: str | None, to_currency: str
    ) -> Decimal:
        src = (from_currency or self.store_currency).upper()
        dst = to_currency.upper()
        if src == dst:
            return Decimal(str(amount))
        try:
            rate = self.rates[(src, dst)]
        except KeyError:
            raise UnknownRateError(f"No exchange rate for {src}->{dst}") from None
        return Decimal(str(amount)) * rate


class StaticStoreContext:
    def __init__(self, base_currency_code: str):
        self.base_currency_code = base_currency_code

    def get_base_currency_code(self) -> str:
        return self.base_currency_code
