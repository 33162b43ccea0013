"""
PayPal currency availability.

PayPal methods are only offered for quotes in a currency on this list. KWD
is not a PayPal currency; it is listed so the PayPal buttons stay visible in
KWD stores, and the NVP rewriter sends those payments in USD.
"""

PAYPAL_SUPPORTED_CURRENCY_CODES = (
    "AUD",
    "CAD",
    "CZK",
    "DKK",
    "EUR",
    "HKD",
    "HUF",
    "ILS",
    "JPY",
    "MXN",
    "NOK",
    "NZD",
    "PLN",
    "GBP",
    "RUB",
    "SGD",
    "SEK",
    "CHF",
    "TWD",
    "THB",
    "USD",
    "KWD",  # converted to USD at the gateway layer
)


def is_currency_supported(currency_code: str | None) -> bool:
    """Whether PayPal methods should be available for ``currency_code``."""
    if not currency_code:
        return False
    return currency_code.upper() in PAYPAL_SUPPORTED_CURRENCY_CODES
