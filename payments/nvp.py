"""
PayPal NVP Currency Rewriter

Rewrites outgoing PayPal NVP requests for stores whose base currency (KWD)
PayPal does not accept:
- Forces the wire currency to USD
- Converts every amount field from the store currency to USD
- Recomputes ITEMAMT / AMT from the converted line items so PayPal's
  totals cross-check (error 10413) still passes
- Publishes a ConversionRecord for the order-history audit attacher
"""

import functools
import re
from collections.abc import Callable, MutableMapping
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

import structlog
from opentelemetry import trace

from core.logging import BusinessEvents
from core.metrics import record_rewrite
from core.registry import Registry, get_registry
from payments.currency import CurrencyConverter, StoreContext
from payments.schemas import CONVERSION_MARKER, CONVERSION_REGISTRY_KEY, ConversionRecord

log = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)

SOURCE_CURRENCY = "KWD"
TARGET_CURRENCY = "USD"

RELEVANT_METHODS = frozenset(
    {
        "SetExpressCheckout",
        "GetExpressCheckoutDetails",
        "DoExpressCheckoutPayment",
        "DoAuthorization",
        "DoCapture",
        "DoVoid",
        "RefundTransaction",
        "DoDirectPayment",
    }
)

# Read-only call: currency codes are forced, amounts are left alone.
READ_ONLY_METHOD = "GetExpressCheckoutDetails"

TOP_LEVEL_AMOUNT_FIELDS = (
    "AMT",
    "ITEMAMT",
    "TAXAMT",
    "SHIPPINGAMT",
    "HANDLINGAMT",
    "INSURANCEAMT",
    "SHIPDISCAMT",
)
LOGGED_AMOUNT_FIELDS = ("AMT", "ITEMAMT", "TAXAMT", "SHIPPINGAMT")

LINE_AMOUNT_RE = re.compile(r"^L_.*AMT\d+$")
LINE_ITEM_INDEX_RE = re.compile(r"^L_AMT(\d+)$")
PAYMENT_REQUEST_AMOUNT_RE = re.compile(
    r"^PAYMENTREQUEST_\d+_(AMT|ITEMAMT|TAXAMT|SHIPPINGAMT|HANDLINGAMT|INSURANCEAMT|SHIPDISCAMT)$"
)
PAYMENT_REQUEST_CURRENCY_RE = re.compile(r"^PAYMENTREQUEST_\d+_CURRENCYCODE$")

TWO_PLACES = Decimal("0.01")

NvpRequest = MutableMapping[str, Any]


def is_scalar(value: Any) -> bool:
    return isinstance(value, (str, int, float, bool, Decimal))


def to_decimal(value: Any) -> Decimal:
    """Best-effort numeric read of an NVP value; anything unusable is zero."""
    if isinstance(value, bool):
        return Decimal(int(value))
    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, (int, float, str)):
        try:
            number = Decimal(str(value).strip())
        except InvalidOperation:
            return Decimal("0")
    else:
        return Decimal("0")
    return number if number.is_finite() else Decimal("0")


def round_amount(value: Decimal) -> Decimal:
    """Round to cents; amounts too large to hold in cents count as zero."""
    try:
        return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return Decimal("0")


def format_amount(value: Any) -> str:
    """Fixed two-decimal NVP amount: ``1234.5`` -> ``"1234.50"``."""
    return f"{round_amount(to_decimal(value)):f}"


def is_amount_field(key: str) -> bool:
    return (
        bool(LINE_AMOUNT_RE.match(key))
        or key in TOP_LEVEL_AMOUNT_FIELDS
        or bool(PAYMENT_REQUEST_AMOUNT_RE.match(key))
        or key == "MAXAMT"
    )


def line_item_indexes(request: NvpRequest) -> list[int]:
    """Indexes of the line items present, discovered from ``L_AMT{n}`` keys."""
    indexes = []
    for key, value in request.items():
        if not is_scalar(value):
            continue
        match = LINE_ITEM_INDEX_RE.match(str(key))
        if match:
            indexes.append(int(match.group(1)))
    return sorted(indexes)


def _is_blank(value: Any) -> bool:
    # "0" and 0 count as blank too, so a zero placeholder gets the default name
    if isinstance(value, str):
        return value.strip() in ("", "0")
    return value is None or value is False or value == 0


def _charge(request: NvpRequest, key: str, fallback_key: str) -> Decimal:
    value = request.get(key)
    if value is None:
        value = request.get(fallback_key)
    if not is_scalar(value):
        return Decimal("0")
    return to_decimal(value)


class NvpCurrencyRewriter:
    """
    Intercepts PayPal NVP calls before they hit the transport.

    The rewriter is a no-op unless the store's base currency is KWD and the
    method is one of RELEVANT_METHODS. It never raises on malformed request
    data; converter and store errors are left to the caller.
    """

    def __init__(
        self,
        converter: CurrencyConverter,
        store: StoreContext,
        registry: Registry | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.converter = converter
        self.store = store
        self.registry = registry if registry is not None else get_registry()
        self.clock = clock or (lambda: datetime.now(UTC))

    def is_applicable(self, method: str) -> bool:
        if self.store.get_base_currency_code() != SOURCE_CURRENCY:
            return False
        return method in RELEVANT_METHODS

    def before_call(self, method: str, request: NvpRequest) -> tuple[str, NvpRequest]:
        """Rewrite ``request`` in place and return ``(method, request)``."""
        if not self.is_applicable(method):
            log.debug(BusinessEvents.NVP_REWRITE_SKIPPED, method=method)
            record_rewrite(method, "skipped")
            return method, request

        with tracer.start_as_current_span("paypal.nvp.rewrite") as span:
            span.set_attribute("paypal.method", method)

            if method == READ_ONLY_METHOD:
                self.force_currency(request)
                span.set_attribute("paypal.converted", False)
                log.info(BusinessEvents.NVP_CURRENCY_FORCED, method=method)
                record_rewrite(method, "currency_only")
                return method, request

            source_currency = request.get("PAYMENTREQUEST_0_CURRENCYCODE")
            if source_currency is None:
                source_currency = request.get("CURRENCYCODE")

            self.force_currency(request)

            payment_action = request.get("PAYMENTACTION")
            if is_scalar(payment_action):
                request["PAYMENTREQUEST_0_PAYMENTACTION"] = str(payment_action)

            # A request already in USD (shopper paying in USD) is never
            # converted a second time.
            if str(source_currency or "").upper() == TARGET_CURRENCY:
                span.set_attribute("paypal.converted", False)
                log.info(
                    BusinessEvents.NVP_CURRENCY_FORCED,
                    method=method,
                    source_currency=source_currency,
                )
                record_rewrite(method, "already_usd")
                return method, request

            comment = self.convert_amounts(request)
            self.recompute_totals(request)

            note = request.get("NOTETEXT")
            existing = str(note) if is_scalar(note) else ""
            request["NOTETEXT"] = " ".join(part for part in (existing, comment) if part)

            self.publish(method, request, comment)
            span.set_attribute("paypal.converted", True)
            record_rewrite(method, "converted")

        return method, request

    def force_currency(self, request: NvpRequest) -> None:
        request["CURRENCYCODE"] = TARGET_CURRENCY
        request["PAYMENTREQUEST_0_CURRENCYCODE"] = TARGET_CURRENCY
        for key in list(request.keys()):
            if PAYMENT_REQUEST_CURRENCY_RE.match(str(key)):
                request[key] = TARGET_CURRENCY

    def convert_amounts(self, request: NvpRequest) -> str:
        """
        Convert every amount field to USD in place.

        Returns:
            The human-readable conversion log used for NOTETEXT and the audit
            comment. Only the major totals are itemised to keep it short.
        """
        lines = [
            f"{CONVERSION_MARKER}.",
            f"Original amounts in {SOURCE_CURRENCY}, sent to PayPal in {TARGET_CURRENCY}.",
        ]
        converted = {}

        for key, value in list(request.items()):
            if not is_scalar(value):
                continue
            key = str(key)
            if not is_amount_field(key):
                continue

            amount = self.converter.convert(float(to_decimal(value)), None, TARGET_CURRENCY)
            request[key] = format_amount(amount)
            converted[key] = request[key]

            if key in LOGGED_AMOUNT_FIELDS:
                lines.append(
                    f"{key}: {SOURCE_CURRENCY} {value} → {TARGET_CURRENCY} {request[key]}."
                )

        log.info(BusinessEvents.NVP_AMOUNTS_CONVERTED, fields=converted)
        return " ".join(lines)

    def recompute_totals(self, request: NvpRequest) -> None:
        """
        Rebuild ITEMAMT and AMT from the converted line items and charges.

        Each field is rounded on its own during conversion, so the converted
        ITEMAMT can drift from the sum of converted line items by a cent;
        PayPal rejects such requests.
        """
        item_total = Decimal("0")

        for idx in line_item_indexes(request):
            name_key = f"L_NAME{idx}"
            number_key = f"L_NUMBER{idx}"
            if _is_blank(request.get(name_key)):
                request[name_key] = f"Product {idx + 1}"
            if _is_blank(request.get(number_key)):
                request[number_key] = f"SKU-{idx + 1}"

            unit_value = request.get(f"L_AMT{idx}")
            qty_value = request.get(f"L_QTY{idx}")
            unit = to_decimal(unit_value) if is_scalar(unit_value) else Decimal("0")
            qty = to_decimal(qty_value) if is_scalar(qty_value) else Decimal("1")
            item_total += unit * qty

        item_amt = round_amount(item_total)

        shipping = _charge(request, "SHIPPINGAMT", "PAYMENTREQUEST_0_SHIPPINGAMT")
        tax = _charge(request, "TAXAMT", "PAYMENTREQUEST_0_TAXAMT")
        handling = _charge(request, "HANDLINGAMT", "PAYMENTREQUEST_0_HANDLINGAMT")
        insurance = _charge(request, "INSURANCEAMT", "PAYMENTREQUEST_0_INSURANCEAMT")
        ship_disc = _charge(request, "SHIPDISCAMT", "PAYMENTREQUEST_0_SHIPDISCAMT")

        order_amt = round_amount(
            item_amt + shipping + tax + handling + insurance - ship_disc
        )

        request["ITEMAMT"] = format_amount(item_amt)
        request["PAYMENTREQUEST_0_ITEMAMT"] = format_amount(item_amt)
        request["AMT"] = format_amount(order_amt)
        request["PAYMENTREQUEST_0_AMT"] = format_amount(order_amt)

        request["PAYMENTREQUEST_0_TAXAMT"] = format_amount(tax)
        request["PAYMENTREQUEST_0_SHIPPINGAMT"] = format_amount(shipping)
        # Zero-valued optional charges are left off the wire
        if handling != 0:
            request["PAYMENTREQUEST_0_HANDLINGAMT"] = format_amount(handling)
        if insurance != 0:
            request["PAYMENTREQUEST_0_INSURANCEAMT"] = format_amount(insurance)
        if ship_disc != 0:
            request["PAYMENTREQUEST_0_SHIPDISCAMT"] = format_amount(ship_disc)

    def publish(self, method: str, request: NvpRequest, comment: str) -> ConversionRecord:
        token = request.get("TOKEN")
        record = ConversionRecord(
            comment=comment,
            original_currency=SOURCE_CURRENCY,
            target_currency=TARGET_CURRENCY,
            timestamp=self.clock(),
            method=method,
            token=str(token) if is_scalar(token) else "",
            request_snapshot=dict(request),
        )
        self.registry.set(CONVERSION_REGISTRY_KEY, record, overwrite=True)
        log.info(
            BusinessEvents.NVP_CONVERSION_PUBLISHED,
            method=method,
            token=record.token,
            amt=request.get("AMT"),
        )
        return record


def intercept_nvp_call(call: Callable, rewriter: NvpCurrencyRewriter) -> Callable:
    """Wrap a host ``call(method, request)`` transport so the rewriter runs first."""

    @functools.wraps(call)
    def wrapper(method: str, request: NvpRequest, *args, **kwargs):
        method, request = rewriter.before_call(method, request)
        return call(method, request, *args, **kwargs)

    return wrapper
