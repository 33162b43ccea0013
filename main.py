"""
PayPal USD Bridge - Entry Point

Wires the two host interceptors around a shared registry:
- NvpCurrencyRewriter runs before every PayPal NVP call
- OrderHistoryAuditAttacher runs after an order status history entry is added

The host calls ``build_plugins()`` once per process and hooks the returned
interceptors into its NVP transport and order model.
"""

from dataclasses import dataclass
from decimal import Decimal

import structlog

from core.dependencies import get_settings, init_settings
from core.logging import configure_logging
from core.registry import Registry, get_registry
from core.tracing import init_tracer
from payments.currency import (
    CurrencyConverter,
    RateTableConverter,
    StaticStoreContext,
    StoreContext,
)
from payments.nvp import NvpCurrencyRewriter
from payments.order_history import OrderHistoryAuditAttacher

log = structlog.get_logger(__name__)


@dataclass
class PluginSet:
    rewriter: NvpCurrencyRewriter
    attacher: OrderHistoryAuditAttacher
    registry: Registry


def build_plugins(
    converter: CurrencyConverter | None = None,
    store: StoreContext | None = None,
    registry: Registry | None = None,
    **settings_overrides,
) -> PluginSet:
    """
    Initialise settings, logging and tracing and build both interceptors.

    Args:
        converter: Host exchange-rate service. Defaults to a rate table holding
            the configured KWD→USD rate.
        store: Host store accessor. Defaults to the configured base currency.
        registry: Shared mailbox between the interceptors. Defaults to the
            process-wide registry.
        **settings_overrides: Passed to Settings.

    Returns:
        PluginSet with the rewriter, the attacher and the registry they share
    """
    init_settings(**settings_overrides)
    settings = get_settings()

    configure_logging(settings.LOG_LEVEL, settings.ENVIRONMENT)
    init_tracer(settings.OTEL_SERVICE_NAME)

    if store is None:
        store = StaticStoreContext(settings.BASE_CURRENCY_CODE)
    if converter is None:
        converter = RateTableConverter(
            {("KWD", "USD"): Decimal(str(settings.KWD_USD_RATE))},
            store_currency=store.get_base_currency_code(),
        )
    if registry is None:
        registry = get_registry()

    plugins = PluginSet(
        rewriter=NvpCurrencyRewriter(converter, store, registry=registry),
        attacher=OrderHistoryAuditAttacher(
            registry=registry, paypal_method=settings.PAYPAL_EXPRESS_METHOD
        ),
        registry=registry,
    )
    log.info(
        "bridge.started",
        app=settings.APP_NAME,
        environment=settings.ENVIRONMENT,
        base_currency=store.get_base_currency_code(),
    )
    return plugins
