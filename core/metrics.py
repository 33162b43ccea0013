"""
Prometheus metrics for the PayPal USD bridge.

Counters are registered on the default prometheus_client registry so the
host process can expose them next to its own metrics.
"""

from prometheus_client import Counter

nvp_rewrites_total = Counter(
    "paypal_usd_nvp_rewrites_total",
    "NVP calls seen by the currency rewriter",
    ["method", "result"],  # result: skipped, currency_only, already_usd, converted
)

audit_comments_total = Counter(
    "paypal_usd_audit_comments_total",
    "Order history audit attempts by outcome",
    ["outcome"],
)


def record_rewrite(method: str, result: str) -> None:
    nvp_rewrites_total.labels(method=method, result=result).inc()


def record_audit(outcome: str) -> None:
    audit_comments_total.labels(outcome=outcome).inc()
