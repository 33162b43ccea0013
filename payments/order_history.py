"""
Order History Audit Attacher

Adds the KWD→USD conversion details to a PayPal Express order's status
history, once per order, after the host has created a history entry. The
details come only from the ConversionRecord the NVP rewriter left in the
shared registry.

Attaching is best-effort: nothing here may break order placement, so every
failure is logged and reported as an AuditOutcome instead of raised.
"""

from typing import Any

import structlog
from opentelemetry import trace

from core.logging import BusinessEvents
from core.metrics import record_audit
from core.registry import Registry, get_registry
from payments.schemas import (
    CONVERSION_MARKER,
    CONVERSION_REGISTRY_KEY,
    AuditOutcome,
    AuditResult,
    ConversionRecord,
)

log = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)

PAYPAL_EXPRESS_METHOD = "paypal_express"


def _additional_information(payment: Any) -> dict[str, Any]:
    info = getattr(payment, "additional_information", None)
    return info if isinstance(info, dict) else {}


def get_paypal_transaction_id(payment: Any) -> str:
    """
    Resolve the PayPal transaction id recorded for a payment.

    Checked in order: the payment's last transaction id, the
    ``paypal_transaction_id`` / ``txn_id`` additional information keys, and
    the first stored transaction carrying a txn id.
    """
    last_trans_id = getattr(payment, "last_trans_id", None)
    if last_trans_id:
        return str(last_trans_id)

    info = _additional_information(payment)
    candidate = info.get("paypal_transaction_id")
    if candidate is None:
        candidate = info.get("txn_id")
    if candidate:
        return str(candidate)

    for transaction in getattr(payment, "transactions", None) or []:
        txn_id = getattr(transaction, "txn_id", None)
        if txn_id:
            return str(txn_id)

    return ""


class OrderHistoryAuditAttacher:
    def __init__(
        self,
        registry: Registry | None = None,
        paypal_method: str = PAYPAL_EXPRESS_METHOD,
    ):
        self.registry = registry if registry is not None else get_registry()
        self.paypal_method = paypal_method

    def after_add_status_history(self, subject: Any, result: Any, history: Any) -> Any:
        """After-hook for ``order.add_status_history(history)``; returns ``result``."""
        self.attach(subject, history)
        return result

    def attach(self, order: Any, history: Any) -> AuditResult:
        with tracer.start_as_current_span("paypal.audit.attach") as span:
            result = self._attach(order, history)
            span.set_attribute("paypal.audit.outcome", result.outcome.value)

        record_audit(result.outcome.value)
        if result.outcome is AuditOutcome.attached:
            log.info(
                BusinessEvents.AUDIT_ATTACHED,
                order_id=getattr(order, "id", None),
                comment=result.comment,
            )
        elif result.outcome is AuditOutcome.failed:
            log.warning(
                BusinessEvents.AUDIT_FAILED,
                order_id=getattr(order, "id", None),
                error=result.error,
            )
        else:
            log.debug(
                BusinessEvents.AUDIT_SKIPPED,
                order_id=getattr(order, "id", None),
                outcome=result.outcome.value,
            )
        return result

    def _attach(self, order: Any, history: Any) -> AuditResult:
        try:
            comment = history.comment
            comment_text = "" if comment is None else str(comment)
        except Exception as e:
            return AuditResult(outcome=AuditOutcome.failed, error=str(e), order=order)
        if not comment_text:
            return AuditResult(outcome=AuditOutcome.skipped_not_applicable, order=order)

        payment = getattr(order, "payment", None) if order is not None else None
        if payment is None or getattr(payment, "method", None) != self.paypal_method:
            return AuditResult(outcome=AuditOutcome.skipped_not_applicable, order=order)

        conversion_info = self.extract_conversion_info(payment)
        if not conversion_info:
            return AuditResult(outcome=AuditOutcome.skipped_not_applicable, order=order)

        if self.has_conversion_comment(order):
            return AuditResult(
                outcome=AuditOutcome.skipped_duplicate,
                comment=conversion_info,
                order=order,
            )

        try:
            entry = order.add_comment_to_status_history(conversion_info, False, False)
            entry.is_customer_notified = False
        except Exception as e:
            return AuditResult(
                outcome=AuditOutcome.failed,
                comment=conversion_info,
                error=str(e),
                order=order,
            )

        return AuditResult(
            outcome=AuditOutcome.attached, comment=conversion_info, order=order
        )

    def extract_conversion_info(self, payment: Any) -> str:
        """
        Build the audit comment for a payment.

        Only a pending registry record counts. A conversion note PayPal
        echoed into the payment's ``paypal_transaction_data`` is not proof
        that this request converted anything, so it is never used.
        """
        record = self.registry.get(CONVERSION_REGISTRY_KEY)
        if isinstance(record, ConversionRecord) and record.comment:
            comment = record.comment
            transaction_id = get_paypal_transaction_id(payment)
            if transaction_id:
                comment += f" PayPal Transaction ID: {transaction_id}"
            elif record.token:
                comment += f" PayPal Token: {record.token}"
            return comment
        return ""

    @staticmethod
    def has_conversion_comment(order: Any) -> bool:
        for item in getattr(order, "status_histories", None) or []:
            try:
                comment = item.comment
                if comment and CONVERSION_MARKER in str(comment):
                    return True
            except Exception:
                # unreadable entries cannot be the audit comment
                continue
        return False
