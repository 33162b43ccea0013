"""
Payment Schemas Module

Pydantic models passed between the NVP rewriter and the order-history
audit attacher.
"""

from datetime import datetime
from enum import Enum as PyEnum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

CONVERSION_REGISTRY_KEY = "paypal_conversion_data"

# Detects an already-attached audit comment on an order.
CONVERSION_MARKER = "KWD→USD conversion applied via Logicrays_PaypalUsd module"


class ConversionRecord(BaseModel):
    """Audit payload published by the rewriter for one converted NVP call."""

    comment: str
    original_currency: str = "KWD"
    target_currency: str = "USD"
    timestamp: datetime
    method: str
    token: str = ""
    request_snapshot: dict[str, Any]

    model_config = ConfigDict(frozen=True)


class AuditOutcome(str, PyEnum):
    attached = "attached"
    skipped_duplicate = "skipped_duplicate"
    skipped_not_applicable = "skipped_not_applicable"
    failed = "failed"


class AuditResult(BaseModel):
    """What the audit attacher did for one status-history event."""

    outcome: AuditOutcome
    comment: Optional[str] = None
    error: Optional[str] = None
    order: Any = None

    model_config = ConfigDict(arbitrary_types_allowed=True)
