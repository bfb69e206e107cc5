# tape16/schemas/orders.py
# ============================================================================
# TAPE 16 SERIAL SERVICE - ORDER LEDGER SCHEMAS
# ============================================================================
# Ledger records are stored as camelCase JSON; Python code uses snake_case.
# ============================================================================

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# SECTION 1: LEDGER RECORDS
# ============================================================================

class OrderRecord(BaseModel):
    """One record per completed purchase."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    order_id: str
    email: str
    serial: str
    payment_reference: Optional[str] = None
    source: str
    revoked: bool = False
    revoked_at: Optional[datetime] = None
    revoked_reason: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    def revoke(self, reason: str) -> "OrderRecord":
        """Return the revoked copy. Only the revocation fields change."""
        return self.model_copy(update={
            "revoked": True,
            "revoked_at": utcnow(),
            "revoked_reason": reason,
        })


# ============================================================================
# SECTION 2: ENGINE RESULTS
# ============================================================================

class IssueResult(BaseModel):
    """Outcome of issue_or_reuse"""
    order: OrderRecord
    issued: bool


class RevokeResult(BaseModel):
    """Outcome of a refund-class event"""
    event_type: str
    order_id: Optional[str] = None
    newly_revoked: bool = False
    ignored: bool = False
    reason: Optional[str] = None  # why the event was ignored


class ResendResult(BaseModel):
    """Outcome of a self-service resend. message is the same in every branch."""
    message: str
    email_queued: bool = False
