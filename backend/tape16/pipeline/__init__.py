# Pipeline - issuance, revocation, webhook routing
# =================================================

from .issuance import (
    IssuanceEngine,
    GENERIC_RESEND_MESSAGE,
    RECOVERY_SOURCE,
    clean_email,
    clean_string,
)
from .revocation import (
    RevocationEngine,
    revocation_reason,
)
from .webhooks import (
    WebhookProcessor,
    WebhookRouter,
)

__all__ = [
    # Issuance
    "IssuanceEngine",
    "GENERIC_RESEND_MESSAGE",
    "RECOVERY_SOURCE",
    "clean_email",
    "clean_string",
    # Revocation
    "RevocationEngine",
    "revocation_reason",
    # Webhooks
    "WebhookProcessor",
    "WebhookRouter",
]
