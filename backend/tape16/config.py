"""
Service Configuration
=====================
Environment-driven settings for the TAPE 16 serial service.

Loaded once at startup and passed to the app factory; nothing mutates it
afterwards.
"""

import os
from typing import Optional

from pydantic import BaseModel, ConfigDict


def _env(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


class ServiceConfig(BaseModel):
    """Immutable service configuration"""

    model_config = ConfigDict(frozen=True)

    # Server
    service_name: str = "tape16-api"
    host: str = "0.0.0.0"
    port: int = 8000
    env: str = "development"

    # CORS
    allowed_origin: str = ""

    # Stripe
    stripe_webhook_secret: str = ""
    stripe_webhook_tolerance: int = 300  # seconds, 0 disables the replay window
    stripe_secret_key: str = ""
    stripe_price_id: str = ""
    public_site_origin: str = "https://emrmusicgroup.com"

    # SendGrid
    sendgrid_api_key: str = ""
    sendgrid_from_email: str = ""

    # Serials
    serial_prefix: str = "T16"

    # Ledger backend (in-memory when unset)
    redis_url: Optional[str] = None

    @classmethod
    def from_env(cls) -> "ServiceConfig":
        return cls(
            service_name=_env("SERVICE_NAME", "tape16-api"),
            host=_env("HOST", "0.0.0.0"),
            port=int(_env("PORT", "8000")),
            env=_env("ENV", "development"),
            allowed_origin=_env("ALLOWED_ORIGIN"),
            stripe_webhook_secret=_env("STRIPE_WEBHOOK_SECRET"),
            stripe_webhook_tolerance=int(_env("STRIPE_WEBHOOK_TOLERANCE", "300")),
            stripe_secret_key=_env("STRIPE_SECRET_KEY"),
            stripe_price_id=_env("STRIPE_PRICE_ID"),
            public_site_origin=_env("PUBLIC_SITE_ORIGIN", "https://emrmusicgroup.com"),
            sendgrid_api_key=_env("SENDGRID_API_KEY"),
            sendgrid_from_email=_env("SENDGRID_FROM_EMAIL"),
            serial_prefix=_env("SERIAL_PREFIX", "T16"),
            redis_url=_env("REDIS_URL") or None,
        )

    @property
    def debug(self) -> bool:
        return self.env == "development"

    @property
    def webhook_tolerance(self) -> Optional[int]:
        return self.stripe_webhook_tolerance or None


config = ServiceConfig.from_env()
