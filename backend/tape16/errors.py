"""
Service Errors
==============
Every error the service raises on purpose carries its HTTP status and a
public message. The HTTP boundary renders them as {"ok": false, "error": ...}.
"""

from http import HTTPStatus


class SerialServiceError(Exception):
    """Base class for errors surfaced through the JSON envelope"""

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR
    default_message: str = "Internal error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(SerialServiceError):
    status_code = HTTPStatus.BAD_REQUEST
    default_message = "Invalid request"


class Unauthenticated(SerialServiceError):
    # 400, not 401: the webhook endpoint should not advertise itself as authenticated
    status_code = HTTPStatus.BAD_REQUEST
    default_message = "Invalid signature"


class Unconfigured(SerialServiceError):
    status_code = HTTPStatus.INTERNAL_SERVER_ERROR
    default_message = "Service not configured"


class UpstreamError(SerialServiceError):
    status_code = HTTPStatus.BAD_GATEWAY
    default_message = "Stripe API error"


class LedgerError(SerialServiceError):
    status_code = HTTPStatus.INTERNAL_SERVER_ERROR
    default_message = "Order ledger unavailable"
