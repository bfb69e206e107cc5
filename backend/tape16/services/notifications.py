"""
Serial Email Notifications
==========================
Best-effort delivery of the serial to the buyer via SendGrid.

dispatch() reports whether a send was attempted or queued, never whether it
was delivered. Issuance does not depend on it: the serial is already in the
ledger, and /resend-serial exists to recover from failed sends.

pip install sendgrid structlog
"""

import html
from typing import Optional

import structlog
from fastapi import BackgroundTasks
from fastapi.concurrency import run_in_threadpool
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

EMAIL_SUBJECT = "Your TAPE 16 Serial Number"


def build_serial_html(serial: str, order_id: str) -> str:
    return f"""
    <div style="font-family:Arial,sans-serif;line-height:1.5;color:#101420">
      <h2 style="margin:0 0 12px;">Thanks for purchasing TAPE 16</h2>
      <p style="margin:0 0 12px;">Your serial number:</p>
      <p style="margin:0 0 16px;font-size:20px;font-weight:700;letter-spacing:0.08em;">{html.escape(serial)}</p>
      <p style="margin:0 0 8px;">Order ID: <code>{html.escape(order_id)}</code></p>
    </div>
    """


def build_serial_text(serial: str, order_id: str) -> str:
    return "\n".join([
        "Thanks for purchasing TAPE 16.",
        "",
        f"Serial: {serial}",
        f"Order ID: {order_id}",
    ])


class NotificationDispatcher:
    """
    One interface, two call conventions:
    - background given: send is queued on the response's BackgroundTasks
    - background omitted: send runs in the threadpool and is awaited
    """

    def __init__(
        self,
        api_key: str = "",
        from_email: str = "",
        client: Optional[SendGridAPIClient] = None,
    ):
        self.from_email = from_email
        self._client = client or (SendGridAPIClient(api_key) if api_key else None)
        self._logger = structlog.get_logger().bind(component="notifications")

    @property
    def configured(self) -> bool:
        return self._client is not None and bool(self.from_email)

    async def dispatch(
        self,
        to: str,
        serial: str,
        order_id: str,
        background: Optional[BackgroundTasks] = None,
    ) -> bool:
        to_email = (to or "").strip().lower()
        if "@" not in to_email or not serial or not order_id:
            return False
        if not self.configured:
            return False

        if background is not None:
            background.add_task(self.send, to_email, serial, order_id)
            return True
        return await run_in_threadpool(self.send, to_email, serial, order_id)

    def send(self, to: str, serial: str, order_id: str) -> bool:
        """
        Blocking SendGrid call. Runs in the threadpool: queued sync background
        tasks go there, and dispatch() hands the inline path to it.
        Provider failures are logged and reported as False.
        """
        log = self._logger.bind(order_id=order_id, to=to)
        message = Mail(
            from_email=self.from_email,
            to_emails=to,
            subject=EMAIL_SUBJECT,
            html_content=build_serial_html(serial, order_id),
            plain_text_content=build_serial_text(serial, order_id),
        )
        try:
            response = self._client.send(message)
        except Exception as e:
            # python_http_client raises HTTPError subclasses for 4xx/5xx
            log.error("email_failed", error=str(e), error_type=type(e).__name__)
            return False

        if response.status_code >= 300:
            log.error("email_failed", status=response.status_code, body=str(response.body)[:200])
            return False

        log.info("email_sent", message_id=response.headers.get("X-Message-Id"))
        return True
