"""
Notification delivery.

This module provides:
- The ``Notifier`` protocol consumed by the watch service
- Email delivery over SMTP with a plain-text and an HTML part
- Log-only delivery for dry runs
"""

import asyncio
import html
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Protocol

from watcher.exceptions import NotificationError
from utilities.logger import get_logger

logger = get_logger(__name__)


class Notifier(Protocol):
    """Delivers a human-readable message."""

    async def notify(self, subject: str, body: str) -> None:
        """Deliver the message or raise NotificationError."""
        ...


def render_html(body: str) -> str:
    """Render a plain-text body as a single HTML paragraph."""
    return "<p>" + html.escape(body).replace("\n", "<br>") + "</p>"


class EmailNotifier:
    """Sends notifications as email through an SMTP server."""

    def __init__(
        self,
        smtp_host: str,
        smtp_port: int,
        smtp_user: str,
        smtp_password: str,
        sender_email: str,
        recipient_email: str,
        sender_name: str = "Website Monitor",
        use_ssl: bool = False,
        verify_tls: bool = True,
        timeout: float = 30.0
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.sender_email = sender_email
        self.recipient_email = recipient_email
        self.sender_name = sender_name
        self.use_ssl = use_ssl
        self.verify_tls = verify_tls
        self.timeout = timeout
        self.logger = logger.bind(component="email_notifier")

    def build_message(self, subject: str, body: str) -> MIMEMultipart:
        """Create the multipart/alternative message."""
        message = MIMEMultipart("alternative")
        message["From"] = formataddr((self.sender_name, self.sender_email))
        message["To"] = self.recipient_email
        message["Subject"] = subject

        message.attach(MIMEText(body, "plain", "utf-8"))
        message.attach(MIMEText(render_html(body), "html", "utf-8"))
        return message

    def _tls_context(self) -> ssl.SSLContext:
        context = ssl.create_default_context()
        if not self.verify_tls:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    def _send(self, message: MIMEMultipart) -> None:
        """Blocking SMTP session; runs in a worker thread."""
        context = self._tls_context()
        if self.use_ssl:
            server = smtplib.SMTP_SSL(
                self.smtp_host, self.smtp_port, timeout=self.timeout, context=context
            )
        else:
            server = smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout)

        with server:
            if not self.use_ssl:
                server.ehlo()
                if server.has_extn("starttls"):
                    server.starttls(context=context)
                    server.ehlo()
            server.login(self.smtp_user, self.smtp_password)
            server.send_message(message)

    async def notify(self, subject: str, body: str) -> None:
        """
        Send one email.

        Raises:
            NotificationError: On any SMTP, socket or encoding failure
        """
        message = self.build_message(subject, body)
        try:
            await asyncio.to_thread(self._send, message)
        except (smtplib.SMTPException, OSError, UnicodeError, ValueError) as e:
            raise NotificationError(subject, f"SMTP error sending '{subject}': {e}") from e

        self.logger.info(
            "Email sent",
            subject=subject,
            recipient=self.recipient_email
        )


class LogNotifier:
    """Writes notifications to the log instead of delivering them."""

    def __init__(self):
        self.logger = logger.bind(component="log_notifier")

    async def notify(self, subject: str, body: str) -> None:
        self.logger.warning(
            "Watcher notification",
            subject=subject,
            message=body
        )
