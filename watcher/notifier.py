"""
E-mail notifier.
Sends change notifications through an SMTP relay. Delivery problems are
logged and reported as a False result, never raised to the caller.
"""

import asyncio
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, formatdate, make_msgid
from typing import List, Optional

import structlog

from .exceptions import SendFailure
from .models import Notification
from utilities.config import config

logger = structlog.get_logger(__name__)


class EmailNotifier:
    """SMTP notifier with a fixed sender display name."""

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        recipients: Optional[List[str]] = None,
        use_ssl: Optional[bool] = None,
        timeout: Optional[int] = None,
        sender_name: Optional[str] = None,
    ):
        self.host = host or config.smtp_host
        self.port = port or config.smtp_port
        self.username = username if username is not None else config.sender_username
        self.password = password if password is not None else config.sender_password
        self.recipients = recipients if recipients is not None else config.get_receivers()
        self.use_ssl = use_ssl if use_ssl is not None else config.smtp_use_ssl
        self.timeout = timeout or config.smtp_timeout
        self.sender_name = sender_name or config.sender_name
        self.logger = logger.bind(component="email_notifier")

    def is_configured(self) -> bool:
        """Check if sender credentials and recipients are present."""
        return bool(self.host and self.username and self.recipients)

    def build_message(self, notification: Notification) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = notification.subject
        msg["From"] = formataddr((self.sender_name, self.username))
        msg["To"] = ", ".join(notification.recipients)
        msg["Date"] = formatdate(localtime=False)
        msg["Message-ID"] = make_msgid()
        msg.attach(MIMEText(notification.html_body, "html", "utf-8"))
        return msg

    def _create_connection(self) -> smtplib.SMTP:
        context = ssl.create_default_context()
        if self.use_ssl:
            server = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout, context=context)
        else:
            server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
            server.starttls(context=context)

        if self.username and self.password:
            server.login(self.username, self.password)

        return server

    def deliver(self, notification: Notification) -> str:
        """
        Send synchronously.

        Returns:
            The Message-ID of the sent mail

        Raises:
            SendFailure: On any SMTP or socket error
        """
        msg = self.build_message(notification)
        try:
            with self._create_connection() as server:
                server.send_message(msg, to_addrs=notification.recipients)
        except smtplib.SMTPAuthenticationError as e:
            raise SendFailure(f"Authentication failed: {e}") from e
        except smtplib.SMTPRecipientsRefused as e:
            raise SendFailure(f"Recipients refused: {e}") from e
        except (smtplib.SMTPException, OSError) as e:
            raise SendFailure(f"SMTP error: {e}") from e
        return msg["Message-ID"]

    async def send(self, subject: str, html_body: str) -> bool:
        """
        Send a notification without blocking the event loop.

        Args:
            subject: Subject line
            html_body: HTML body

        Returns:
            True when the relay accepted the mail
        """
        if not self.is_configured():
            self.logger.error("Email notifier is not configured", host=self.host)
            return False

        notification = Notification(subject=subject, html_body=html_body, recipients=self.recipients)

        try:
            message_id = await asyncio.get_running_loop().run_in_executor(
                None, self.deliver, notification
            )
        except SendFailure as e:
            self.logger.error("Failed to send email", subject=subject, error=str(e))
            return False

        self.logger.info(
            "Email sent",
            subject=subject,
            recipients=len(notification.recipients),
            message_id=message_id
        )
        return True
