"""Outbound email over SMTP (aiosmtplib).

Two messages leave the system: the registration one-time code, and
contact-form submissions forwarded to a developer's registered address.
"""

from email.message import EmailMessage
from html import escape

import aiosmtplib
import structlog

from devfolio.config import settings

logger = structlog.get_logger()


class MailError(Exception):
    """Raised when a message could not be delivered to the SMTP server."""


class Mailer:
    """Sends HTML email through the configured SMTP relay."""

    def __init__(
        self,
        hostname: str,
        port: int,
        username: str,
        password: str,
        sender: str,
        start_tls: bool = True,
    ):
        self.hostname = hostname
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.start_tls = start_tls

    async def send(self, to: str, subject: str, html: str) -> None:
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self.sender
        message["To"] = to
        message.set_content(html, subtype="html")

        try:
            smtp_client = aiosmtplib.SMTP(
                hostname=self.hostname,
                port=self.port,
                username=self.username or None,
                password=self.password or None,
                use_tls=False,
                start_tls=self.start_tls,
            )
            async with smtp_client:
                await smtp_client.send_message(message)
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error("devfolio.mail_failed", to=to, subject=subject, error=str(e))
            raise MailError(str(e)) from e

        logger.info("devfolio.mail_sent", to=to, subject=subject)


def otp_email(otp: str, expire_minutes: int) -> tuple[str, str]:
    """Subject and HTML body for a registration code."""
    html = (
        f"<p>Enter <b>{escape(otp)}</b> in the app to verify your email address "
        f"and complete your registration.</p>"
        f"<p>This code expires in <b>{expire_minutes} minutes</b>.</p>"
    )
    return "Verify your email", html


def contact_email(first_name: str, last_name: str, email: str, message: str) -> tuple[str, str]:
    """Subject and HTML body for a contact-form submission."""
    html = (
        f"<p><strong>First Name:</strong> {escape(first_name)}</p>"
        f"<p><strong>Last Name:</strong> {escape(last_name)}</p>"
        f"<p><strong>Email By:</strong> {escape(email)}</p>"
        f"<p><strong>Message:</strong></p>"
        f"<p>{escape(message)}</p>"
    )
    return "Contact Form Submission", html


_mailer = Mailer(
    hostname=settings.smtp_host,
    port=settings.smtp_port,
    username=settings.smtp_username,
    password=settings.smtp_password,
    sender=settings.smtp_sender,
    start_tls=settings.smtp_start_tls,
)


def get_mailer() -> Mailer:
    """FastAPI dependency — the process-wide mailer."""
    return _mailer
