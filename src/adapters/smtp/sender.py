"""
SMTP email sender adapter - Implements EmailSender protocol.

Sends the OTP and welcome messages through an SMTP server. Credentials
come from Settings at construction time; nothing is read from the
environment at send time.
"""

import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr

from src.config.settings import Settings
from src.domain.exceptions import DeliveryFailed

logger = logging.getLogger(__name__)

OTP_SUBJECT = "Your verification code"
WELCOME_SUBJECT = "Welcome to Task Management"


def render_otp_body(name: str, otp: int, valid_minutes: int) -> str:
    return (
        f"Hello {name},\n\n"
        f"Your verification code is {otp}.\n"
        f"It is valid for {valid_minutes} minutes.\n\n"
        "If you did not request this, please ignore this email.\n"
    )


def render_welcome_body(name: str) -> str:
    return (
        f"Welcome to Task Management, {name}!\n\n"
        "Your email has been verified and your account is ready to use.\n"
    )


class SmtpEmailSender:
    """
    Implements EmailSender protocol via smtplib.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, settings: Settings) -> None:
        self._host = settings.smtp_host
        self._port = settings.smtp_port
        self._user = settings.smtp_user
        self._password = settings.smtp_password
        self._use_ssl = settings.smtp_use_ssl
        from_address = settings.mail_from_address or settings.smtp_user or f"noreply@{settings.smtp_host}"
        self._from = formataddr((settings.mail_from_name, from_address))
        self._otp_valid_minutes = settings.otp_ttl_seconds // 60

    def send_verification_otp(self, email: str, otp: int, name: str) -> None:
        self._send(email, OTP_SUBJECT, render_otp_body(name, otp, self._otp_valid_minutes))

    def send_welcome(self, email: str, name: str) -> None:
        self._send(email, WELCOME_SUBJECT, render_welcome_body(name))

    def _send(self, to_email: str, subject: str, body: str) -> None:
        msg = EmailMessage()
        msg["From"] = self._from
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.set_content(body)

        try:
            smtp_cls = smtplib.SMTP_SSL if self._use_ssl else smtplib.SMTP
            with smtp_cls(self._host, self._port) as smtp:
                if not self._use_ssl:
                    # Opportunistic upgrade: STARTTLS only when the server offers it
                    smtp.ehlo()
                    if smtp.has_extn("starttls"):
                        smtp.starttls()
                        smtp.ehlo()
                if self._user:
                    smtp.login(self._user, self._password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Email sending error: %s - %s", subject, e)
            raise DeliveryFailed(subject) from e

        logger.info("Mail sent: %s", subject)
