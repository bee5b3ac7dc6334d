"""
Console email sender adapter - Implements EmailSender protocol.

This module provides a console-based implementation of the domain's
email sender port, logging OTP codes to stdout for development.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleEmailSender:
    """
    Implements EmailSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - prints OTP codes to stdout.
    """

    def send_verification_otp(self, email: str, otp: int, name: str) -> None:
        """
        Log the OTP to console (simulates email delivery).

        The code is logged at INFO level to be visible in container logs.

        Args:
            email: Recipient email address
            otp: 6-digit one-time password
            name: Recipient display name
        """
        logger.info("[VERIFICATION] Email: %s Name: %s OTP: %s", email, name, otp)

    def send_welcome(self, email: str, name: str) -> None:
        """Log the welcome message to console."""
        logger.info("[WELCOME] Email: %s Name: %s", email, name)
