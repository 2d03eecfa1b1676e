"""
Console email sender adapter - Implements EmailSender protocol.

This module provides a console-based implementation of the domain's
email sender port, logging one-time passcodes for development.
"""

import logging

from src.domain.ports import ChallengePurpose

logger = logging.getLogger(__name__)


class ConsoleEmailSender:
    """
    Implements EmailSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - prints verification codes to stdout.
    """

    def send_verification_code(self, email: str, code: str, purpose: ChallengePurpose) -> None:
        """
        Log verification code to console (simulates email delivery).

        In production, this would be replaced with an SMTP adapter.

        Args:
            email: Recipient email address
            code: one-time passcode
            purpose: what the code was issued for
        """
        logger.info("[VERIFICATION] Email: %s Purpose: %s Code: %s", email, purpose.value, code)
