"""
One-time passcode service - Implements ChallengeService protocol.

Codes are numeric strings drawn from the secrets module, valid for a
fixed window, single use. Persistence and delivery are delegated to a
ChallengeRepository and an EmailSender.
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Protocol

from src.domain.models import Challenge
from src.domain.ports import ChallengePurpose, EmailSender

logger = logging.getLogger(__name__)


class ChallengeRepository(Protocol):
    """Persistence port for issued passcodes."""

    def save(self, challenge: Challenge) -> None: ...

    def invalidate(self, username: str) -> int:
        """Invalidate every active challenge for `username`; return the count."""
        ...

    def consume(self, username: str, purpose: ChallengePurpose, code: str) -> bool:
        """Mark the latest active challenge used if `code` matches it."""
        ...


class OneTimeCodeService:
    """
    Implements ChallengeService protocol.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(
        self,
        repository: ChallengeRepository,
        email_sender: EmailSender,
        code_length: int = 6,
        ttl_seconds: int = 300,
    ) -> None:
        self._repository = repository
        self._email_sender = email_sender
        self._code_length = code_length
        self._ttl = timedelta(seconds=ttl_seconds)

    def invalidate_existing(self, username: str) -> None:
        count = self._repository.invalidate(username)
        if count:
            logger.debug("Invalidated %d challenge(s) for %s", count, username)

    def generate(self, username: str, email: str, purpose: ChallengePurpose) -> Challenge:
        return Challenge(
            username=username,
            email=email,
            purpose=purpose,
            code=self._generate_code(),
            expires_at=datetime.now(timezone.utc) + self._ttl,
        )

    def persist(self, challenge: Challenge) -> None:
        self._repository.save(challenge)

    def dispatch(self, challenge: Challenge) -> None:
        self._email_sender.send_verification_code(challenge.email, challenge.code, challenge.purpose)

    def validate(self, username: str, purpose: ChallengePurpose, code: str) -> bool:
        code = code.strip()
        if len(code) != self._code_length or not code.isdigit():
            return False
        return self._repository.consume(username, purpose, code)

    def _generate_code(self) -> str:
        """
        Generate a cryptographically secure numeric code.

        Returns string to preserve leading zeros.
        """
        return "".join(secrets.choice("0123456789") for _ in range(self._code_length))
