"""Challenge adapters - One-time passcode issuance."""

from .otp import ChallengeRepository, OneTimeCodeService

__all__ = ["ChallengeRepository", "OneTimeCodeService"]
