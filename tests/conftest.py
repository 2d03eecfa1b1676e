"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- In-memory adapters (credential store, challenges, trust cache)
- A recording email sender that captures issued passcodes
- A fully wired AuthService over the in-memory adapters
"""

import pytest

from src.adapters.cache import InMemoryTrustCache
from src.adapters.challenge import OneTimeCodeService
from src.adapters.repository import InMemoryChallengeRepository, InMemoryCredentialStore
from src.adapters.token import JwtTokenIssuer
from src.domain.auth import AuthService
from src.domain.handles import HandleAllocator
from src.domain.ports import ChallengePurpose
from src.domain.trusted_device import TrustedDeviceValidator

TEST_JWT_SECRET = "test-secret-that-is-long-enough-for-hs256"
TEST_JWT_ISSUER = "breeze-test"


class RecordingEmailSender:
    """EmailSender that keeps every sent code instead of delivering it."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, ChallengePurpose]] = []

    def send_verification_code(self, email: str, code: str, purpose: ChallengePurpose) -> None:
        self.sent.append((email, code, purpose))

    @property
    def last_code(self) -> str:
        return self.sent[-1][1]


@pytest.fixture
def store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest.fixture
def trust_cache() -> InMemoryTrustCache:
    return InMemoryTrustCache()


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def token_issuer() -> JwtTokenIssuer:
    return JwtTokenIssuer(secret=TEST_JWT_SECRET, issuer=TEST_JWT_ISSUER)


@pytest.fixture
def auth_service(
    store: InMemoryCredentialStore,
    trust_cache: InMemoryTrustCache,
    email_sender: RecordingEmailSender,
    token_issuer: JwtTokenIssuer,
) -> AuthService:
    """AuthService wired to in-memory adapters with a fast bcrypt cost."""
    return AuthService(
        store=store,
        challenges=OneTimeCodeService(InMemoryChallengeRepository(), email_sender),
        devices=TrustedDeviceValidator(store=store, cache=trust_cache),
        handles=HandleAllocator(store=store),
        tokens=token_issuer,
        default_role="admin",
        bcrypt_cost=4,
    )
