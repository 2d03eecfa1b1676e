"""
Shared fixtures for adversarial tests.

Attacks run against the fully wired AuthService from the root conftest,
over the thread-safe in-memory adapters.
"""

from collections.abc import Callable

import pytest

from src.domain.auth import AuthService
from src.domain.models import RegisterInput, RequestContext


@pytest.fixture
def attacker() -> RequestContext:
    return RequestContext(device_id="attacker-device")


@pytest.fixture
def make_registration() -> Callable[..., RegisterInput]:
    def make(username: str, code: str | None = None) -> RegisterInput:
        return RegisterInput(
            username=username,
            email=f"{username}@example.com",
            password="secure123",
            first_name="Alice",
            last_name="Smith",
            otp_code=code,
        )

    return make


@pytest.fixture
def request_code(
    auth_service: AuthService, email_sender, attacker: RequestContext, make_registration
) -> Callable[[str], str]:
    """Run the first registration step for a username and return its passcode."""

    def request(username: str) -> str:
        auth_service.register(make_registration(username), attacker)
        email, code, _ = email_sender.sent[-1]
        assert email == f"{username}@example.com"
        return code

    return request
