"""
Unit tests for domain ports, models and exceptions.

Tests verify:
- ResultKind is a closed, JSON-friendly enum with stable messages
- Trusted-device cache key format
- Exceptions are properly structured
- Domain purity (zero framework imports)
"""

import json
import subprocess
from enum import Enum

import pytest

from src.domain.exceptions import AccountConflict, AuthError, HandleAllocationExhausted
from src.domain.models import Account, AuthResult, UserProfile
from src.domain.ports import ChallengePurpose, ResultKind, trusted_device_key


class TestResultKindEnum:
    """Tests for ResultKind enum."""

    def test_result_kind_is_str_enum(self) -> None:
        assert issubclass(ResultKind, Enum)
        assert issubclass(ResultKind, str)

    def test_result_kind_json_serializable(self) -> None:
        assert json.dumps(ResultKind.VERIFICATION_CODE_SENT) == '"verification_code_sent"'

    def test_every_kind_has_a_message(self) -> None:
        for kind in ResultKind:
            assert kind.message

    def test_messages_are_unique(self) -> None:
        messages = [kind.message for kind in ResultKind]
        assert len(messages) == len(set(messages))

    def test_success_kinds(self) -> None:
        assert ResultKind.USER_LOGIN_SUCCESSFULLY.is_success
        assert ResultKind.USER_REGISTERED_SUCCESSFULLY.is_success
        assert ResultKind.EMAIL_VERIFIED_SUCCESSFULLY.is_success
        assert not ResultKind.VERIFICATION_CODE_SENT.is_success
        assert not ResultKind.INVALID_VERIFICATION_CODE.is_success
        assert not ResultKind.SOMETHING_WENT_WRONG.is_success


class TestAuthResult:
    def test_failure_has_no_profile(self) -> None:
        result = AuthResult(ResultKind.INVALID_PASSWORD)
        assert result.profile is None
        assert result.succeeded is False

    def test_profile_from_account(self) -> None:
        account = Account(username="alice", email="alice@example.com", handle="alicesmith1")
        profile = UserProfile.from_account(account, ["admin"], "tok")
        result = AuthResult(ResultKind.USER_LOGIN_SUCCESSFULLY, profile)

        assert result.succeeded is True
        assert profile.roles == ("admin",)
        assert profile.token == "tok"


class TestTrustedDeviceKey:
    def test_key_format(self) -> None:
        assert trusted_device_key("alice", "device-1") == "trusted-device:alicedevice-1"


class TestChallengePurpose:
    def test_purposes(self) -> None:
        assert {p.value for p in ChallengePurpose} == {
            "registration",
            "login",
            "forgot_password",
            "verify_email",
        }


class TestExceptions:
    def test_hierarchy(self) -> None:
        assert issubclass(AccountConflict, AuthError)
        assert issubclass(HandleAllocationExhausted, AuthError)

    def test_account_conflict_carries_field(self) -> None:
        exc = AccountConflict("handle", "alicesmith1")
        assert exc.field == "handle"
        assert "alicesmith1" in str(exc)


class TestDomainPurity:
    """Domain layer must not import web, database or cache frameworks."""

    @pytest.mark.parametrize(
        "pattern",
        ["from fastapi", "import fastapi", "from pydantic", "from psycopg", "import redis", "import jwt"],
    )
    def test_no_framework_imports_in_domain(self, pattern: str) -> None:
        result = subprocess.run(
            ["grep", "-r", pattern, "src/domain/"],
            capture_output=True,
            text=True,
        )
        assert result.returncode != 0, f"Framework import found: {result.stdout}"
