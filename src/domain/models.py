"""
Domain models - Accounts, request inputs and flow results.

Plain dataclasses only; persistence adapters map them to rows.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from .ports import ChallengePurpose, ResultKind


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Account:
    """A user record as seen by the orchestrator."""

    username: str
    email: str
    first_name: str = ""
    last_name: str = ""
    handle: str = ""
    gender: str | None = None
    email_confirmed: bool = False
    trusted_device_id: str = ""
    accepted_terms: bool = False
    created_by: str = ""
    created_date: datetime = field(default_factory=utcnow)
    modified_by: str | None = None
    modified_date: datetime | None = None
    deleted: bool = False


@dataclass(frozen=True)
class RequestContext:
    """
    Caller context extracted by the HTTP layer.

    Passed explicitly into every flow instead of being read from ambient state.
    """

    device_id: str
    username: str | None = None


@dataclass(frozen=True)
class Challenge:
    """A one-time passcode issued for (username, purpose)."""

    username: str
    email: str
    purpose: ChallengePurpose
    code: str
    expires_at: datetime


@dataclass(frozen=True)
class TokenClaims:
    """Claims bundle handed to the token issuer; never persisted."""

    username: str
    roles: tuple[str, ...]
    device_id: str


@dataclass(frozen=True)
class UserProfile:
    """User-facing payload of a successful flow."""

    username: str
    email: str
    first_name: str
    last_name: str
    handle: str
    gender: str | None
    email_confirmed: bool
    roles: tuple[str, ...]
    token: str

    @classmethod
    def from_account(cls, account: Account, roles: list[str], token: str) -> UserProfile:
        return cls(
            username=account.username,
            email=account.email,
            first_name=account.first_name,
            last_name=account.last_name,
            handle=account.handle,
            gender=account.gender,
            email_confirmed=account.email_confirmed,
            roles=tuple(roles),
            token=token,
        )


@dataclass(frozen=True)
class AuthResult:
    """Outcome of one flow: a result kind plus the profile on terminal success."""

    kind: ResultKind
    profile: UserProfile | None = None

    @property
    def succeeded(self) -> bool:
        return self.kind.is_success


@dataclass
class RegisterInput:
    username: str
    email: str
    password: str
    first_name: str
    last_name: str
    gender: str | None = None
    accepted_terms: bool = False
    otp_code: str | None = None


@dataclass
class LoginInput:
    username: str
    password: str
    otp_code: str | None = None


@dataclass
class ChangePasswordInput:
    username: str
    current_password: str
    new_password: str


@dataclass
class ForgotPasswordInput:
    username: str
    new_password: str
    otp_code: str | None = None


@dataclass
class VerifyEmailInput:
    username: str
    otp_code: str | None = None


@dataclass
class UpdateProfileInput:
    username: str
    first_name: str
    last_name: str
    gender: str | None = None
    handle: str | None = None
