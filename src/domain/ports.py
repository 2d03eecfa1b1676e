"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols through
structural subtyping.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .models import Account, Challenge, TokenClaims

TRUSTED_DEVICE_KEY_PREFIX = "trusted-device:"


class ResultKind(str, Enum):
    """
    Closed set of business outcomes returned by every auth flow.

    Terminal successes carry a profile payload; every other kind is
    returned without one. Unexpected collaborator failures are not
    represented here: they propagate as exceptions and surface as
    SOMETHING_WENT_WRONG at the HTTP boundary.
    """

    USER_ALREADY_EXISTS = "user_already_exists"
    USER_DOES_NOT_EXIST = "user_does_not_exist"
    INVALID_USERNAME_PASSWORD = "invalid_username_password"
    INVALID_PASSWORD = "invalid_password"
    INVALID_VERIFICATION_CODE = "invalid_verification_code"
    VERIFICATION_CODE_SENT = "verification_code_sent"
    UNABLE_TO_COMPLETE_PROCESS = "unable_to_complete_process"
    HANDLE_UNAVAILABLE = "handle_unavailable"
    USER_REGISTERED_SUCCESSFULLY = "user_registered_successfully"
    USER_LOGIN_SUCCESSFULLY = "user_login_successfully"
    PASSWORD_CHANGED_SUCCESSFULLY = "password_changed_successfully"
    PROFILE_UPDATED_SUCCESSFULLY = "profile_updated_successfully"
    EMAIL_VERIFIED_SUCCESSFULLY = "email_verified_successfully"
    SOMETHING_WENT_WRONG = "something_went_wrong"

    @property
    def message(self) -> str:
        """Stable, non-leaking user-facing message."""
        return RESULT_MESSAGES[self]

    @property
    def is_success(self) -> bool:
        return self in SUCCESS_KINDS


RESULT_MESSAGES: dict[ResultKind, str] = {
    ResultKind.USER_ALREADY_EXISTS: "User already exists",
    ResultKind.USER_DOES_NOT_EXIST: "User does not exist",
    ResultKind.INVALID_USERNAME_PASSWORD: "Invalid username or password",
    ResultKind.INVALID_PASSWORD: "Invalid password",
    ResultKind.INVALID_VERIFICATION_CODE: "Invalid verification code",
    ResultKind.VERIFICATION_CODE_SENT: "Verification code sent",
    ResultKind.UNABLE_TO_COMPLETE_PROCESS: "Unable to complete the process",
    ResultKind.HANDLE_UNAVAILABLE: "Unable to allocate a user handle",
    ResultKind.USER_REGISTERED_SUCCESSFULLY: "User registered successfully",
    ResultKind.USER_LOGIN_SUCCESSFULLY: "User logged in successfully",
    ResultKind.PASSWORD_CHANGED_SUCCESSFULLY: "Password changed successfully",
    ResultKind.PROFILE_UPDATED_SUCCESSFULLY: "Profile updated successfully",
    ResultKind.EMAIL_VERIFIED_SUCCESSFULLY: "Email verified successfully",
    ResultKind.SOMETHING_WENT_WRONG: "Something went wrong",
}

SUCCESS_KINDS = frozenset(
    {
        ResultKind.USER_REGISTERED_SUCCESSFULLY,
        ResultKind.USER_LOGIN_SUCCESSFULLY,
        ResultKind.PASSWORD_CHANGED_SUCCESSFULLY,
        ResultKind.PROFILE_UPDATED_SUCCESSFULLY,
        ResultKind.EMAIL_VERIFIED_SUCCESSFULLY,
    }
)


class ChallengePurpose(str, Enum):
    """What a one-time passcode was issued for."""

    REGISTRATION = "registration"
    LOGIN = "login"
    FORGOT_PASSWORD = "forgot_password"
    VERIFY_EMAIL = "verify_email"


def trusted_device_key(username: str, device_id: str) -> str:
    """Cache key for a (username, device) trust entry."""
    return f"{TRUSTED_DEVICE_KEY_PREFIX}{username}{device_id}"


class UnitOfWork(Protocol):
    """
    All-or-nothing persistence scope used by registration.

    Used as a context manager. Leaving the block without calling
    commit() rolls every write back.
    """

    def __enter__(self) -> UnitOfWork: ...

    def __exit__(self, exc_type, exc, tb) -> None: ...

    def create(self, account: Account, password_hash: str) -> None:
        """
        Insert a new account.

        Raises:
            AccountConflict: username or handle already owned by a live account
        """
        ...

    def exists_by_handle_excluding(self, handle: str, username: str) -> bool:
        """Handle check inside the scope, on the scope's own connection."""
        ...

    def add_role(self, username: str, role: str) -> bool:
        """Assign a role, returning False when the role cannot be assigned."""
        ...

    def get_roles(self, username: str) -> list[str]: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


class CredentialStore(Protocol):
    """
    Port interface for account persistence.

    Every lookup is case-insensitive on username and handle, and every
    query excludes soft-deleted accounts.
    """

    def find_by_username(self, username: str) -> Account | None: ...

    def exists_by_username(self, username: str) -> bool: ...

    def exists_by_handle_excluding(self, handle: str, username: str) -> bool:
        """True if a live account other than `username` owns `handle`."""
        ...

    def begin(self) -> UnitOfWork: ...

    def update(self, account: Account) -> None:
        """
        Persist mutable account fields.

        Raises:
            AccountConflict: the new handle is owned by another live account
        """
        ...

    def delete(self, username: str) -> bool: ...

    def verify_password(self, username: str, password: str) -> bool:
        """Constant-time check of a plaintext password against the stored hash."""
        ...

    def set_password(self, username: str, password_hash: str) -> bool: ...

    def get_roles(self, username: str) -> list[str]: ...


class ChallengeService(Protocol):
    """Port interface for one-time passcode issuance and validation."""

    def invalidate_existing(self, username: str) -> None: ...

    def generate(self, username: str, email: str, purpose: ChallengePurpose) -> Challenge: ...

    def persist(self, challenge: Challenge) -> None: ...

    def dispatch(self, challenge: Challenge) -> None: ...

    def validate(self, username: str, purpose: ChallengePurpose, code: str) -> bool: ...


class TrustCache(Protocol):
    """Port interface for the trusted-device ledger."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...

    def exists(self, key: str) -> bool: ...


class TokenIssuer(Protocol):
    """Port interface for signed token issuance."""

    def issue(self, claims: TokenClaims) -> str: ...


class EmailSender(Protocol):
    """Port interface for email delivery."""

    def send_verification_code(self, email: str, code: str, purpose: ChallengePurpose) -> None:
        """
        Send verification code to email address.

        Args:
            email: Recipient email address
            code: one-time passcode
            purpose: what the code unlocks, used for the message wording
        """
        ...
