"""
Auth orchestrator - registration, login and credential flows.

Every flow shares one step-up shape:

    Precondition check -> (optional) one-time passcode -> terminal action -> token

Passcode sub-protocol
=====================

- No code supplied: invalidate prior challenges for the username, generate,
  persist and dispatch a new one, return VERIFICATION_CODE_SENT.
- Code supplied: validate it; a bad code returns INVALID_VERIFICATION_CODE.
- Valid code: continue to the terminal action.

Flows never raise for business outcomes; each returns exactly one
AuthResult (VerifyEmail returns a bare ResultKind). Collaborator failures
(database, cache, mail, signing) propagate unchanged to the caller.

Steps within a flow are strictly sequential. No lock is held across
collaborator calls except the registration unit of work.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

import bcrypt

from .exceptions import AccountConflict, HandleAllocationExhausted
from .handles import HandleAllocator
from .models import (
    Account,
    AuthResult,
    ChangePasswordInput,
    ForgotPasswordInput,
    LoginInput,
    RegisterInput,
    RequestContext,
    TokenClaims,
    UpdateProfileInput,
    UserProfile,
    VerifyEmailInput,
    utcnow,
)
from .ports import (
    ChallengePurpose,
    ChallengeService,
    CredentialStore,
    ResultKind,
    TokenIssuer,
)
from .trusted_device import TrustedDeviceValidator

logger = logging.getLogger(__name__)


@dataclass
class AuthService:
    """
    Domain service orchestrating the authentication flows.

    Collaborators are injected as ports; the service itself keeps no
    mutable state between calls.
    """

    store: CredentialStore
    challenges: ChallengeService
    devices: TrustedDeviceValidator
    handles: HandleAllocator
    tokens: TokenIssuer
    default_role: str = "admin"
    bcrypt_cost: int = 10

    def register(self, data: RegisterInput, context: RequestContext) -> AuthResult:
        """
        Register a new account behind a one-time passcode.

        The account, its default role and its token are produced inside a
        single unit of work. A failed role assignment rolls the account
        back so no role-less account is ever observable.
        """
        username = data.username.strip()
        email = self._normalize_email(data.email)

        if self.store.exists_by_username(username):
            return AuthResult(ResultKind.USER_ALREADY_EXISTS)

        if not _has_code(data.otp_code):
            self._send_challenge(username, email, ChallengePurpose.REGISTRATION)
            return AuthResult(ResultKind.VERIFICATION_CODE_SENT)

        if not self.challenges.validate(username, ChallengePurpose.REGISTRATION, data.otp_code):
            return AuthResult(ResultKind.INVALID_VERIFICATION_CODE)

        account = Account(
            username=username,
            email=email,
            first_name=data.first_name.strip(),
            last_name=data.last_name.strip(),
            gender=data.gender,
            trusted_device_id=context.device_id,
            accepted_terms=data.accepted_terms,
            created_by=username,
        )
        password_hash = self._hash_password(data.password)

        try:
            with self.store.begin() as uow:
                self._write_with_handle(
                    account,
                    lambda a: uow.create(a, password_hash),
                    exists=uow.exists_by_handle_excluding,
                )

                if not uow.add_role(username, self.default_role):
                    logger.warning("Role assignment failed for %s, rolling back", username)
                    uow.rollback()
                    return AuthResult(ResultKind.UNABLE_TO_COMPLETE_PROCESS)

                roles = uow.get_roles(username)
                token = self._issue_token(account, roles, context)
                uow.commit()
        except AccountConflict as exc:
            logger.info("Registration lost uniqueness race on %s: %s", exc.field, username)
            return AuthResult(ResultKind.USER_ALREADY_EXISTS)
        except HandleAllocationExhausted:
            return AuthResult(ResultKind.HANDLE_UNAVAILABLE)

        logger.info("Registered %s", username)
        return AuthResult(
            ResultKind.USER_REGISTERED_SUCCESSFULLY,
            UserProfile.from_account(account, roles, token),
        )

    def login(self, data: LoginInput, context: RequestContext) -> AuthResult:
        """
        Password login with trusted-device step-up.

        The password is always checked, trusted device or not. An untrusted
        device must also pass a passcode, after which it becomes the
        account's trusted device.
        """
        account = self.store.find_by_username(data.username.strip())
        if account is None:
            # Same bcrypt cost as a wrong password
            self.store.verify_password(data.username.strip(), data.password)
            return AuthResult(ResultKind.INVALID_USERNAME_PASSWORD)

        trusted = self.devices.validate(account.username, context.device_id)

        if not self.store.verify_password(account.username, data.password):
            return AuthResult(ResultKind.INVALID_USERNAME_PASSWORD)

        if not trusted:
            if not _has_code(data.otp_code):
                self._send_challenge(account.username, account.email, ChallengePurpose.LOGIN)
                return AuthResult(ResultKind.VERIFICATION_CODE_SENT)

            if not self.challenges.validate(account.username, ChallengePurpose.LOGIN, data.otp_code):
                return AuthResult(ResultKind.INVALID_VERIFICATION_CODE)

            self.devices.update_device(account.username, context)

        logger.info("Login for %s (trusted device: %s)", account.username, trusted)
        return self._complete(account, ResultKind.USER_LOGIN_SUCCESSFULLY, context)

    def change_password(self, data: ChangePasswordInput, context: RequestContext) -> AuthResult:
        account = self.store.find_by_username(data.username.strip())
        if account is None:
            return AuthResult(ResultKind.INVALID_USERNAME_PASSWORD)

        if not self.store.verify_password(account.username, data.current_password):
            return AuthResult(ResultKind.INVALID_PASSWORD)

        if not self.store.set_password(account.username, self._hash_password(data.new_password)):
            return AuthResult(ResultKind.SOMETHING_WENT_WRONG)

        # The new password must authenticate; anything else means the store is inconsistent.
        if not self.store.verify_password(account.username, data.new_password):
            logger.warning("New password does not verify for %s", account.username)
            return AuthResult(ResultKind.INVALID_PASSWORD)

        return self._complete(account, ResultKind.PASSWORD_CHANGED_SUCCESSFULLY, context)

    def forgot_password(self, data: ForgotPasswordInput, context: RequestContext) -> AuthResult:
        """
        Reset a password after proving possession of the account's email.

        No current-password check: the passcode is the proof of identity.
        """
        account = self.store.find_by_username(data.username.strip())
        if account is None:
            return AuthResult(ResultKind.INVALID_USERNAME_PASSWORD)

        if not _has_code(data.otp_code):
            self._send_challenge(account.username, account.email, ChallengePurpose.FORGOT_PASSWORD)
            return AuthResult(ResultKind.VERIFICATION_CODE_SENT)

        if not self.challenges.validate(
            account.username, ChallengePurpose.FORGOT_PASSWORD, data.otp_code
        ):
            return AuthResult(ResultKind.INVALID_VERIFICATION_CODE)

        if not self.store.set_password(account.username, self._hash_password(data.new_password)):
            return AuthResult(ResultKind.SOMETHING_WENT_WRONG)

        logger.info("Password reset for %s", account.username)
        return self._complete(account, ResultKind.USER_LOGIN_SUCCESSFULLY, context)

    def verify_email(self, data: VerifyEmailInput) -> ResultKind:
        """Confirm the account's email; idempotent once confirmed."""
        account = self.store.find_by_username(data.username.strip())
        if account is None:
            return ResultKind.USER_DOES_NOT_EXIST

        if account.email_confirmed:
            return ResultKind.EMAIL_VERIFIED_SUCCESSFULLY

        if not _has_code(data.otp_code):
            self._send_challenge(account.username, account.email, ChallengePurpose.VERIFY_EMAIL)
            return ResultKind.VERIFICATION_CODE_SENT

        if not self.challenges.validate(account.username, ChallengePurpose.VERIFY_EMAIL, data.otp_code):
            return ResultKind.INVALID_VERIFICATION_CODE

        account.email_confirmed = True
        account.modified_by = account.username
        account.modified_date = utcnow()
        self.store.update(account)
        return ResultKind.EMAIL_VERIFIED_SUCCESSFULLY

    def update_profile(self, data: UpdateProfileInput, context: RequestContext) -> AuthResult:
        """
        Apply profile changes and re-run handle allocation.

        The account's own handle never counts as a collision, so an
        unchanged profile keeps its handle.
        """
        account = self.store.find_by_username(data.username.strip())
        if account is None:
            return AuthResult(ResultKind.USER_DOES_NOT_EXIST)

        account.first_name = data.first_name.strip()
        account.last_name = data.last_name.strip()
        account.gender = data.gender
        account.modified_by = context.username or account.username
        account.modified_date = utcnow()

        try:
            self._write_with_handle(
                account, self.store.update, preferred=data.handle or account.handle
            )
        except HandleAllocationExhausted:
            return AuthResult(ResultKind.HANDLE_UNAVAILABLE)

        return self._complete(account, ResultKind.PROFILE_UPDATED_SUCCESSFULLY, context)

    def validate_trusted_device(self, username: str, device_id: str) -> bool:
        return self.devices.validate(username, device_id)

    def user_exists(self, username: str) -> bool:
        return self.store.exists_by_username(username.strip())

    def _write_with_handle(
        self,
        account: Account,
        write: Callable[[Account], None],
        preferred: str | None = None,
        exists: Callable[[str, str], bool] | None = None,
    ) -> None:
        """
        Allocate a handle and persist, reallocating if the store's unique
        index rejects a handle taken after the existence check.

        Inside a unit of work `exists` is the scope's own check, so
        registration never holds two pooled connections at once.
        """
        for _ in range(self.handles.max_attempts):
            account.handle = self.handles.allocate(
                account.first_name,
                account.last_name,
                account.username,
                preferred=preferred,
                exists=exists,
            )
            try:
                write(account)
                return
            except AccountConflict as exc:
                if exc.field != "handle":
                    raise
                logger.info("Handle %s claimed concurrently, reallocating", account.handle)
                preferred = None
        raise HandleAllocationExhausted(account.username, self.handles.max_attempts)

    def _complete(self, account: Account, kind: ResultKind, context: RequestContext) -> AuthResult:
        # Roles are read fresh at issuance time, never carried over from earlier steps.
        roles = self.store.get_roles(account.username)
        token = self._issue_token(account, roles, context)
        return AuthResult(kind, UserProfile.from_account(account, roles, token))

    def _issue_token(self, account: Account, roles: list[str], context: RequestContext) -> str:
        return self.tokens.issue(
            TokenClaims(username=account.username, roles=tuple(roles), device_id=context.device_id)
        )

    def _send_challenge(self, username: str, email: str, purpose: ChallengePurpose) -> None:
        self.challenges.invalidate_existing(username)
        challenge = self.challenges.generate(username, email, purpose)
        self.challenges.persist(challenge)
        self.challenges.dispatch(challenge)
        logger.info("Verification code issued for %s (%s)", username, purpose.value)

    def _normalize_email(self, email: str) -> str:
        """
        Normalize email address for consistent storage and lookup.

        Applies: strip whitespace + lowercase
        """
        return email.strip().lower()

    def _hash_password(self, password: str) -> str:
        """Hash password using bcrypt with the configured cost factor."""
        return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=self.bcrypt_cost)).decode()


def _has_code(code: str | None) -> bool:
    return code is not None and code.strip() != ""
