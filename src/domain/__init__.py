"""
Domain layer - Pure business logic with zero framework imports.

This package contains the authentication orchestration engine: the flows
for registration, login, password change/reset, email verification and
profile update, plus the trusted-device validator and handle allocator.
It defines its own port interfaces for infrastructure abstraction,
ensuring true hexagonal architecture decoupling.
"""

from .auth import AuthService
from .exceptions import AccountConflict, AuthError, HandleAllocationExhausted
from .handles import HandleAllocator
from .models import (
    Account,
    AuthResult,
    Challenge,
    ChangePasswordInput,
    ForgotPasswordInput,
    LoginInput,
    RegisterInput,
    RequestContext,
    TokenClaims,
    UpdateProfileInput,
    UserProfile,
    VerifyEmailInput,
)
from .ports import (
    ChallengePurpose,
    ChallengeService,
    CredentialStore,
    EmailSender,
    ResultKind,
    TokenIssuer,
    TrustCache,
    UnitOfWork,
    trusted_device_key,
)
from .trusted_device import TrustedDeviceValidator

__all__ = [
    "Account",
    "AccountConflict",
    "AuthError",
    "AuthResult",
    "AuthService",
    "Challenge",
    "ChallengePurpose",
    "ChallengeService",
    "ChangePasswordInput",
    "CredentialStore",
    "EmailSender",
    "ForgotPasswordInput",
    "HandleAllocationExhausted",
    "HandleAllocator",
    "LoginInput",
    "RegisterInput",
    "RequestContext",
    "ResultKind",
    "TokenClaims",
    "TokenIssuer",
    "TrustCache",
    "TrustedDeviceValidator",
    "UnitOfWork",
    "UpdateProfileInput",
    "UserProfile",
    "VerifyEmailInput",
    "trusted_device_key",
]
