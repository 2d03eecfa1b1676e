"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting the auth
service, its adapters and the explicit RequestContext into routes.
"""

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.adapters.challenge import OneTimeCodeService
from src.adapters.smtp.console import ConsoleEmailSender
from src.adapters.token import JwtTokenIssuer
from src.config.settings import Settings, get_settings
from src.domain.auth import AuthService
from src.domain.handles import HandleAllocator
from src.domain.models import RequestContext
from src.domain.trusted_device import TrustedDeviceValidator

# Module-level singleton - ConsoleEmailSender is stateless
_email_sender = ConsoleEmailSender()

# Bearer token is optional at this level; routes decide whether it is required
http_bearer = HTTPBearer(auto_error=False)


def get_email_sender() -> ConsoleEmailSender:
    """Get console email sender (singleton)."""
    return _email_sender


def get_token_issuer(settings: Settings = Depends(get_settings)) -> JwtTokenIssuer:
    return JwtTokenIssuer(
        secret=settings.jwt_secret,
        issuer=settings.jwt_issuer,
        ttl_minutes=settings.jwt_ttl_minutes,
        algorithm=settings.jwt_algorithm,
    )


def get_auth_service(
    request: Request,
    settings: Settings = Depends(get_settings),
    tokens: JwtTokenIssuer = Depends(get_token_issuer),
) -> AuthService:
    """
    Create the auth service with injected dependencies.

    The store, challenge repository and trust cache are created during
    app lifespan startup and stored in app.state.
    """
    state = request.app.state
    challenges = OneTimeCodeService(
        repository=state.challenge_repository,
        email_sender=get_email_sender(),
        code_length=settings.otp_length,
        ttl_seconds=settings.otp_ttl_seconds,
    )
    return AuthService(
        store=state.store,
        challenges=challenges,
        devices=TrustedDeviceValidator(store=state.store, cache=state.trust_cache),
        handles=HandleAllocator(
            store=state.store,
            suffix_max=settings.handle_suffix_max,
            max_attempts=settings.handle_max_attempts,
        ),
        tokens=tokens,
        default_role=settings.default_role,
        bcrypt_cost=settings.bcrypt_cost,
    )


def get_request_context(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
    settings: Settings = Depends(get_settings),
    tokens: JwtTokenIssuer = Depends(get_token_issuer),
) -> RequestContext:
    """
    Build the caller's RequestContext from the device header and bearer token.

    Anonymous requests get a context without a username. A bearer token
    that fails verification is rejected outright.
    """
    device_id = request.headers.get(settings.device_id_header, "").strip()
    if credentials is None:
        return RequestContext(device_id=device_id)

    try:
        claims = tokens.decode(credentials.credentials)
    except jwt.InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    return RequestContext(device_id=device_id, username=claims["sub"])


def get_authenticated_context(
    context: RequestContext = Depends(get_request_context),
    service: AuthService = Depends(get_auth_service),
) -> RequestContext:
    """
    Require a verified caller on a trusted device.

    Rejects anonymous callers and callers whose device is not the
    account's trusted device.
    """
    if context.username is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not service.validate_trusted_device(context.username, context.device_id):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unrecognized device",
        )
    return context
