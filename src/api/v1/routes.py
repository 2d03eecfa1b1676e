"""
API v1 routes.

Defines REST endpoints for the authentication flows. Every flow returns
a ResultKind; successes and VERIFICATION_CODE_SENT become a JSON body,
every other kind becomes an HTTP error carrying the kind's stable message.

Handlers are plain functions: the service blocks on bcrypt, the database
and the cache, so FastAPI runs them in its threadpool.
"""

from fastapi import APIRouter, Depends, HTTPException, Response, status

from src.api.dependencies import (
    get_auth_service,
    get_authenticated_context,
    get_request_context,
)
from src.api.models import (
    AuthResponse,
    ChangePasswordRequest,
    ErrorResponse,
    ForgotPasswordRequest,
    LoginRequest,
    ProfileResponse,
    RegisterRequest,
    UpdateProfileRequest,
    VerifyEmailRequest,
)
from src.domain.auth import AuthService
from src.domain.models import (
    AuthResult,
    ChangePasswordInput,
    ForgotPasswordInput,
    LoginInput,
    RegisterInput,
    RequestContext,
    UpdateProfileInput,
    VerifyEmailInput,
)
from src.domain.ports import ResultKind

router = APIRouter(tags=["v1"])

RESULT_STATUS: dict[ResultKind, int] = {
    ResultKind.VERIFICATION_CODE_SENT: status.HTTP_202_ACCEPTED,
    ResultKind.USER_REGISTERED_SUCCESSFULLY: status.HTTP_201_CREATED,
    ResultKind.USER_LOGIN_SUCCESSFULLY: status.HTTP_200_OK,
    ResultKind.PASSWORD_CHANGED_SUCCESSFULLY: status.HTTP_200_OK,
    ResultKind.PROFILE_UPDATED_SUCCESSFULLY: status.HTTP_200_OK,
    ResultKind.EMAIL_VERIFIED_SUCCESSFULLY: status.HTTP_200_OK,
    ResultKind.USER_ALREADY_EXISTS: status.HTTP_409_CONFLICT,
    ResultKind.HANDLE_UNAVAILABLE: status.HTTP_409_CONFLICT,
    ResultKind.USER_DOES_NOT_EXIST: status.HTTP_404_NOT_FOUND,
    ResultKind.INVALID_USERNAME_PASSWORD: status.HTTP_401_UNAUTHORIZED,
    ResultKind.INVALID_PASSWORD: status.HTTP_401_UNAUTHORIZED,
    ResultKind.INVALID_VERIFICATION_CODE: status.HTTP_401_UNAUTHORIZED,
    ResultKind.UNABLE_TO_COMPLETE_PROCESS: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ResultKind.SOMETHING_WENT_WRONG: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

_FAILURES = {
    401: {"model": ErrorResponse, "description": "Invalid credentials or code"},
    422: {"description": "Validation error"},
}


def _respond(kind: ResultKind, response: Response, result: AuthResult | None = None) -> AuthResponse:
    if not kind.is_success and kind != ResultKind.VERIFICATION_CODE_SENT:
        raise HTTPException(status_code=RESULT_STATUS[kind], detail=kind.message)

    response.status_code = RESULT_STATUS[kind]
    profile = None
    if result is not None and result.profile is not None:
        profile = ProfileResponse.from_profile(result.profile)
    return AuthResponse(result=kind, message=kind.message, profile=profile)


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        202: {"model": AuthResponse, "description": "Verification code sent"},
        409: {"model": ErrorResponse, "description": "User already exists"},
        **_FAILURES,
    },
    summary="Register a new user",
    description="Submit the registration form without `otp_code` to receive a code, "
    "then submit it again with the code to create the account.",
)
def register(
    request_data: RegisterRequest,
    response: Response,
    context: RequestContext = Depends(get_request_context),
    service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    result = service.register(
        RegisterInput(
            username=request_data.username,
            email=request_data.email,
            password=request_data.password,
            first_name=request_data.first_name,
            last_name=request_data.last_name,
            gender=request_data.gender,
            accepted_terms=request_data.accepted_terms,
            otp_code=request_data.otp_code,
        ),
        context,
    )
    return _respond(result.kind, response, result)


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={202: {"model": AuthResponse, "description": "Verification code sent"}, **_FAILURES},
    summary="Log in",
    description="Password login. From an untrusted device a one-time code is "
    "required as a second step; a successful code makes the device trusted.",
)
def login(
    request_data: LoginRequest,
    response: Response,
    context: RequestContext = Depends(get_request_context),
    service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    result = service.login(
        LoginInput(
            username=request_data.username,
            password=request_data.password,
            otp_code=request_data.otp_code,
        ),
        context,
    )
    return _respond(result.kind, response, result)


@router.post(
    "/change-password",
    response_model=AuthResponse,
    responses=_FAILURES,
    summary="Change the caller's password",
)
def change_password(
    request_data: ChangePasswordRequest,
    response: Response,
    context: RequestContext = Depends(get_authenticated_context),
    service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    result = service.change_password(
        ChangePasswordInput(
            username=context.username,
            current_password=request_data.current_password,
            new_password=request_data.new_password,
        ),
        context,
    )
    return _respond(result.kind, response, result)


@router.post(
    "/forgot-password",
    response_model=AuthResponse,
    responses={202: {"model": AuthResponse, "description": "Verification code sent"}, **_FAILURES},
    summary="Reset a forgotten password",
)
def forgot_password(
    request_data: ForgotPasswordRequest,
    response: Response,
    context: RequestContext = Depends(get_request_context),
    service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    result = service.forgot_password(
        ForgotPasswordInput(
            username=request_data.username,
            new_password=request_data.new_password,
            otp_code=request_data.otp_code,
        ),
        context,
    )
    return _respond(result.kind, response, result)


@router.post(
    "/verify-email",
    response_model=AuthResponse,
    responses={
        202: {"model": AuthResponse, "description": "Verification code sent"},
        404: {"model": ErrorResponse, "description": "User does not exist"},
        **_FAILURES,
    },
    summary="Verify the account's email address",
)
def verify_email(
    request_data: VerifyEmailRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    kind = service.verify_email(
        VerifyEmailInput(username=request_data.username, otp_code=request_data.otp_code)
    )
    return _respond(kind, response)


@router.put(
    "/profile",
    response_model=AuthResponse,
    responses={
        404: {"model": ErrorResponse, "description": "User does not exist"},
        409: {"model": ErrorResponse, "description": "Handle unavailable"},
        **_FAILURES,
    },
    summary="Update the caller's profile",
)
def update_profile(
    request_data: UpdateProfileRequest,
    response: Response,
    context: RequestContext = Depends(get_authenticated_context),
    service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    result = service.update_profile(
        UpdateProfileInput(
            username=context.username,
            first_name=request_data.first_name,
            last_name=request_data.last_name,
            gender=request_data.gender,
            handle=request_data.handle,
        ),
        context,
    )
    return _respond(result.kind, response, result)
