from __future__ import annotations

from fastapi import APIRouter, Depends, Header, Request

from authgate.api.deps import (
    build_rate_limit_context,
    get_client_ip,
    get_get_me_use_case,
    get_login_email_use_case,
    get_login_google_use_case,
    get_login_telegram_use_case,
    get_logout_session_use_case,
    get_rate_limiter,
    get_refresh_session_use_case,
    get_register_email_use_case,
    require_roles,
)
from authgate.api.schemas.auth import (
    AuthTokenResponse,
    AuthUserResponse,
    EmailLoginRequest,
    EmailRegisterRequest,
    GoogleLoginRequest,
    LogoutResponse,
    RefreshTokenRequest,
    TelegramLoginRequest,
)
from authgate.application.dto.auth import (
    AuthTokensOutput,
    AuthUser,
    AuthUserOutput,
    LoginEmailInput,
    LoginGoogleInput,
    LoginTelegramInput,
    LogoutInput,
    RefreshSessionInput,
    RegisterEmailInput,
)
from authgate.application.use_cases.get_me import GetMeUseCase
from authgate.application.use_cases.login_email import LoginEmailUseCase
from authgate.application.use_cases.login_google import LoginGoogleUseCase
from authgate.application.use_cases.login_telegram import LoginTelegramUseCase
from authgate.application.use_cases.logout_session import LogoutSessionUseCase
from authgate.application.use_cases.refresh_session import RefreshSessionUseCase
from authgate.application.use_cases.register_email import RegisterEmailUseCase
from authgate.infrastructure.rate_limit.rate_limit_service import RateLimitService


router = APIRouter()


def _user_response(user: AuthUserOutput) -> AuthUserResponse:
    return AuthUserResponse(id=user.id, role=user.role, email=user.email)


def _token_response(output: AuthTokensOutput) -> AuthTokenResponse:
    return AuthTokenResponse(
        access_token=output.access_token,
        refresh_token=output.refresh_token,
        expires_in=output.expires_in,
        user=_user_response(output.user),
    )


@router.post("/v1/auth/email/register", response_model=AuthTokenResponse)
def register_email(
    req: EmailRegisterRequest,
    request: Request,
    user_agent: str | None = Header(default=None),
    rate_limiter: RateLimitService = Depends(get_rate_limiter),
    use_case: RegisterEmailUseCase = Depends(get_register_email_use_case),
):
    rate_limiter.enforce("email_register", build_rate_limit_context(request, email=req.email))
    output = use_case.execute(
        RegisterEmailInput(
            email=req.email,
            password=req.password,
            user_agent=user_agent,
            ip=get_client_ip(request),
        )
    )
    return _token_response(output)


@router.post("/v1/auth/email/login", response_model=AuthTokenResponse)
def login_email(
    req: EmailLoginRequest,
    request: Request,
    user_agent: str | None = Header(default=None),
    rate_limiter: RateLimitService = Depends(get_rate_limiter),
    use_case: LoginEmailUseCase = Depends(get_login_email_use_case),
):
    rate_limiter.enforce("email_login", build_rate_limit_context(request, email=req.email))
    output = use_case.execute(
        LoginEmailInput(
            email=req.email,
            password=req.password,
            user_agent=user_agent,
            ip=get_client_ip(request),
        )
    )
    return _token_response(output)


@router.post("/v1/auth/google", response_model=AuthTokenResponse)
def login_google(
    req: GoogleLoginRequest,
    request: Request,
    user_agent: str | None = Header(default=None),
    rate_limiter: RateLimitService = Depends(get_rate_limiter),
    use_case: LoginGoogleUseCase = Depends(get_login_google_use_case),
):
    rate_limiter.enforce("google_callback", build_rate_limit_context(request))
    output = use_case.execute(
        LoginGoogleInput(
            id_token=req.id_token,
            user_agent=user_agent,
            ip=get_client_ip(request),
        )
    )
    return _token_response(output)


@router.post("/v1/auth/telegram", response_model=AuthTokenResponse)
def login_telegram(
    req: TelegramLoginRequest,
    request: Request,
    user_agent: str | None = Header(default=None),
    rate_limiter: RateLimitService = Depends(get_rate_limiter),
    use_case: LoginTelegramUseCase = Depends(get_login_telegram_use_case),
):
    rate_limiter.enforce("telegram_verify_init_data", build_rate_limit_context(request))
    output = use_case.execute(
        LoginTelegramInput(
            init_data_raw=req.init_data_raw,
            user_agent=user_agent,
            ip=get_client_ip(request),
        )
    )
    return _token_response(output)


@router.post("/v1/auth/refresh", response_model=AuthTokenResponse)
def refresh_auth(
    req: RefreshTokenRequest,
    request: Request,
    user_agent: str | None = Header(default=None),
    rate_limiter: RateLimitService = Depends(get_rate_limiter),
    use_case: RefreshSessionUseCase = Depends(get_refresh_session_use_case),
):
    rate_limiter.enforce("refresh", build_rate_limit_context(request, refresh_token=req.refresh_token))
    output = use_case.execute(
        RefreshSessionInput(
            refresh_token=req.refresh_token,
            user_agent=user_agent,
            ip=get_client_ip(request),
        )
    )
    return _token_response(output)


@router.post("/v1/auth/logout", response_model=LogoutResponse)
def logout_auth(
    req: RefreshTokenRequest,
    request: Request,
    rate_limiter: RateLimitService = Depends(get_rate_limiter),
    use_case: LogoutSessionUseCase = Depends(get_logout_session_use_case),
):
    rate_limiter.enforce("logout", build_rate_limit_context(request, refresh_token=req.refresh_token))
    output = use_case.execute(LogoutInput(refresh_token=req.refresh_token))
    return LogoutResponse(success=output.success)


@router.get("/v1/auth/me", response_model=AuthUserResponse)
def get_me(
    current_user: AuthUser = Depends(require_roles("USER", "ADMIN")),
    use_case: GetMeUseCase = Depends(get_get_me_use_case),
):
    return _user_response(use_case.execute(user=current_user))
