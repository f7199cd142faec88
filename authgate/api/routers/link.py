from __future__ import annotations

from fastapi import APIRouter, Depends, Header, Request

from authgate.api.deps import (
    build_rate_limit_context,
    get_confirm_email_link_use_case,
    get_confirm_link_use_case,
    get_current_user,
    get_link_providers_use_case,
    get_rate_limiter,
    get_request_email_link_use_case,
    get_start_link_use_case,
    get_start_telegram_link_use_case,
    get_telegram_bot_confirm_use_case,
    get_telegram_link_status_use_case,
)
from authgate.api.schemas.link import (
    LinkConfirmRequest,
    LinkConfirmResponse,
    LinkEmailConfirmRequest,
    LinkEmailRequest,
    LinkEmailRequestResponse,
    LinkProvidersResponse,
    LinkStartResponse,
    LinkTelegramBotConfirmRequest,
    LinkTelegramStatusRequest,
    LinkTelegramStatusResponse,
)
from authgate.application.dto.auth import AuthUser
from authgate.application.dto.link import (
    EmailLinkConfirmInput,
    EmailLinkRequestInput,
    LinkConfirmInput,
    TelegramBotConfirmInput,
)
from authgate.application.use_cases.confirm_link import ConfirmLinkUseCase
from authgate.application.use_cases.get_link_providers import GetLinkProvidersUseCase
from authgate.application.use_cases.link_email import ConfirmEmailLinkUseCase, RequestEmailLinkUseCase
from authgate.application.use_cases.link_telegram import (
    ConfirmTelegramLinkFromBotUseCase,
    GetTelegramLinkStatusUseCase,
)
from authgate.application.use_cases.start_link import StartLinkUseCase, StartTelegramLinkUseCase
from authgate.infrastructure.rate_limit.rate_limit_service import RateLimitService


router = APIRouter()


@router.post("/v1/auth/link/start", response_model=LinkStartResponse)
def start_link(
    request: Request,
    current_user: AuthUser = Depends(get_current_user),
    rate_limiter: RateLimitService = Depends(get_rate_limiter),
    use_case: StartLinkUseCase = Depends(get_start_link_use_case),
):
    rate_limiter.enforce("link_start", build_rate_limit_context(request, user_id=current_user.user_id))
    output = use_case.execute(user_id=current_user.user_id)
    return LinkStartResponse(link_token=output.link_token, expires_at=output.expires_at)


@router.post("/v1/auth/link/confirm", response_model=LinkConfirmResponse)
def confirm_link(
    req: LinkConfirmRequest,
    request: Request,
    current_user: AuthUser = Depends(get_current_user),
    rate_limiter: RateLimitService = Depends(get_rate_limiter),
    use_case: ConfirmLinkUseCase = Depends(get_confirm_link_use_case),
):
    rate_limiter.enforce("link_confirm", build_rate_limit_context(request, user_id=current_user.user_id))
    output = use_case.execute(
        user_id=current_user.user_id,
        command=LinkConfirmInput(
            link_token=req.link_token,
            provider=req.provider,
            provider_user_id=req.provider_user_id,
            email=req.email,
            password=req.password,
            id_token=req.id_token,
            init_data_raw=req.init_data_raw,
            metadata=req.metadata,
        ),
    )
    return LinkConfirmResponse(linked=output.linked, provider=output.provider)


@router.get("/v1/auth/link/providers", response_model=LinkProvidersResponse)
def get_link_providers(
    current_user: AuthUser = Depends(get_current_user),
    use_case: GetLinkProvidersUseCase = Depends(get_link_providers_use_case),
):
    output = use_case.execute(user_id=current_user.user_id)
    return LinkProvidersResponse(linked_providers=output.linked_providers)


@router.post("/v1/auth/link/email/request", response_model=LinkEmailRequestResponse)
def request_email_link(
    req: LinkEmailRequest,
    request: Request,
    current_user: AuthUser = Depends(get_current_user),
    rate_limiter: RateLimitService = Depends(get_rate_limiter),
    use_case: RequestEmailLinkUseCase = Depends(get_request_email_link_use_case),
):
    rate_limiter.enforce(
        "link_email_request",
        build_rate_limit_context(request, user_id=current_user.user_id, email=req.email),
    )
    output = use_case.execute(
        user_id=current_user.user_id,
        command=EmailLinkRequestInput(link_token=req.link_token, email=req.email),
    )
    return LinkEmailRequestResponse(
        sent=output.sent,
        provider=output.provider,
        email=output.email,
        expires_at=output.expires_at,
    )


@router.post("/v1/auth/link/email/confirm", response_model=LinkConfirmResponse)
def confirm_email_link(
    req: LinkEmailConfirmRequest,
    request: Request,
    current_user: AuthUser = Depends(get_current_user),
    rate_limiter: RateLimitService = Depends(get_rate_limiter),
    use_case: ConfirmEmailLinkUseCase = Depends(get_confirm_email_link_use_case),
):
    rate_limiter.enforce(
        "link_email_confirm",
        build_rate_limit_context(request, user_id=current_user.user_id, email=req.email),
    )
    output = use_case.execute(
        user_id=current_user.user_id,
        command=EmailLinkConfirmInput(link_token=req.link_token, email=req.email, code=req.code),
    )
    return LinkConfirmResponse(linked=output.linked, provider=output.provider)


@router.post("/v1/auth/link/telegram/start", response_model=LinkStartResponse)
def start_telegram_link(
    request: Request,
    current_user: AuthUser = Depends(get_current_user),
    rate_limiter: RateLimitService = Depends(get_rate_limiter),
    use_case: StartTelegramLinkUseCase = Depends(get_start_telegram_link_use_case),
):
    rate_limiter.enforce("link_start", build_rate_limit_context(request, user_id=current_user.user_id))
    output = use_case.execute(user_id=current_user.user_id)
    return LinkStartResponse(link_token=output.link_token, expires_at=output.expires_at)


@router.post("/v1/auth/link/telegram/status", response_model=LinkTelegramStatusResponse)
def get_telegram_link_status(
    req: LinkTelegramStatusRequest,
    request: Request,
    current_user: AuthUser = Depends(get_current_user),
    rate_limiter: RateLimitService = Depends(get_rate_limiter),
    use_case: GetTelegramLinkStatusUseCase = Depends(get_telegram_link_status_use_case),
):
    rate_limiter.enforce(
        "link_telegram_status",
        build_rate_limit_context(request, user_id=current_user.user_id),
    )
    status = use_case.execute(user_id=current_user.user_id, link_token=req.link_token)
    return LinkTelegramStatusResponse(status=status)


@router.post("/v1/auth/link/telegram/bot-confirm", response_model=LinkConfirmResponse)
def confirm_telegram_link_from_bot(
    req: LinkTelegramBotConfirmRequest,
    request: Request,
    x_bot_link_secret: str | None = Header(default=None),
    rate_limiter: RateLimitService = Depends(get_rate_limiter),
    use_case: ConfirmTelegramLinkFromBotUseCase = Depends(get_telegram_bot_confirm_use_case),
):
    rate_limiter.enforce("link_telegram_bot_confirm", build_rate_limit_context(request))
    output = use_case.execute(
        TelegramBotConfirmInput(
            link_token=req.link_token,
            telegram_user_id=req.telegram_user_id,
            username=req.username,
            first_name=req.first_name,
            last_name=req.last_name,
            language_code=req.language_code,
        ),
        provided_secret=x_bot_link_secret,
    )
    return LinkConfirmResponse(linked=output.linked, provider=output.provider)
