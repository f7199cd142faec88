from __future__ import annotations


class DomainError(Exception):
    """Base para erros de dominio."""

    code = "DOMAIN_ERROR"
    default_message = "Request failed."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidCredentialsError(DomainError):
    """Email ou senha invalidos."""

    code = "INVALID_CREDENTIALS"
    default_message = "Invalid email or password."


class EmailAlreadyRegisteredError(DomainError):
    """Ja existe identidade de email para o endereco."""

    code = "EMAIL_ALREADY_REGISTERED"
    default_message = "Email already registered."


class EmailAlreadyInUseError(DomainError):
    """Endereco de email pertence a outra conta."""

    code = "EMAIL_ALREADY_IN_USE"
    default_message = "Email is already in use by another account."


class AccountLinkRequiredError(DomainError):
    """Conta existente com o mesmo email; vinculo deve ser explicito."""

    code = "ACCOUNT_LINK_REQUIRED"
    default_message = "An account with this email already exists. Link identities explicitly."


class ProviderDisabledError(DomainError):
    """Provedor de identidade nao configurado."""

    code = "PROVIDER_DISABLED"
    default_message = "Identity provider is not configured."


class InvalidProviderTokenError(DomainError):
    """Token do provedor (Google) rejeitado."""

    code = "INVALID_GOOGLE_TOKEN"
    default_message = "Google token is invalid."


class InvalidSignatureError(DomainError):
    """Assinatura do payload do Telegram invalida."""

    code = "INVALID_TELEGRAM_SIGNATURE"
    default_message = "Telegram init data signature is invalid."


class InvalidPayloadError(DomainError):
    """Payload do Telegram malformado."""

    code = "INVALID_TELEGRAM_INIT_DATA"
    default_message = "Telegram init data is invalid."


class PayloadExpiredError(DomainError):
    """Payload do Telegram expirado."""

    code = "TELEGRAM_INIT_DATA_EXPIRED"
    default_message = "Telegram init data is expired."


class InvalidRefreshTokenError(DomainError):
    """Refresh token inexistente, revogado ou expirado."""

    code = "INVALID_REFRESH_TOKEN"
    default_message = "Refresh token is invalid or expired."


class InvalidAccessTokenError(DomainError):
    """Access token invalido ou expirado."""

    code = "INVALID_ACCESS_TOKEN"
    default_message = "Access token is invalid or expired."


class InvalidLinkTokenError(DomainError):
    """Link token inexistente ou de outro usuario."""

    code = "INVALID_LINK_TOKEN"
    default_message = "Link token is invalid."


class ExpiredLinkTokenError(DomainError):
    """Link token expirado ou ja consumido."""

    code = "EXPIRED_LINK_TOKEN"
    default_message = "Link token is expired or already used."


class IdentityAlreadyLinkedError(DomainError):
    """Identidade ja vinculada."""

    code = "IDENTITY_ALREADY_LINKED"
    default_message = "This identity is already linked to another account."


class ProviderUserIdRequiredError(DomainError):
    """Faltou provider user id ou prova do provedor."""

    code = "PROVIDER_USER_ID_REQUIRED"
    default_message = "providerUserId or provider auth payload is required for this provider."


class PasswordRequiredError(DomainError):
    """Senha obrigatoria para vincular email."""

    code = "PASSWORD_REQUIRED"
    default_message = "password is required for email identity linking."


class EmailRequiredError(DomainError):
    """Email obrigatorio para vincular email."""

    code = "EMAIL_REQUIRED"
    default_message = "email is required for email identity linking."


class InvalidEmailLinkCodeError(DomainError):
    """Codigo de verificacao de email invalido."""

    code = "INVALID_EMAIL_LINK_CODE"
    default_message = "Email verification code is invalid."


class EmailDeliveryError(DomainError):
    """Falha ao enviar email de verificacao."""

    code = "EMAIL_DELIVERY_FAILED"
    default_message = "Failed to deliver verification email."


class InvalidBotLinkSecretError(DomainError):
    """Segredo do bot ausente ou invalido."""

    code = "INVALID_BOT_LINK_SECRET"
    default_message = "Bot link secret is invalid."


class UnauthorizedError(DomainError):
    """Autenticacao obrigatoria."""

    code = "UNAUTHORIZED"
    default_message = "Authentication is required."


class ForbiddenError(DomainError):
    """Papel do usuario sem permissao."""

    code = "FORBIDDEN"
    default_message = "Insufficient permissions."


class RateLimitedError(DomainError):
    """Limite de requisicoes excedido."""

    code = "RATE_LIMIT_EXCEEDED"
    default_message = "Too many requests. Please try again later."

    def __init__(self, retry_after_seconds: int, message: str | None = None):
        self.retry_after_seconds = max(1, int(retry_after_seconds))
        super().__init__(message)


class RateLimitUnavailableError(DomainError):
    """Nenhum store de rate limit disponivel."""

    code = "RATE_LIMIT_UNAVAILABLE"
    default_message = "Rate limiting is temporarily unavailable."
