from __future__ import annotations

import hashlib
import hmac
from urllib.parse import urlencode


def create_email_link_code(*, secret: str, user_id: str, link_token: str, email: str) -> str:
    digest = hmac.new(
        secret.encode("utf-8"),
        f"email-link:{user_id}:{link_token}:{email}".encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    numeric_code = int(digest[:12], 16) % 1_000_000
    return f"{numeric_code:06d}"


def codes_match(expected: str, received: str) -> bool:
    return hmac.compare_digest(expected.encode("utf-8"), received.encode("utf-8"))


def build_email_link_confirm_url(
    *,
    frontend_origin: str | None,
    link_token: str,
    email: str,
    code: str,
) -> str | None:
    if not frontend_origin:
        return None
    query = urlencode(
        {
            "link_provider": "email",
            "link_token": link_token,
            "link_email": email,
            "link_code": code,
        }
    )
    return f"{frontend_origin.rstrip('/')}/dashboard/linking?{query}"


def mask_email(email: str) -> str:
    local_part, _, domain = email.partition("@")
    if not local_part or not domain:
        return email
    if len(local_part) <= 2:
        return f"{local_part[0]}***@{domain}"
    return f"{local_part[0]}***{local_part[-1]}@{domain}"
