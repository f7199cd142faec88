from __future__ import annotations

from authgate.application.dto.link import IDENTITY_TO_LINK_PROVIDER, LinkProvidersOutput
from authgate.application.ports.auth_port import AuthPort


class GetLinkProvidersUseCase:
    def __init__(self, *, auth_port: AuthPort):
        self._auth_port = auth_port

    def execute(self, *, user_id: str) -> LinkProvidersOutput:
        linked = []
        for identity in self._auth_port.list_identities_for_user(user_id=user_id):
            provider = IDENTITY_TO_LINK_PROVIDER.get(identity.provider)
            if provider is not None and provider not in linked:
                linked.append(provider)
        return LinkProvidersOutput(linked_providers=linked)
