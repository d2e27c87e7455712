"""Per-wallet protocol parameters.

Solflare and Phantom speak the same deep-link protocol and differ only in the
values below, so one state machine serves both.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from .errors import UnknownProvider


@dataclass(frozen=True)
class ProviderConfig:
    name: str
    base_url: str
    encryption_public_key_param: str
    redirect_route: str
    payload_params: tuple[str, ...] = ("data",)
    cancel_codes: tuple[str, ...] = ("userRejectedRequest",)
    display_name: str = ""

    @property
    def label(self) -> str:
        return self.display_name or self.name.capitalize()

    def with_base_url(self, base_url: str) -> ProviderConfig:
        return replace(self, base_url=base_url.rstrip("/"))


SOLFLARE = ProviderConfig(
    name="solflare",
    base_url="https://solflare.com",
    encryption_public_key_param="solflare_encryption_public_key",
    redirect_route="solflare-connect",
    display_name="Solflare",
)

# Phantom may answer with `payload` instead of `data`; 4001 is its EIP-1193 style rejection code.
PHANTOM = ProviderConfig(
    name="phantom",
    base_url="https://phantom.app",
    encryption_public_key_param="phantom_encryption_public_key",
    redirect_route="phantom-connect",
    payload_params=("data", "payload"),
    cancel_codes=("userRejectedRequest", "4001"),
    display_name="Phantom",
)

DEFAULT_PROVIDERS: tuple[ProviderConfig, ...] = (SOLFLARE, PHANTOM)


class ProviderRegistry:
    """Name-keyed collection of provider configs, in registration order."""

    def __init__(
        self, providers: tuple[ProviderConfig, ...] | list[ProviderConfig] = DEFAULT_PROVIDERS
    ):
        self._providers: dict[str, ProviderConfig] = {}
        for provider in providers:
            self.register(provider)

    def register(self, provider: ProviderConfig) -> None:
        if provider.name in self._providers:
            raise ValueError(f"Provider '{provider.name}' already registered")
        self._providers[provider.name] = provider

    def get(self, name: str) -> ProviderConfig:
        try:
            return self._providers[name]
        except KeyError:
            raise UnknownProvider(name) from None

    def by_route(self, route: str) -> ProviderConfig | None:
        for provider in self._providers.values():
            if provider.redirect_route == route:
                return provider
        return None

    def names(self) -> list[str]:
        return list(self._providers)

    def __iter__(self):
        return iter(self._providers.values())
