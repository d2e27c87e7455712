"""Configuration settings for wallet session SDK."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .providers import DEFAULT_PROVIDERS, ProviderConfig, ProviderRegistry


def _optional_float(value: str | None) -> float | None:
    if value is None or not value.strip():
        return None
    return float(value)


@dataclass
class Settings:
    """Settings for building deep links and serving the callback receiver.

    Defaults match a devnet build of the delivery app with custom scheme
    `blockdeliveryapp://`.
    """

    dapp_url: str = "https://example.com"
    cluster: str = "devnet"
    app_scheme: str = "blockdeliveryapp"
    callback_base_url: str | None = None  # e.g. https://host when redirects go over HTTP
    session_timeout: float | None = None
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 10000
    log_level: str = "INFO"
    solflare_base_url: str | None = None
    phantom_base_url: str | None = None

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from WALLET_* / SDK_* environment variables."""
        return cls(
            dapp_url=os.getenv("WALLET_DAPP_URL", cls.dapp_url),
            cluster=os.getenv("WALLET_CLUSTER", cls.cluster),
            app_scheme=os.getenv("WALLET_APP_SCHEME", cls.app_scheme),
            callback_base_url=os.getenv("WALLET_CALLBACK_BASE_URL") or None,
            session_timeout=_optional_float(os.getenv("WALLET_SESSION_TIMEOUT")),
            host=os.getenv("SDK_HOST", cls.host),
            port=int(os.getenv("SDK_PORT", str(cls.port))),
            log_level=os.getenv("WALLET_LOG_LEVEL", cls.log_level).upper(),
            solflare_base_url=os.getenv("WALLET_SOLFLARE_BASE_URL") or None,
            phantom_base_url=os.getenv("WALLET_PHANTOM_BASE_URL") or None,
        )

    def redirect_link(self, provider: ProviderConfig) -> str:
        """Where the wallet app should send its answer for this provider."""
        if self.callback_base_url:
            return f"{self.callback_base_url.rstrip('/')}/{provider.redirect_route}"
        return f"{self.app_scheme}://{provider.redirect_route}"

    def build_registry(self) -> ProviderRegistry:
        overrides = {
            "solflare": self.solflare_base_url,
            "phantom": self.phantom_base_url,
        }
        providers = []
        for provider in DEFAULT_PROVIDERS:
            base_url = overrides.get(provider.name)
            providers.append(provider.with_base_url(base_url) if base_url else provider)
        return ProviderRegistry(providers)
