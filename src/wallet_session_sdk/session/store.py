"""Provider-keyed session state with synchronous publish/subscribe."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import replace
from typing import Any

from ..errors import UnknownProvider
from ..security.crypto_session import EphemeralKeyPair, SharedSecret
from ..types import ProviderSessionState

logger = logging.getLogger(__name__)

StateListener = Callable[[ProviderSessionState], None]
ActiveListener = Callable[[str | None], None]
Unsubscribe = Callable[[], None]


class SessionStore:
    """Holds the live state and ephemeral keys for every provider.

    All mutations go through one re-entrant lock, so callbacks delivered on
    another thread cannot interleave with user-initiated transitions.
    Listeners run synchronously under that lock, in subscription order,
    once per mutation.
    """

    def __init__(self, providers: Iterable[str]):
        self._lock = threading.RLock()
        self._states: dict[str, ProviderSessionState] = {}
        self._keypairs: dict[str, EphemeralKeyPair | None] = {}
        self._secrets: dict[str, SharedSecret | None] = {}
        self._listeners: dict[str, list[StateListener]] = {}
        self._active_provider: str | None = None
        self._active_listeners: list[ActiveListener] = []
        for name in providers:
            self._states[name] = ProviderSessionState(provider=name)
            self._keypairs[name] = None
            self._secrets[name] = None
            self._listeners[name] = []

    def _check(self, provider: str) -> None:
        if provider not in self._states:
            raise UnknownProvider(provider)

    @contextmanager
    def locked(self) -> Iterator[None]:
        """Hold the store lock across a read-check-write transition."""
        with self._lock:
            yield

    @property
    def providers(self) -> list[str]:
        return list(self._states)

    def get_state(self, provider: str) -> ProviderSessionState:
        with self._lock:
            self._check(provider)
            return self._states[provider]

    def update(self, provider: str, **changes: Any) -> ProviderSessionState:
        """Apply field changes as one mutation and notify."""
        with self._lock:
            self._check(provider)
            state = replace(self._states[provider], **changes)
            self._states[provider] = state
            self._emit(state)
            return state

    def reset(self, provider: str, **changes: Any) -> ProviderSessionState:
        """Back to initial values, keeping the diagnostic last URL."""
        with self._lock:
            self._check(provider)
            last_url = self._states[provider].last_raw_callback_url
            state = replace(
                ProviderSessionState(provider=provider, last_raw_callback_url=last_url),
                **changes,
            )
            self._states[provider] = state
            self._emit(state)
            return state

    def subscribe(self, provider: str, listener: StateListener) -> Unsubscribe:
        with self._lock:
            self._check(provider)
            self._listeners[provider] = [*self._listeners[provider], listener]

        def unsubscribe() -> None:
            with self._lock:
                self._listeners[provider] = [
                    item for item in self._listeners[provider] if item is not listener
                ]

        return unsubscribe

    def _emit(self, state: ProviderSessionState) -> None:
        for listener in self._listeners[state.provider]:
            try:
                listener(state)
            except Exception:
                logger.error(f"Session listener for {state.provider} failed", exc_info=True)

    # Keys

    def get_keypair(self, provider: str) -> EphemeralKeyPair | None:
        with self._lock:
            self._check(provider)
            return self._keypairs[provider]

    def set_keypair(self, provider: str, keypair: EphemeralKeyPair) -> None:
        """Install a new keypair, discarding the previous one and its secret."""
        with self._lock:
            self.discard_keys(provider)
            self._keypairs[provider] = keypair

    def get_shared_secret(self, provider: str) -> SharedSecret | None:
        with self._lock:
            self._check(provider)
            return self._secrets[provider]

    def set_shared_secret(self, provider: str, secret: SharedSecret) -> None:
        with self._lock:
            self._check(provider)
            previous = self._secrets[provider]
            if previous is not None and previous is not secret:
                previous.discard()
            self._secrets[provider] = secret

    def discard_keys(self, provider: str) -> None:
        with self._lock:
            self._check(provider)
            keypair = self._keypairs[provider]
            secret = self._secrets[provider]
            if keypair is not None:
                keypair.discard()
            if secret is not None:
                secret.discard()
            self._keypairs[provider] = None
            self._secrets[provider] = None

    # Active wallet

    def get_active_provider(self) -> str | None:
        with self._lock:
            return self._active_provider

    def set_active_provider(self, provider: str | None) -> None:
        with self._lock:
            if provider is not None:
                self._check(provider)
            self._active_provider = provider
            for listener in self._active_listeners:
                try:
                    listener(provider)
                except Exception:
                    logger.error("Active wallet listener failed", exc_info=True)

    def subscribe_active(self, listener: ActiveListener) -> Unsubscribe:
        with self._lock:
            self._active_listeners = [*self._active_listeners, listener]

        def unsubscribe() -> None:
            with self._lock:
                self._active_listeners = [
                    item for item in self._active_listeners if item is not listener
                ]

        return unsubscribe
