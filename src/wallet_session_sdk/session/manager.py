"""Explicitly owned entry point for all wallet sessions in a process."""

from __future__ import annotations

import asyncio
import logging

from ..config import Settings
from ..providers import ProviderRegistry
from ..security.crypto_session import CryptoSession
from ..transport.deeplink import callback_route
from ..transport.dispatch import open_in_browser
from ..types import ProviderSessionState
from .state_machine import UrlDispatcher, WalletSessionStateMachine
from .store import ActiveListener, SessionStore, StateListener, Unsubscribe

logger = logging.getLogger(__name__)


class WalletSessionManager:
    """One store plus one state machine per registered provider.

    Construct it once and hand it to whatever owns the event loop; inbound
    deep links go to handle_callback_url() from any thread.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        dispatcher: UrlDispatcher | None = None,
        registry: ProviderRegistry | None = None,
        crypto: CryptoSession | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.registry = registry or self.settings.build_registry()
        self.store = SessionStore(self.registry.names())
        dispatcher = dispatcher or open_in_browser
        crypto = crypto or CryptoSession()
        self._machines = {
            provider.name: WalletSessionStateMachine(
                provider, self.store, self.settings, dispatcher, crypto
            )
            for provider in self.registry
        }
        self._timers: dict[str, asyncio.TimerHandle] = {}

    def machine(self, provider: str) -> WalletSessionStateMachine:
        self.registry.get(provider)
        return self._machines[provider]

    def get_state(self, provider: str) -> ProviderSessionState:
        return self.store.get_state(provider)

    def subscribe(self, provider: str, listener: StateListener) -> Unsubscribe:
        return self.store.subscribe(provider, listener)

    @property
    def active_provider(self) -> str | None:
        return self.store.get_active_provider()

    def set_active_provider(self, provider: str | None) -> None:
        self.store.set_active_provider(provider)

    def subscribe_active(self, listener: ActiveListener) -> Unsubscribe:
        return self.store.subscribe_active(listener)

    async def connect(self, provider: str, timeout: float | None = None) -> ProviderSessionState:
        """Open a connect request and make the provider the active wallet.

        Args:
            timeout: Seconds before a still-pending attempt fails with TimedOut.
                Falls back to settings.session_timeout; None waits forever.
        """
        machine = self.machine(provider)
        self.set_active_provider(provider)
        attempt = await machine.connect()
        self._schedule_expiry(provider, attempt, timeout)
        return machine.state

    async def request_signature(
        self, provider: str, unsigned_transaction: bytes, timeout: float | None = None
    ) -> ProviderSessionState:
        machine = self.machine(provider)
        attempt = await machine.request_signature(unsigned_transaction)
        self._schedule_expiry(provider, attempt, timeout)
        return machine.state

    def disconnect(self, provider: str) -> ProviderSessionState:
        machine = self.machine(provider)
        self._cancel_expiry(provider)
        machine.disconnect()
        return machine.state

    def handle_callback_url(self, url: str) -> str | None:
        """Route an inbound deep link to the provider whose redirect it targets.

        Returns:
            The provider name when the callback changed its session, else None.
        """
        route = callback_route(url)
        provider = self.registry.by_route(route)
        if provider is None:
            logger.debug(f"Ignoring deep link for unknown route '{route}'")
            return None
        if self._machines[provider.name].handle_callback(url):
            return provider.name
        return None

    async def wait_for_settle(
        self, provider: str, timeout: float | None = None
    ) -> ProviderSessionState:
        """Wait until the provider is no longer Connecting/AwaitingSignature.

        Raises:
            asyncio.TimeoutError: the wallet did not answer within timeout.
                The session itself is left untouched.
        """
        loop = asyncio.get_running_loop()
        settled: asyncio.Future[ProviderSessionState] = loop.create_future()

        def _resolve(state: ProviderSessionState) -> None:
            if not settled.done():
                settled.set_result(state)

        def _listener(state: ProviderSessionState) -> None:
            if not state.status.pending:
                loop.call_soon_threadsafe(_resolve, state)

        unsubscribe = self.subscribe(provider, _listener)
        try:
            current = self.get_state(provider)
            if not current.status.pending:
                return current
            return await asyncio.wait_for(settled, timeout=timeout)
        finally:
            unsubscribe()

    def _schedule_expiry(self, provider: str, attempt: int, timeout: float | None) -> None:
        self._cancel_expiry(provider)
        if timeout is None:
            timeout = self.settings.session_timeout
        if timeout is None:
            return
        loop = asyncio.get_running_loop()
        self._timers[provider] = loop.call_later(timeout, self._expire, provider, attempt, timeout)

    def _cancel_expiry(self, provider: str) -> None:
        handle = self._timers.pop(provider, None)
        if handle is not None:
            handle.cancel()

    def _expire(self, provider: str, attempt: int, timeout: float) -> None:
        self._timers.pop(provider, None)
        if self._machines[provider].expire(attempt):
            logger.warning(f"{provider}: no wallet answer after {timeout}s, request timed out")

    def close(self) -> None:
        """Cancel pending timers and wipe every provider's keys."""
        for provider in list(self._timers):
            self._cancel_expiry(provider)
        for machine in self._machines.values():
            machine.disconnect()
