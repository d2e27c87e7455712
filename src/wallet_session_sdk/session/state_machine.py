"""Connect/sign lifecycle for one wallet provider."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from ..config import Settings
from ..errors import DecryptionFailed, DispatchFailed, ProtocolError, SessionNotEstablished
from ..providers import ProviderConfig
from ..security.crypto_session import CryptoSession
from ..transport.deeplink import (
    build_connect_url,
    build_sign_url,
    encode_transaction,
    parse_callback,
)
from ..types import (
    ConnectionStatus,
    ErrorCallback,
    ErrorDescriptor,
    ErrorKind,
    PayloadCallback,
    ProviderSessionState,
    Unrecognized,
)
from .store import SessionStore

logger = logging.getLogger(__name__)

UrlDispatcher = Callable[[str], Awaitable[None] | None]


class WalletSessionStateMachine:
    """Drives one provider through Disconnected -> Connecting -> Connected -> AwaitingSignature.

    Requests are handed to the wallet app through the dispatcher and control
    returns immediately; the answer arrives later (or never) through
    handle_callback(). Nothing is retried automatically.
    """

    def __init__(
        self,
        provider: ProviderConfig,
        store: SessionStore,
        settings: Settings,
        dispatcher: UrlDispatcher,
        crypto: CryptoSession | None = None,
    ) -> None:
        self.provider = provider
        self.store = store
        self.settings = settings
        self._dispatcher = dispatcher
        self._crypto = crypto or CryptoSession()
        self._attempt = 0

    @property
    def name(self) -> str:
        return self.provider.name

    @property
    def state(self) -> ProviderSessionState:
        return self.store.get_state(self.name)

    @property
    def attempt(self) -> int:
        """Id of the most recent connect/sign/disconnect action."""
        return self._attempt

    async def _dispatch(self, url: str) -> None:
        try:
            result = self._dispatcher(url)
            if inspect.isawaitable(result):
                await result
        except Exception as err:
            raise DispatchFailed(f"Unable to open {self.provider.label}.") from err

    async def connect(self) -> int:
        """Start a fresh connect attempt, superseding any pending one.

        Returns:
            The attempt id, usable with expire().
        """
        with self.store.locked():
            previous = self.state.status
            if previous.pending:
                logger.info(f"{self.provider.label}: superseding pending {previous.value} request")
            self._attempt += 1
            attempt = self._attempt
            keypair = self._crypto.generate_keypair()
            self.store.set_keypair(self.name, keypair)
            self.store.reset(self.name, status=ConnectionStatus.CONNECTING)
            url = build_connect_url(
                self.provider.base_url,
                self.settings.dapp_url,
                keypair.public_key_b58,
                self.settings.redirect_link(self.provider),
                self.settings.cluster,
            )

        logger.info(f"{self.provider.label}: opening connect request (attempt {attempt})")
        try:
            await self._dispatch(url)
        except DispatchFailed as err:
            cause = err.__cause__ or err
            logger.warning(f"{self.provider.label}: connect dispatch failed: {cause}")
            with self.store.locked():
                if self._attempt == attempt:
                    self.store.discard_keys(self.name)
                    self.store.reset(
                        self.name, status=ConnectionStatus.ERROR, last_error=err.descriptor
                    )
        return attempt

    async def request_signature(self, unsigned_transaction: bytes) -> int:
        """Ask the wallet to sign and send an unsigned, serialized transaction.

        Raises:
            SessionNotEstablished: no live session from a prior connect. The
                error is also recorded in last_error.
        """
        with self.store.locked():
            state = self.state
            keypair = self.store.get_keypair(self.name)
            secret = self.store.get_shared_secret(self.name)
            if (
                not state.has_session
                or keypair is None
                or not keypair.alive
                or secret is None
                or not secret.alive
            ):
                err = SessionNotEstablished(
                    f"Missing {self.provider.label} session. Reconnect wallet."
                )
                self.store.update(self.name, last_error=err.descriptor)
                raise err

            if state.status is ConnectionStatus.AWAITING_SIGNATURE:
                logger.info(f"{self.provider.label}: superseding pending signature request")
            data, nonce = self._crypto.encrypt_b58(
                secret,
                {
                    "session": state.session_token,
                    "transaction": encode_transaction(unsigned_transaction),
                },
            )
            self._attempt += 1
            attempt = self._attempt
            self.store.update(
                self.name, status=ConnectionStatus.AWAITING_SIGNATURE, last_error=None
            )
            url = build_sign_url(
                self.provider.base_url,
                self.settings.dapp_url,
                keypair.public_key_b58,
                self.settings.redirect_link(self.provider),
                self.settings.cluster,
                nonce,
                data,
            )

        logger.info(f"{self.provider.label}: opening signAndSendTransaction request")
        try:
            await self._dispatch(url)
        except DispatchFailed as err:
            logger.warning(f"{self.provider.label}: sign dispatch failed: {err.__cause__ or err}")
            with self.store.locked():
                if self._attempt == attempt:
                    self.store.update(
                        self.name, status=ConnectionStatus.ERROR, last_error=err.descriptor
                    )
        return attempt

    def disconnect(self) -> None:
        """Forget the session and wipe keys. Valid from any state."""
        with self.store.locked():
            self._attempt += 1
            self.store.discard_keys(self.name)
            self.store.reset(self.name)
        logger.info(f"{self.provider.label}: disconnected")

    def expire(self, attempt: int) -> bool:
        """Fail a request that is still pending for the given attempt."""
        with self.store.locked():
            status = self.state.status
            if attempt != self._attempt or not status.pending:
                return False
            error = ErrorDescriptor(
                kind=ErrorKind.TIMED_OUT,
                message=f"No answer from {self.provider.label}.",
            )
            if status is ConnectionStatus.CONNECTING:
                self.store.discard_keys(self.name)
                self.store.reset(self.name, status=ConnectionStatus.ERROR, last_error=error)
            else:
                self.store.update(self.name, status=ConnectionStatus.ERROR, last_error=error)
            return True

    def handle_callback(self, url: str) -> bool:
        """Apply an inbound callback URL.

        Returns:
            True when the callback changed the session, False when it was
            ignored (unrecognized shape or no matching request in flight).
        """
        fields = parse_callback(url, self.provider)
        if isinstance(fields, Unrecognized):
            logger.debug(f"{self.provider.label}: ignoring callback ({fields.reason})")
            return False

        with self.store.locked():
            status = self.state.status
            if isinstance(fields, ErrorCallback):
                return self._apply_error(fields, url, status)
            if status is ConnectionStatus.CONNECTING:
                return self._apply_connect(fields, url)
            if status is ConnectionStatus.AWAITING_SIGNATURE:
                return self._apply_signature(fields, url)

        logger.info(f"{self.provider.label}: ignoring payload callback while {status.value}")
        return False

    def _apply_error(self, fields: ErrorCallback, url: str, status: ConnectionStatus) -> bool:
        if status is ConnectionStatus.DISCONNECTED:
            logger.info(f"{self.provider.label}: ignoring error callback while disconnected")
            return False
        if fields.code in self.provider.cancel_codes:
            error = ErrorDescriptor(
                kind=ErrorKind.USER_CANCELLED,
                message=f"Request cancelled in {self.provider.label}.",
                code=fields.code,
            )
        else:
            error = ErrorDescriptor(
                kind=ErrorKind.PROVIDER_ERROR,
                message=f"{fields.code}: {fields.message or 'Unknown error'}",
                code=fields.code,
            )
        logger.info(f"{self.provider.label}: wallet returned error {fields.code}")
        self.store.update(
            self.name,
            status=ConnectionStatus.ERROR,
            last_error=error,
            last_raw_callback_url=url,
        )
        return True

    def _fail(self, url: str, descriptor: ErrorDescriptor) -> bool:
        self.store.update(
            self.name,
            status=ConnectionStatus.ERROR,
            last_error=descriptor,
            last_raw_callback_url=url,
        )
        return True

    def _apply_connect(self, fields: PayloadCallback, url: str) -> bool:
        keypair = self.store.get_keypair(self.name)
        if keypair is None or not keypair.alive:
            logger.warning(f"{self.provider.label}: connect response without a live keypair")
            return False
        if fields.remote_public_key is None:
            logger.debug(
                f"{self.provider.label}: connect response lacks "
                f"{self.provider.encryption_public_key_param}, ignoring"
            )
            return False

        secret = None
        try:
            secret = self._crypto.derive_shared_secret(
                keypair.secret_key, fields.remote_public_key
            )
            payload = self._crypto.decrypt(secret, fields.ciphertext, fields.nonce)
        except DecryptionFailed as err:
            if secret is not None:
                secret.discard()
            logger.warning(f"{self.provider.label}: connect response failed to decrypt")
            self.store.discard_keys(self.name)
            return self._fail(url, err.descriptor)

        wallet_address = _string_field(payload, "public_key")
        session_token = _string_field(payload, "session")
        if wallet_address is None or session_token is None:
            secret.discard()
            self.store.discard_keys(self.name)
            err = ProtocolError("Connect response is missing public_key or session")
            return self._fail(url, err.descriptor)

        self.store.set_shared_secret(self.name, secret)
        self.store.update(
            self.name,
            status=ConnectionStatus.CONNECTED,
            remote_public_key=fields.remote_public_key,
            wallet_address=wallet_address,
            session_token=session_token,
            last_error=None,
            last_raw_callback_url=url,
        )
        logger.info(f"{self.provider.label}: connected as {wallet_address}")
        return True

    def _apply_signature(self, fields: PayloadCallback, url: str) -> bool:
        state = self.state
        secret = self.store.get_shared_secret(self.name)
        if secret is None or not secret.alive or not state.has_session:
            err = ProtocolError("Signature response without an established session")
            return self._fail(url, err.descriptor)
        if (
            fields.remote_public_key is not None
            and fields.remote_public_key != state.remote_public_key
        ):
            logger.warning(f"{self.provider.label}: wallet encryption key changed mid-session")
            err = ProtocolError("Wallet encryption public key does not match the session")
            return self._fail(url, err.descriptor)

        try:
            payload = self._crypto.decrypt(secret, fields.ciphertext, fields.nonce)
        except DecryptionFailed as err:
            logger.warning(f"{self.provider.label}: signature response failed to decrypt")
            return self._fail(url, err.descriptor)

        signature = _string_field(payload, "signature")
        if signature is None:
            err = ProtocolError("Signature response is missing signature")
            return self._fail(url, err.descriptor)

        self.store.update(
            self.name,
            status=ConnectionStatus.CONNECTED,
            last_signature=signature,
            last_error=None,
            last_raw_callback_url=url,
        )
        logger.info(f"{self.provider.label}: transaction signature {signature}")
        return True


def _string_field(payload: Any, key: str) -> str | None:
    if not isinstance(payload, dict):
        return None
    value = payload.get(key)
    return value if isinstance(value, str) and value else None
