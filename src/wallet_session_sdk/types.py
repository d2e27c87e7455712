"""Type definitions for wallet session SDK."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import base58


class ConnectionStatus(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    AWAITING_SIGNATURE = "awaiting_signature"
    ERROR = "error"

    @property
    def pending(self) -> bool:
        """True while a request has been handed to the wallet app."""
        return self in (ConnectionStatus.CONNECTING, ConnectionStatus.AWAITING_SIGNATURE)


class ErrorKind(str, Enum):
    USER_CANCELLED = "UserCancelled"
    PROVIDER_ERROR = "ProviderError"
    DECRYPTION_FAILED = "DecryptionFailed"
    MALFORMED_CALLBACK = "MalformedCallback"
    SESSION_NOT_ESTABLISHED = "SessionNotEstablished"
    DISPATCH_FAILED = "DispatchFailed"
    PROTOCOL_ERROR = "ProtocolError"
    TIMED_OUT = "TimedOut"


@dataclass(frozen=True)
class ErrorDescriptor:
    kind: ErrorKind
    message: str
    code: str | None = None

    def to_dict(self) -> dict[str, str | None]:
        return {"kind": self.kind.value, "message": self.message, "code": self.code}


@dataclass(frozen=True)
class ProviderSessionState:
    """Immutable snapshot of one provider's session."""

    provider: str
    status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    remote_public_key: bytes | None = None  # wallet's X25519 key, not the chain address
    wallet_address: str | None = None
    session_token: str | None = None
    last_signature: str | None = None
    last_error: ErrorDescriptor | None = None
    last_raw_callback_url: str | None = None  # diagnostic only

    @property
    def has_session(self) -> bool:
        return self.remote_public_key is not None and self.session_token is not None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "provider": self.provider,
            "status": self.status.value,
            "remote_public_key": (
                base58.b58encode(self.remote_public_key).decode("ascii")
                if self.remote_public_key
                else None
            ),
            "wallet_address": self.wallet_address,
            "session_token_present": self.session_token is not None,
            "last_signature": self.last_signature,
            "last_error": self.last_error.to_dict() if self.last_error else None,
            "last_raw_callback_url": self.last_raw_callback_url,
        }


@dataclass
class ErrorCallback:
    code: str
    message: str | None = None


@dataclass
class PayloadCallback:
    ciphertext: bytes
    nonce: bytes
    remote_public_key: bytes | None = None


@dataclass
class Unrecognized:
    reason: str = ""


CallbackFields = ErrorCallback | PayloadCallback | Unrecognized
