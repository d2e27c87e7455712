# Re-export from local modules
from .config import Settings
from .errors import (
    DecryptionFailed,
    DispatchFailed,
    ProtocolError,
    SessionNotEstablished,
    UnknownProvider,
    WalletSessionError,
)
from .providers import PHANTOM, SOLFLARE, ProviderConfig, ProviderRegistry
from .runtime import run
from .security import CryptoSession, EphemeralKeyPair, SharedSecret
from .session import SessionStore, WalletSessionManager, WalletSessionStateMachine
from .types import (
    ConnectionStatus,
    ErrorCallback,
    ErrorDescriptor,
    ErrorKind,
    PayloadCallback,
    ProviderSessionState,
    Unrecognized,
)

__all__ = [
    "ConnectionStatus",
    "CryptoSession",
    "DecryptionFailed",
    "DispatchFailed",
    "EphemeralKeyPair",
    "ErrorCallback",
    "ErrorDescriptor",
    "ErrorKind",
    "PHANTOM",
    "PayloadCallback",
    "ProtocolError",
    "ProviderConfig",
    "ProviderRegistry",
    "ProviderSessionState",
    "SOLFLARE",
    "SessionNotEstablished",
    "SessionStore",
    "Settings",
    "SharedSecret",
    "UnknownProvider",
    "Unrecognized",
    "WalletSessionError",
    "WalletSessionManager",
    "WalletSessionStateMachine",
    "run",
]
