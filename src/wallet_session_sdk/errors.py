from __future__ import annotations

from .types import ErrorDescriptor, ErrorKind


class WalletSessionError(Exception):
    kind: ErrorKind = ErrorKind.PROVIDER_ERROR

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code

    @property
    def descriptor(self) -> ErrorDescriptor:
        return ErrorDescriptor(kind=self.kind, message=self.message, code=self.code)


class DecryptionFailed(WalletSessionError):
    kind = ErrorKind.DECRYPTION_FAILED


class SessionNotEstablished(WalletSessionError):
    kind = ErrorKind.SESSION_NOT_ESTABLISHED


class DispatchFailed(WalletSessionError):
    kind = ErrorKind.DISPATCH_FAILED


class ProtocolError(WalletSessionError):
    kind = ErrorKind.PROTOCOL_ERROR


class UnknownProvider(KeyError):
    pass
