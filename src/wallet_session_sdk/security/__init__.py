"""Security module for wallet session SDK."""

from .crypto_session import (
    CryptoSession,
    EphemeralKeyPair,
    SharedSecret,
    b58decode,
    b58encode,
)

__all__ = [
    "CryptoSession",
    "EphemeralKeyPair",
    "SharedSecret",
    "b58decode",
    "b58encode",
]
