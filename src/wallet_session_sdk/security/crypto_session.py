"""Box encryption for wallet deep-link round trips (X25519 + XSalsa20-Poly1305)."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import base58
from nacl import exceptions as nacl_exceptions
from nacl.bindings import (
    crypto_box_afternm,
    crypto_box_beforenm,
    crypto_box_keypair,
    crypto_box_NONCEBYTES,
    crypto_box_open_afternm,
    crypto_box_PUBLICKEYBYTES,
)
from nacl.utils import random as random_bytes

from ..errors import DecryptionFailed


def b58encode(data: bytes) -> str:
    return base58.b58encode(data).decode("ascii")


def b58decode(value: str) -> bytes:
    return base58.b58decode(value)


def _wipe(buf: bytearray) -> None:
    for i in range(len(buf)):
        buf[i] = 0


@dataclass(eq=False)
class EphemeralKeyPair:
    """Box keypair generated for a single connect attempt."""

    public_key: bytes
    _secret_key: bytearray = field(repr=False)
    _discarded: bool = field(default=False, repr=False)

    @property
    def secret_key(self) -> bytes:
        if self._discarded:
            raise RuntimeError("Keypair has been discarded")
        return bytes(self._secret_key)

    @property
    def alive(self) -> bool:
        return not self._discarded

    @property
    def public_key_b58(self) -> str:
        return b58encode(self.public_key)

    def discard(self) -> None:
        """Zero the secret key and mark the keypair unusable."""
        _wipe(self._secret_key)
        self._discarded = True


@dataclass(eq=False)
class SharedSecret:
    """Precomputed box key for one (local secret, remote public key) pair."""

    remote_public_key: bytes
    _key: bytearray = field(repr=False)
    _discarded: bool = field(default=False, repr=False)

    @property
    def key(self) -> bytes:
        if self._discarded:
            raise RuntimeError("Shared secret has been discarded")
        return bytes(self._key)

    @property
    def alive(self) -> bool:
        return not self._discarded

    def discard(self) -> None:
        _wipe(self._key)
        self._discarded = True


class CryptoSession:
    """Produces and consumes the encrypted envelope used for every wallet round trip."""

    NONCE_SIZE = crypto_box_NONCEBYTES
    PUBLIC_KEY_SIZE = crypto_box_PUBLICKEYBYTES

    def generate_keypair(self) -> EphemeralKeyPair:
        """Generate a keypair from libsodium's CSPRNG."""
        public_key, secret_key = crypto_box_keypair()
        return EphemeralKeyPair(public_key=public_key, _secret_key=bytearray(secret_key))

    def derive_shared_secret(
        self, local_secret_key: bytes, remote_public_key: bytes
    ) -> SharedSecret:
        if len(remote_public_key) != self.PUBLIC_KEY_SIZE:
            raise DecryptionFailed(
                f"Invalid remote public key length: {len(remote_public_key)} bytes"
            )
        key = crypto_box_beforenm(remote_public_key, local_secret_key)
        return SharedSecret(remote_public_key=remote_public_key, _key=bytearray(key))

    def encrypt(self, shared_secret: SharedSecret, payload: Any) -> tuple[bytes, bytes]:
        """Encrypt a JSON payload under a fresh random nonce.

        Returns:
            (ciphertext, nonce) as raw bytes; callers base58-encode them for transport.
        """
        nonce = random_bytes(self.NONCE_SIZE)
        plaintext = json.dumps(payload).encode("utf-8")
        ciphertext = crypto_box_afternm(plaintext, nonce, shared_secret.key)
        return ciphertext, nonce

    def decrypt(self, shared_secret: SharedSecret, ciphertext: bytes, nonce: bytes) -> Any:
        """Open an envelope and parse its JSON body.

        Any authentication, nonce or decoding failure raises DecryptionFailed.
        The caller must not retry with the same inputs.
        """
        if len(nonce) != self.NONCE_SIZE:
            raise DecryptionFailed(f"Invalid nonce length: {len(nonce)} bytes")
        try:
            plaintext = crypto_box_open_afternm(ciphertext, nonce, shared_secret.key)
        except (nacl_exceptions.CryptoError, ValueError) as err:
            raise DecryptionFailed("Unable to decrypt payload") from err
        try:
            return json.loads(plaintext.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as err:
            raise DecryptionFailed("Decrypted payload is not valid JSON") from err

    def encrypt_b58(self, shared_secret: SharedSecret, payload: Any) -> tuple[str, str]:
        """Encrypt and return (data, nonce) in their base58 wire form."""
        ciphertext, nonce = self.encrypt(shared_secret, payload)
        return b58encode(ciphertext), b58encode(nonce)
