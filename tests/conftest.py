"""Shared fixtures: a recording dispatcher and a fake wallet app."""

import json
from urllib.parse import urlencode

import base58
import pytest
from nacl.public import Box, PrivateKey, PublicKey

from wallet_session_sdk import Settings, WalletSessionManager
from wallet_session_sdk.transport.deeplink import query_params


class FakeWallet:
    """Plays the external wallet app: answers deep links with encrypted callbacks."""

    def __init__(self, name: str, redirect: str, key_param: str):
        self.name = name
        self.redirect = redirect
        self.key_param = key_param
        self.secret = PrivateKey.generate()

    @property
    def public_key(self) -> bytes:
        return bytes(self.secret.public_key)

    def box_for(self, request_url: str) -> Box:
        dapp_key = base58.b58decode(query_params(request_url)["dapp_encryption_public_key"])
        return Box(self.secret, PublicKey(dapp_key))

    def open_request(self, request_url: str) -> dict:
        """Decrypt the data/nonce envelope of a sign request."""
        params = query_params(request_url)
        plaintext = self.box_for(request_url).decrypt(
            base58.b58decode(params["data"]), base58.b58decode(params["nonce"])
        )
        return json.loads(plaintext)

    def callback(
        self, request_url: str, payload: dict, include_key: bool = True, data_key: str = "data"
    ) -> str:
        encrypted = self.box_for(request_url).encrypt(json.dumps(payload).encode())
        params = {
            "nonce": base58.b58encode(encrypted.nonce).decode(),
            data_key: base58.b58encode(encrypted.ciphertext).decode(),
        }
        if include_key:
            params[self.key_param] = base58.b58encode(self.public_key).decode()
        return f"{self.redirect}?{urlencode(params)}"

    def error(self, code: str, message: str | None = None) -> str:
        params = {"errorCode": code}
        if message:
            params["errorMessage"] = message
        return f"{self.redirect}?{urlencode(params)}"


@pytest.fixture
def settings():
    return Settings(dapp_url="https://delivery.example", cluster="devnet")


@pytest.fixture
def dispatched():
    return []


@pytest.fixture
def manager(settings, dispatched):
    mgr = WalletSessionManager(settings, dispatcher=dispatched.append)
    yield mgr
    mgr.close()


@pytest.fixture
def phantom_wallet():
    return FakeWallet(
        "phantom", "blockdeliveryapp://phantom-connect", "phantom_encryption_public_key"
    )


@pytest.fixture
def solflare_wallet():
    return FakeWallet(
        "solflare", "blockdeliveryapp://solflare-connect", "solflare_encryption_public_key"
    )


@pytest.fixture
def make_wallet():
    return FakeWallet
