"""URL framing for the wallet universal-link protocol."""

from __future__ import annotations

import base64
import logging
from urllib.parse import parse_qs, urlencode, urlparse

from ..providers import ProviderConfig
from ..security.crypto_session import b58decode
from ..types import CallbackFields, ErrorCallback, PayloadCallback, Unrecognized

logger = logging.getLogger(__name__)

CONNECT_PATH = "/ul/v1/connect"
SIGN_AND_SEND_PATH = "/ul/v1/signAndSendTransaction"


def _build_url(base_url: str, path: str, params: dict[str, str]) -> str:
    return f"{base_url.rstrip('/')}{path}?{urlencode(params)}"


def build_connect_url(
    provider_base_url: str,
    app_url: str,
    dapp_public_key_b58: str,
    redirect_url: str,
    cluster: str,
) -> str:
    return _build_url(
        provider_base_url,
        CONNECT_PATH,
        {
            "app_url": app_url,
            "dapp_encryption_public_key": dapp_public_key_b58,
            "redirect_link": redirect_url,
            "cluster": cluster,
        },
    )


def build_sign_url(
    provider_base_url: str,
    app_url: str,
    dapp_public_key_b58: str,
    redirect_url: str,
    cluster: str,
    nonce_b58: str,
    data_b58: str,
) -> str:
    return _build_url(
        provider_base_url,
        SIGN_AND_SEND_PATH,
        {
            "app_url": app_url,
            "dapp_encryption_public_key": dapp_public_key_b58,
            "redirect_link": redirect_url,
            "cluster": cluster,
            "nonce": nonce_b58,
            "data": data_b58,
        },
    )


def encode_transaction(raw: bytes) -> str:
    """Unsigned transaction bytes as carried inside the sign envelope."""
    return base64.b64encode(raw).decode("ascii")


def query_params(url: str) -> dict[str, str]:
    """First value of every query parameter, blanks dropped."""
    parsed = parse_qs(urlparse(url).query)
    return {key: values[0] for key, values in parsed.items() if values}


def callback_route(url: str) -> str:
    """Redirect route a callback URL targets.

    blockdeliveryapp://phantom-connect, https://host/phantom-connect and
    exp://host:8081/--/phantom-connect all give "phantom-connect".
    """
    parsed = urlparse(url)
    segments = [segment for segment in parsed.path.split("/") if segment]
    if segments:
        return segments[-1]
    return parsed.netloc


def parse_callback(url: str, provider: ProviderConfig) -> CallbackFields:
    """Classify an inbound callback URL for one provider.

    Explicit errors win over everything else. A payload needs ciphertext and
    nonce; the provider's encryption public key is carried when present.
    """
    params = query_params(url)

    if "errorCode" in params:
        return ErrorCallback(code=params["errorCode"], message=params.get("errorMessage"))

    encoded_payload = next(
        (params[key] for key in provider.payload_params if key in params), None
    )
    encoded_nonce = params.get("nonce")
    if encoded_payload is None:
        return Unrecognized(reason="missing payload")
    if encoded_nonce is None:
        return Unrecognized(reason="missing nonce")

    encoded_key = params.get(provider.encryption_public_key_param)
    try:
        ciphertext = b58decode(encoded_payload)
        nonce = b58decode(encoded_nonce)
        remote_public_key = b58decode(encoded_key) if encoded_key is not None else None
    except ValueError:
        logger.debug(f"Callback for {provider.name} has non-base58 fields")
        return Unrecognized(reason="invalid base58")

    return PayloadCallback(
        ciphertext=ciphertext,
        nonce=nonce,
        remote_public_key=remote_public_key,
    )
