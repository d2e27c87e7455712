from .deeplink import (
    build_connect_url,
    build_sign_url,
    callback_route,
    encode_transaction,
    parse_callback,
    query_params,
)
from .dispatch import open_in_browser

__all__ = [
    "build_connect_url",
    "build_sign_url",
    "callback_route",
    "encode_transaction",
    "open_in_browser",
    "parse_callback",
    "query_params",
]
