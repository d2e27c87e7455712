from .manager import WalletSessionManager
from .state_machine import UrlDispatcher, WalletSessionStateMachine
from .store import SessionStore

__all__ = [
    "SessionStore",
    "UrlDispatcher",
    "WalletSessionManager",
    "WalletSessionStateMachine",
]
