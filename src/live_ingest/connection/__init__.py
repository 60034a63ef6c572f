from .reconnect_policy import ReconnectPolicy
from .state_machine import ConnectionSession, ConnectionState, ConnectionStateMachine

__all__ = [
    "ReconnectPolicy",
    "ConnectionSession",
    "ConnectionState",
    "ConnectionStateMachine",
]
