from .background_loop import BackgroundLoop
from .base import DISCONNECTED_EVENT, DisconnectReason, TransportAdapter, disconnected_marker
from .broker import BrokerProcess
from .frames import FrameAssembler
from .oauth import OAuthManager, TokenSet
from .oauth_callback import OAuthCallbackServer, authorize_interactively
from .polling import PollingTransport
from .settings_store import LocalSettings
from .streaming import StreamingTransport

__all__ = [
    "BackgroundLoop",
    "DISCONNECTED_EVENT",
    "DisconnectReason",
    "TransportAdapter",
    "disconnected_marker",
    "BrokerProcess",
    "FrameAssembler",
    "OAuthManager",
    "TokenSet",
    "OAuthCallbackServer",
    "authorize_interactively",
    "PollingTransport",
    "LocalSettings",
    "StreamingTransport",
]
