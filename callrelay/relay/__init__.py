"""HTTP relay surfaces: webhook intake, SSE streams and the control proxy."""

from callrelay.relay.ingest import WebhookIngestor
from callrelay.relay.proxy import ProxyForwarder
from callrelay.relay.server import RelayServer
from callrelay.relay.stream import SessionState, StreamSession

__all__ = [
    "WebhookIngestor",
    "ProxyForwarder",
    "RelayServer",
    "SessionState",
    "StreamSession",
]
