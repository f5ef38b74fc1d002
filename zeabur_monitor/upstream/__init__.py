from zeabur_monitor.upstream.client import (
    UpstreamClient,
    UpstreamError,
    UpstreamMalformedResponse,
    UpstreamRejected,
    UpstreamTimeout,
    UpstreamTransport,
)

__all__ = [
    "UpstreamClient",
    "UpstreamError",
    "UpstreamMalformedResponse",
    "UpstreamRejected",
    "UpstreamTimeout",
    "UpstreamTransport",
]
