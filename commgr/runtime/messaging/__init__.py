"""Channel messaging -- transport, channel output map, and dispatch router."""

from .channels import ChannelAddress, ChannelOutputMap
from .transport import HttpRequester, HttpTransport, Requester, ServiceDirectory

__all__ = [
    "ChannelAddress",
    "ChannelOutputMap",
    "HttpRequester",
    "HttpTransport",
    "Requester",
    "ServiceDirectory",
]
