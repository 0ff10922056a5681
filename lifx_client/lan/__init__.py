"""LAN protocol client: binary frames over UDP, port 56700 by default."""

from lifx_client.lan.client import LanClient
from lifx_client.lan.exchange import Datagram, ExchangeState, PendingExchange
from lifx_client.lan.protocol import Frame, MessageType, encode_message
from lifx_client.lan.sequence import SEQUENCE, SequenceCounter, generate_nonce
from lifx_client.lan.throttle import THROTTLE, RateLimitedTransport

__all__ = [
    "Datagram",
    "ExchangeState",
    "Frame",
    "LanClient",
    "MessageType",
    "PendingExchange",
    "RateLimitedTransport",
    "SEQUENCE",
    "SequenceCounter",
    "THROTTLE",
    "encode_message",
    "generate_nonce",
]
