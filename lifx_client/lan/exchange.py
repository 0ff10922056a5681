"""Request/response correlation for the LAN client.

A ``PendingExchange`` sends one frame and then captures *every* datagram the
client receives until its window closes.  Nothing is filtered by sequence or
source: overlapping exchanges on the same socket each see all inbound
traffic that arrives during their own window.

States
------
    IDLE -> SENDING -> LISTENING -> CLOSED
    SENDING -> CLOSED (transport error, no listener was attached)
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from loguru import logger

from lifx_client.errors import FrameDecodeError, TransportError
from lifx_client.events import EventChannel
from lifx_client.lan.protocol import Frame
from lifx_client.lan.throttle import RateLimitedTransport

DEFAULT_TIMEOUT = 1.0  # seconds


@dataclass(frozen=True)
class Datagram:
    """One inbound UDP datagram."""

    data: bytes
    address: tuple[str, int] | Any = None
    received_at: float = field(default_factory=time.time, compare=False)

    @property
    def frame(self) -> Frame:
        """Decode the datagram (raises ``FrameDecodeError`` when malformed)."""
        return Frame.from_bytes(self.data)

    def try_frame(self) -> Frame | None:
        """Decode the datagram, or return ``None`` when it is not a frame."""
        try:
            return self.frame
        except FrameDecodeError:
            return None


class ExchangeState(str, Enum):
    IDLE = "idle"
    SENDING = "sending"
    LISTENING = "listening"
    CLOSED = "closed"


class PendingExchange:
    """One outstanding ``discover``/``send`` call.

    Parameters
    ----------
    events:
        The client's event channel; datagrams arrive as ``"message"`` events.
    transport:
        Throttled sender used for the request frame.
    sock:
        The client's UDP socket.
    frame:
        Encoded request.
    address:
        Destination ``(host, port)``.
    timeout:
        Listening window in seconds.
    """

    def __init__(
        self,
        events: EventChannel,
        transport: RateLimitedTransport,
        sock: Any,
        frame: bytes,
        address: tuple[str, int],
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.events = events
        self.transport = transport
        self.sock = sock
        self.frame = frame
        self.address = address
        self.timeout = timeout
        self.datagrams: list[Datagram] = []
        self.deadline: float | None = None
        self.state = ExchangeState.IDLE

    def _consume(self, datagram: Datagram) -> None:
        self.datagrams.append(datagram)

    async def run(self) -> list[Datagram]:
        """Send the frame, listen for the window, return what arrived.

        A window that closes with nothing captured is not an error.

        Raises:
            TransportError: the send failed; raised without waiting for the
                window
        """
        if self.state is not ExchangeState.IDLE:
            raise RuntimeError(f"exchange already {self.state.value}")

        self.state = ExchangeState.SENDING
        try:
            await self.transport.send(self.sock, self.frame, self.address)
        except TransportError:
            self.state = ExchangeState.CLOSED
            logger.warning("[LAN/Exchange] send to {} failed", self.address)
            raise

        loop = asyncio.get_running_loop()
        self.deadline = loop.time() + self.timeout
        self.events.on("message", self._consume)
        self.state = ExchangeState.LISTENING
        try:
            await asyncio.sleep(self.timeout)
        finally:
            self.events.off("message", self._consume)
            self.state = ExchangeState.CLOSED

        logger.debug(
            "[LAN/Exchange] window of {:.3f}s closed with {} datagram(s)",
            self.timeout, len(self.datagrams),
        )
        return list(self.datagrams)
