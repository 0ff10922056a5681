"""Rate-limited UDP send.

Devices drop traffic sent faster than 20 messages per second, so every send
in the process goes through one shared ``RateLimitedTransport`` (``THROTTLE``)
that keeps consecutive transmissions at least 50 ms apart.

Each call reserves the next free slot at the moment it is made and then
sleeps until that slot.  Calls are therefore delayed, never dropped, and hit
the socket in the order they were made, each with its own frame.
"""

from __future__ import annotations

import asyncio
import socket
import time
from typing import Any, Callable

from loguru import logger

from lifx_client.errors import TransportError

DEFAULT_SEND_INTERVAL = 0.05  # seconds (20 messages/second)


class RateLimitedTransport:
    """Throttled ``sock_sendto`` shared by every client.

    Parameters
    ----------
    interval:
        Minimum spacing in seconds between two consecutive sends.
    clock:
        Monotonic time source; injectable for tests.
    """

    def __init__(
        self,
        interval: float = DEFAULT_SEND_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.interval = interval
        self._clock = clock
        self._next_slot = float("-inf")
        self.sent = 0

    def reserve(self) -> float:
        """Claim the next send slot and return how long to wait for it."""
        now = self._clock()
        slot = max(now, self._next_slot)
        self._next_slot = slot + self.interval
        return slot - now

    async def send(
        self,
        sock: socket.socket,
        frame: bytes,
        address: tuple[str, int] | Any,
    ) -> None:
        """Send *frame* to *address* once the throttle allows it.

        Raises:
            TransportError: the socket refused the datagram
        """
        delay = self.reserve()
        if delay > 0:
            logger.debug("[LAN/Throttle] delaying send by {:.3f}s", delay)
            await asyncio.sleep(delay)
        try:
            await self._transmit(sock, frame, address)
        except OSError as exc:
            raise TransportError(f"send to {address} failed: {exc}") from exc
        self.sent += 1
        logger.debug("[LAN/Throttle] sent {} bytes to {}", len(frame), address)

    async def _transmit(
        self,
        sock: socket.socket,
        frame: bytes,
        address: tuple[str, int] | Any,
    ) -> None:
        loop = asyncio.get_running_loop()
        await loop.sock_sendto(sock, frame, address)


THROTTLE = RateLimitedTransport()
