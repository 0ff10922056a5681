"""LAN client: one UDP socket, one nonce, discover/send exchanges.

Usage
-----
>>> client = await LanClient.create(port=0)
>>> replies = await client.discover(timeout=1.0)
>>> for datagram in replies:
...     print(datagram.address, datagram.frame)
>>> await client.close()

Socket faults are never raised into pending calls.  They are published on
``client.events`` as ``"error"`` events carrying a ``SocketFault``; closing
the socket is reported the same way.
"""

from __future__ import annotations

import asyncio
import socket
from typing import Any

from loguru import logger

from lifx_client.errors import SocketFault, TransportError, ValidationError
from lifx_client.events import EventChannel
from lifx_client.lan.exchange import DEFAULT_TIMEOUT, Datagram, PendingExchange
from lifx_client.lan.protocol import DEFAULT_PORT, MessageType, encode_message
from lifx_client.lan.sequence import SEQUENCE, SequenceCounter, generate_nonce
from lifx_client.lan.throttle import THROTTLE, RateLimitedTransport

BROADCAST_ADDRESS = "255.255.255.255"
RECV_BUFFER_SIZE = 0xFFFF


def _is_port(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= 0xFFFF


class LanClient:
    """One LAN session.

    Use :meth:`create` rather than the constructor: it validates the port,
    binds the socket and starts the receive loop.

    Parameters
    ----------
    sock:
        A bound, non-blocking UDP socket owned by this client.
    events:
        Channel for ``"message"`` (``Datagram``) and ``"error"``
        (``SocketFault``) events; a fresh one is created when omitted.
    broadcast_address:
        Destination host for discovery and untargeted sends.
    transport:
        Throttled sender, shared process-wide by default.
    sequence:
        Sequence counter, shared process-wide by default.
    """

    def __init__(
        self,
        sock: socket.socket,
        *,
        events: EventChannel | None = None,
        broadcast_address: str = BROADCAST_ADDRESS,
        transport: RateLimitedTransport = THROTTLE,
        sequence: SequenceCounter = SEQUENCE,
    ) -> None:
        self.socket = sock
        self.events = events or EventChannel()
        self.broadcast_address = broadcast_address
        self.transport = transport
        self.sequence = sequence
        self.nonce = generate_nonce()
        self._recv_task: asyncio.Task | None = None
        self._closed = False

        self.events.on("error", self._log_fault)
        self.events.on("message", self._log_message)

    # -- construction --------------------------------------------------------

    @classmethod
    async def create(
        cls,
        port: int = DEFAULT_PORT,
        sock: socket.socket | None = None,
        *,
        host: str = "0.0.0.0",
        **kwargs: Any,
    ) -> "LanClient":
        """Bind a socket on *port* and return a listening client.

        Raises:
            ValidationError: *port* is not an integer in [0, 65535]
            TransportError: binding failed
        """
        if not _is_port(port):
            raise ValidationError(f"port must be a valid 16-bit integer, got {port!r}")
        if sock is None:
            sock = cls.create_broadcast_socket()
        try:
            sock.bind((host, port))
        except OSError as exc:
            sock.close()
            raise TransportError(f"could not bind {host}:{port}: {exc}") from exc

        client = cls(sock, **kwargs)
        client._start()
        logger.info(
            "[LAN/Client] bound {}:{} nonce={}",
            host, client.local_port, client.nonce.hex(),
        )
        return client

    @staticmethod
    def create_broadcast_socket(
        family: int = socket.AF_INET,
        reuse_addr: bool = True,
    ) -> socket.socket:
        """Return a non-blocking UDP socket with ``SO_BROADCAST`` enabled."""
        sock = socket.socket(family, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
        if reuse_addr:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        sock.setblocking(False)
        return sock

    @property
    def local_port(self) -> int:
        return self.socket.getsockname()[1]

    @property
    def closed(self) -> bool:
        return self._closed

    # -- receiving -----------------------------------------------------------

    def _start(self) -> None:
        self._recv_task = asyncio.create_task(
            self._recv_loop(), name=f"lan-recv-{self.nonce.hex()}",
        )

    async def _recv_loop(self) -> None:
        loop = asyncio.get_running_loop()
        while not self._closed:
            try:
                data, address = await loop.sock_recvfrom(self.socket, RECV_BUFFER_SIZE)
            except OSError as exc:
                if self._closed:
                    break
                self.events.emit("error", SocketFault(f"receive failed: {exc}"))
                await asyncio.sleep(0.1)
                continue
            self.events.emit("message", Datagram(data, address))

    def _log_fault(self, fault: BaseException) -> None:
        logger.warning("[LAN/Client] {}", fault)

    def _log_message(self, datagram: Datagram) -> None:
        logger.debug(
            "[LAN/Client] received {} bytes from {}", len(datagram.data), datagram.address,
        )

    # -- exchanges -----------------------------------------------------------

    async def _exchange(
        self,
        frame: bytes,
        address: tuple[str, int],
        timeout: float,
    ) -> list[Datagram]:
        exchange = PendingExchange(
            self.events, self.transport, self.socket, frame, address, timeout,
        )
        return await exchange.run()

    async def discover(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        port: int = DEFAULT_PORT,
    ) -> list[Datagram]:
        """Broadcast a tagged ``GET_SERVICE`` and return every reply in the window.

        Raises:
            ValidationError: *port* is not an integer in [0, 65535]
        """
        if not _is_port(port):
            raise ValidationError(f"port must be a valid 16-bit integer, got {port!r}")
        logger.info("[LAN/Client] will discover on port {}", port)
        frame = encode_message(
            self.nonce,
            MessageType.GET_SERVICE,
            tagged=True,
            ack_required=True,
            res_required=True,
            sequence=self.sequence,
        )
        return await self._exchange(frame, (self.broadcast_address, port), timeout)

    async def send(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        payload: bytes = b"",
        *,
        message_type: int = 0,
        target: bytes | int | None = None,
        host: str | None = None,
        port: int = DEFAULT_PORT,
        ack_required: bool = False,
        res_required: bool = False,
    ) -> list[Datagram]:
        """Send one opcode payload and return every datagram received in the window.

        The frame is never tagged.  It goes to *host* when given, otherwise
        to the broadcast address.

        Raises:
            ValidationError: *port* is not an integer in [0, 65535]
            OversizedMessageError: the frame would exceed 65535 bytes
            TransportError: the socket refused the datagram
        """
        if not _is_port(port):
            raise ValidationError(f"port must be a valid 16-bit integer, got {port!r}")
        logger.info(
            "[LAN/Client] will send type={} payload={}B", message_type, len(payload),
        )
        frame = encode_message(
            self.nonce,
            message_type,
            payload,
            ack_required=ack_required,
            res_required=res_required,
            target=target,
            sequence=self.sequence,
        )
        address = (host or self.broadcast_address, port)
        return await self._exchange(frame, address, timeout)

    # -- lifecycle -----------------------------------------------------------

    async def close(self) -> None:
        """Stop receiving and close the socket.

        The close is published as a ``SocketFault`` on ``events``.
        """
        if self._closed:
            return
        self._closed = True
        if self._recv_task is not None and not self._recv_task.done():
            self._recv_task.cancel()
            try:
                await self._recv_task
            except asyncio.CancelledError:
                pass
        self._recv_task = None
        self.socket.close()
        self.events.emit("error", SocketFault("socket was closed"))

    async def __aenter__(self) -> "LanClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"LanClient(nonce={self.nonce.hex()}, closed={self._closed})"
