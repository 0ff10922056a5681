"""Error taxonomy shared by the LAN and REST clients."""

from __future__ import annotations

from typing import Any


class LifxError(Exception):
    """Base class for every error raised by ``lifx_client``."""


class ValidationError(LifxError, TypeError):
    """Invalid factory or constructor argument (raised before any I/O)."""


class OversizedMessageError(LifxError, ValueError):
    """An encoded frame would exceed the 65535-byte protocol limit."""

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"frame of {size} bytes exceeds the {limit}-byte limit")
        self.size = size
        self.limit = limit


class FrameDecodeError(LifxError, ValueError):
    """An inbound datagram is not a well-formed frame."""


class TransportError(LifxError, OSError):
    """The socket layer failed to send (or bind).

    The original ``OSError`` is available as ``__cause__``.
    """


class SocketFault(LifxError):
    """Asynchronous socket failure, reported on an event channel."""


class ResponseError(LifxError):
    """The REST API answered with a failure."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
