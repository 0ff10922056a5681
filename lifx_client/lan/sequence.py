"""Client nonces and the process-wide message sequence counter."""

from __future__ import annotations

import secrets

NONCE_SIZE = 4


def generate_nonce(length: int = NONCE_SIZE) -> bytes:
    """Return *length* independent random bytes identifying one client."""
    return secrets.token_bytes(length)


class SequenceCounter:
    """Wrapping one-byte counter: 1, 2, ... 255, 0, 1, ...

    One instance (``SEQUENCE``) is shared by every client in the process, so
    creating more clients does not give them separate sequence spaces.  It is
    never reset; tests inject their own instance instead.
    """

    def __init__(self, value: int = 0) -> None:
        self.value = value & 0xFF

    def next(self) -> int:
        self.value = (self.value + 1) % 0x100
        return self.value


SEQUENCE = SequenceCounter()
