"""Binary frame format for the LAN protocol.

Every datagram starts with a 36-byte header made of three segments, followed
by an opcode-specific payload.  Multi-byte integers are big-endian.

Frame header (8 bytes)
----------------------
    SSSSSSSS SSSSSSSS OOTAPPPP PPPPPPPP
    ssssssss ssssssss ssssssss ssssssss

    S = size of the whole message (uint16)
    O = origin (2 bits, always 0)
    T = tagged (set for discovery broadcasts)
    A = addressable (always 1)
    P = protocol (12 bits, always 1024)
    s = source (the client nonce, 4 bytes)

Frame address (16 bytes)
------------------------
    target (8 bytes, all zero = every device), 6 reserved bytes,
    one flags byte (bit 1 ack_required, bit 0 res_required), sequence (uint8)

Protocol header (12 bytes)
--------------------------
    8 reserved bytes, message type (uint16), 2 reserved bytes
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, replace
from enum import IntEnum

from lifx_client.errors import FrameDecodeError, OversizedMessageError
from lifx_client.lan.sequence import NONCE_SIZE, SEQUENCE, SequenceCounter

FRAME_HEADER = struct.Struct(">HH4s")
FRAME_ADDRESS = struct.Struct(">8s6xBB")
PROTOCOL_HEADER = struct.Struct(">8xH2x")

FRAME_HEADER_OFFSET = 0
FRAME_ADDRESS_OFFSET = FRAME_HEADER_OFFSET + FRAME_HEADER.size  # 8
PROTOCOL_HEADER_OFFSET = FRAME_ADDRESS_OFFSET + FRAME_ADDRESS.size  # 24
HEADER_SIZE = PROTOCOL_HEADER_OFFSET + PROTOCOL_HEADER.size  # 36

# Byte offsets of single fields inside the encoded frame
TAGGED_BYTE = 2
RESPONSE_FLAGS_BYTE = FRAME_ADDRESS_OFFSET + 14  # 22
SEQUENCE_BYTE = FRAME_ADDRESS_OFFSET + 15  # 23

MAX_FRAME_SIZE = 0xFFFF
PROTOCOL = 1024
TARGET_SIZE = 8
ALL_DEVICES = bytes(TARGET_SIZE)

ORIGIN_SHIFT = 14
TAGGED_BIT = 1 << 13
ADDRESSABLE_BIT = 1 << 12
PROTOCOL_MASK = 0x0FFF

ACK_REQUIRED_BIT = 0b10
RES_REQUIRED_BIT = 0b01

DEFAULT_PORT = 56700


class MessageType(IntEnum):
    """Common opcodes written into the protocol header."""

    GET_SERVICE = 2
    STATE_SERVICE = 3
    GET_POWER = 20
    SET_POWER = 21
    STATE_POWER = 22
    ACKNOWLEDGEMENT = 45
    ECHO_REQUEST = 58
    ECHO_RESPONSE = 59
    LIGHT_GET = 101
    LIGHT_SET_COLOR = 102
    LIGHT_STATE = 107


def frame_size(payload: bytes = b"") -> int:
    """Total encoded length of a frame carrying *payload*."""
    return HEADER_SIZE + len(payload)


def target_bytes(target: bytes | int | None) -> bytes:
    """Normalise a device address to its 8-byte wire form.

    ``None`` and ``0`` address every device.
    """
    if target is None:
        return ALL_DEVICES
    if isinstance(target, int):
        return target.to_bytes(TARGET_SIZE, "big")
    target = bytes(target)
    if len(target) > TARGET_SIZE:
        raise ValueError(f"target must be at most {TARGET_SIZE} bytes, got {len(target)}")
    return target.ljust(TARGET_SIZE, b"\x00")


@dataclass(frozen=True)
class Frame:
    """One protocol packet.

    Attributes:
        source: 4-byte nonce of the sending client
        message_type: opcode (see ``MessageType``)
        payload: opcode-specific body
        target: 8-byte device address, all zero for every device
        sequence: one-byte message counter
        tagged: discovery broadcast flag
        ack_required: ask the device for an acknowledgement
        res_required: ask the device for a state response
    """

    source: bytes
    message_type: int
    payload: bytes = b""
    target: bytes = ALL_DEVICES
    sequence: int = 0
    tagged: bool = False
    ack_required: bool = False
    res_required: bool = False
    origin: int = 0
    addressable: bool = True
    protocol: int = PROTOCOL

    def __post_init__(self) -> None:
        if len(self.source) != NONCE_SIZE:
            raise ValueError(f"source must be {NONCE_SIZE} bytes, got {len(self.source)}")
        if len(self.target) != TARGET_SIZE:
            raise ValueError(f"target must be {TARGET_SIZE} bytes, got {len(self.target)}")
        if not 0 <= self.sequence <= 0xFF:
            raise ValueError(f"sequence must be 0-255, got {self.sequence}")
        if not 0 <= self.message_type <= 0xFFFF:
            raise ValueError(f"message_type must be 0-65535, got {self.message_type}")
        if self.size > MAX_FRAME_SIZE:
            raise OversizedMessageError(self.size, MAX_FRAME_SIZE)

    @property
    def size(self) -> int:
        return frame_size(self.payload)

    @property
    def is_broadcast(self) -> bool:
        return self.target == ALL_DEVICES

    # -- serialisation -------------------------------------------------------

    def to_bytes(self) -> bytes:
        buffer = bytearray(self.size)
        bits = (self.origin & 0b11) << ORIGIN_SHIFT | (self.protocol & PROTOCOL_MASK)
        if self.tagged:
            bits |= TAGGED_BIT
        if self.addressable:
            bits |= ADDRESSABLE_BIT
        FRAME_HEADER.pack_into(buffer, FRAME_HEADER_OFFSET, self.size, bits, self.source)

        flags = 0
        if self.ack_required:
            flags |= ACK_REQUIRED_BIT
        if self.res_required:
            flags |= RES_REQUIRED_BIT
        FRAME_ADDRESS.pack_into(
            buffer, FRAME_ADDRESS_OFFSET, self.target, flags, self.sequence,
        )

        PROTOCOL_HEADER.pack_into(buffer, PROTOCOL_HEADER_OFFSET, self.message_type)
        buffer[HEADER_SIZE:] = self.payload
        return bytes(buffer)

    @classmethod
    def from_bytes(cls, data: bytes) -> "Frame":
        """Decode one datagram.

        Raises:
            FrameDecodeError: the data is shorter than a header or its size
                field disagrees with the datagram length
        """
        if len(data) < HEADER_SIZE:
            raise FrameDecodeError(
                f"Frame too short: {len(data)} bytes, minimum {HEADER_SIZE}"
            )
        size, bits, source = FRAME_HEADER.unpack_from(data, FRAME_HEADER_OFFSET)
        if size != len(data):
            raise FrameDecodeError(
                f"Frame length mismatch: got {len(data)}, expected {size}"
            )
        target, flags, sequence = FRAME_ADDRESS.unpack_from(data, FRAME_ADDRESS_OFFSET)
        (message_type,) = PROTOCOL_HEADER.unpack_from(data, PROTOCOL_HEADER_OFFSET)
        return cls(
            source=source,
            message_type=message_type,
            payload=bytes(data[HEADER_SIZE:]),
            target=target,
            sequence=sequence,
            tagged=bool(bits & TAGGED_BIT),
            ack_required=bool(flags & ACK_REQUIRED_BIT),
            res_required=bool(flags & RES_REQUIRED_BIT),
            origin=bits >> ORIGIN_SHIFT,
            addressable=bool(bits & ADDRESSABLE_BIT),
            protocol=bits & PROTOCOL_MASK,
        )

    def __repr__(self) -> str:
        try:
            name = MessageType(self.message_type).name
        except ValueError:
            name = str(self.message_type)
        return (
            f"Frame(type={name}, source={self.source.hex()}, target={self.target.hex()}, "
            f"seq={self.sequence}, tagged={self.tagged}, payload_len={len(self.payload)})"
        )


def encode_message(
    source: bytes,
    message_type: int,
    payload: bytes = b"",
    *,
    tagged: bool = False,
    ack_required: bool = False,
    res_required: bool = False,
    target: bytes | int | None = None,
    sequence: SequenceCounter = SEQUENCE,
) -> bytes:
    """Build the wire bytes for one message.

    The frame is fully validated before a sequence number is drawn, so a
    rejected message leaves the counter untouched.

    Raises:
        OversizedMessageError: the frame would exceed 65535 bytes
        ValueError: invalid source, target or message type
    """
    payload = bytes(payload)
    size = frame_size(payload)
    if size > MAX_FRAME_SIZE:
        raise OversizedMessageError(size, MAX_FRAME_SIZE)
    frame = Frame(
        source=bytes(source),
        message_type=int(message_type),
        payload=payload,
        target=target_bytes(target),
        tagged=tagged,
        ack_required=ack_required,
        res_required=res_required,
    )
    return replace(frame, sequence=sequence.next()).to_bytes()
