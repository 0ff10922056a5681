"""Tests for LAN frame encoding/decoding, nonces and the sequence counter."""

from __future__ import annotations

import pytest

from lifx_client.errors import FrameDecodeError, OversizedMessageError
from lifx_client.lan.protocol import (
    ALL_DEVICES,
    HEADER_SIZE,
    MAX_FRAME_SIZE,
    RESPONSE_FLAGS_BYTE,
    SEQUENCE_BYTE,
    TAGGED_BYTE,
    Frame,
    MessageType,
    encode_message,
    target_bytes,
)
from lifx_client.lan.sequence import SEQUENCE, SequenceCounter, generate_nonce

SOURCE = b"\x01\x02\x03\x04"


# ---------------------------------------------------------------------------
# Nonce / sequence
# ---------------------------------------------------------------------------


class TestNonce:
    def test_four_bytes(self):
        nonce = generate_nonce()
        assert isinstance(nonce, bytes)
        assert len(nonce) == 4

    def test_nonces_differ(self):
        # 32 random bits: a collision across 20 draws is vanishingly unlikely
        assert len({generate_nonce() for _ in range(20)}) == 20


class TestSequenceCounter:
    def test_starts_at_one(self):
        counter = SequenceCounter()
        assert counter.next() == 1
        assert counter.next() == 2

    def test_wraps_after_256(self):
        counter = SequenceCounter()
        values = [counter.next() for _ in range(256)]
        assert values[0] == 1
        assert values[254] == 255
        assert values[255] == 0
        assert counter.next() == 1

    def test_process_wide_instance(self):
        assert isinstance(SEQUENCE, SequenceCounter)
        before = SEQUENCE.value
        encode_message(SOURCE, MessageType.GET_SERVICE)
        assert SEQUENCE.value == (before + 1) % 256


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


class TestEncodeMessage:
    def test_header_layout(self):
        raw = encode_message(SOURCE, MessageType.GET_SERVICE, sequence=SequenceCounter())
        assert len(raw) == HEADER_SIZE == 36
        assert raw[0:2] == b"\x00\x24"  # size, big-endian
        assert raw[2] == 0b00010100  # addressable + protocol high nibble
        assert raw[3] == 0x00  # protocol low byte
        assert raw[4:8] == SOURCE
        assert raw[8:16] == ALL_DEVICES
        assert raw[16:22] == bytes(6)
        assert raw[RESPONSE_FLAGS_BYTE] == 0
        assert raw[SEQUENCE_BYTE] == 1
        assert raw[24:32] == bytes(8)
        assert raw[32:34] == b"\x00\x02"
        assert raw[34:36] == bytes(2)

    def test_tagged_and_response_bits(self):
        raw = encode_message(
            SOURCE, MessageType.GET_SERVICE,
            tagged=True, ack_required=True, res_required=True,
            sequence=SequenceCounter(),
        )
        assert raw[TAGGED_BYTE] == 0b00110100
        assert raw[RESPONSE_FLAGS_BYTE] == 0b11

    def test_ack_only(self):
        raw = encode_message(SOURCE, 21, ack_required=True, sequence=SequenceCounter())
        assert raw[RESPONSE_FLAGS_BYTE] == 0b10
        assert raw[TAGGED_BYTE] & 0b00100000 == 0

    def test_payload_and_size(self):
        raw = encode_message(SOURCE, MessageType.SET_POWER, b"\xff\xff", sequence=SequenceCounter())
        assert len(raw) == 38
        assert raw[0:2] == b"\x00\x26"
        assert raw[HEADER_SIZE:] == b"\xff\xff"
        assert raw[32:34] == b"\x00\x15"

    def test_target(self):
        raw = encode_message(SOURCE, 101, target=0xD073D5000102, sequence=SequenceCounter())
        assert raw[8:16] == b"\x00\x00\xd0\x73\xd5\x00\x01\x02"

    def test_short_target_is_padded(self):
        assert target_bytes(b"\xd0\x73\xd5\x00\x01\x02") == b"\xd0\x73\xd5\x00\x01\x02\x00\x00"
        assert target_bytes(None) == ALL_DEVICES

    def test_target_too_long(self):
        with pytest.raises(ValueError):
            target_bytes(bytes(9))

    def test_sequence_increments_per_message(self):
        counter = SequenceCounter(value=254)
        first = encode_message(SOURCE, 2, sequence=counter)
        second = encode_message(SOURCE, 2, sequence=counter)
        assert first[SEQUENCE_BYTE] == 255
        assert second[SEQUENCE_BYTE] == 0

    def test_deterministic_apart_from_sequence(self):
        counter = SequenceCounter()
        a = encode_message(SOURCE, 102, b"payload", res_required=True, sequence=counter)
        b = encode_message(SOURCE, 102, b"payload", res_required=True, sequence=counter)
        assert a != b
        assert a[:SEQUENCE_BYTE] == b[:SEQUENCE_BYTE]
        assert a[SEQUENCE_BYTE + 1:] == b[SEQUENCE_BYTE + 1:]

    def test_largest_allowed_payload(self):
        payload = bytes(MAX_FRAME_SIZE - HEADER_SIZE)
        raw = encode_message(SOURCE, 2, payload, sequence=SequenceCounter())
        assert len(raw) == MAX_FRAME_SIZE
        assert raw[0:2] == b"\xff\xff"

    def test_oversized_rejected_without_drawing_sequence(self):
        counter = SequenceCounter()
        with pytest.raises(OversizedMessageError) as info:
            encode_message(SOURCE, 2, bytes(MAX_FRAME_SIZE - HEADER_SIZE + 1), sequence=counter)
        assert info.value.size == MAX_FRAME_SIZE + 1
        assert counter.value == 0

    @pytest.mark.parametrize(
        "source, message_type",
        [(SOURCE, 70000), (SOURCE, -1), (b"\x01\x02\x03", 2)],
    )
    def test_invalid_header_rejected_without_drawing_sequence(self, source, message_type):
        counter = SequenceCounter()
        with pytest.raises(ValueError):
            encode_message(source, message_type, sequence=counter)
        assert counter.value == 0
        assert encode_message(SOURCE, 2, sequence=counter)[SEQUENCE_BYTE] == 1


# ---------------------------------------------------------------------------
# Frame
# ---------------------------------------------------------------------------


class TestFrame:
    def test_decode_encoded(self):
        raw = encode_message(
            SOURCE, MessageType.LIGHT_SET_COLOR, b"\x00\x01\x02",
            ack_required=True, target=b"\xd0\x73\xd5\x00\x00\x01",
            sequence=SequenceCounter(value=41),
        )
        frame = Frame.from_bytes(raw)
        assert frame.source == SOURCE
        assert frame.message_type == MessageType.LIGHT_SET_COLOR
        assert frame.payload == b"\x00\x01\x02"
        assert frame.sequence == 42
        assert frame.ack_required and not frame.res_required
        assert not frame.tagged
        assert frame.addressable
        assert frame.protocol == 1024
        assert frame.origin == 0
        assert not frame.is_broadcast
        assert frame.to_bytes() == raw

    def test_too_short(self):
        with pytest.raises(FrameDecodeError, match="too short"):
            Frame.from_bytes(b"\x00" * 10)

    def test_size_mismatch(self):
        raw = encode_message(SOURCE, 2, b"abc", sequence=SequenceCounter())
        with pytest.raises(FrameDecodeError, match="mismatch"):
            Frame.from_bytes(raw[:-1])

    def test_frame_is_immutable(self):
        frame = Frame(source=SOURCE, message_type=2)
        with pytest.raises(AttributeError):
            frame.sequence = 5  # type: ignore[misc]

    def test_validation(self):
        with pytest.raises(ValueError):
            Frame(source=b"\x01", message_type=2)
        with pytest.raises(ValueError):
            Frame(source=SOURCE, message_type=2, sequence=256)
        with pytest.raises(OversizedMessageError):
            Frame(source=SOURCE, message_type=2, payload=bytes(MAX_FRAME_SIZE))

    def test_repr_names_known_types(self):
        assert "GET_SERVICE" in repr(Frame(source=SOURCE, message_type=2))
        assert "type=9999" in repr(Frame(source=SOURCE, message_type=9999))
