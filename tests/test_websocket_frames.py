"""Tests for the RFC 6455 frame codec."""

import asyncio
import struct

import pytest

from smallapi.errors import ConnectionClosed, ProtocolError
from smallapi.websocket.frames import (
    CloseCode,
    Opcode,
    apply_mask,
    encode_close_payload,
    encode_frame,
    parse_close_payload,
    read_frame,
)

MASK = b"\x37\xfa\x21\x3d"


def _reader(data: bytes) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    reader.feed_data(data)
    reader.feed_eof()
    return reader


class TestApplyMask:
    def test_rfc_example(self) -> None:
        # RFC 6455 section 5.7: masked "Hello"
        assert apply_mask(b"Hello", MASK) == b"\x7f\x9f\x4d\x51\x58"

    def test_involution(self) -> None:
        payload = bytes(range(256))
        assert apply_mask(apply_mask(payload, MASK), MASK) == payload

    def test_empty(self) -> None:
        assert apply_mask(b"", MASK) == b""

    def test_bad_mask(self) -> None:
        with pytest.raises(ValueError):
            apply_mask(b"x", b"\x00")


class TestEncodeFrame:
    def test_unmasked_text(self) -> None:
        assert encode_frame(b"Hello") == b"\x81\x05Hello"

    def test_masked_text(self) -> None:
        assert encode_frame(b"Hello", mask=MASK) == b"\x81\x85" + MASK + b"\x7f\x9f\x4d\x51\x58"

    def test_random_mask(self) -> None:
        frame = encode_frame(b"Hello", mask=b"")
        assert frame[1] == 0x85
        assert apply_mask(frame[6:], frame[2:6]) == b"Hello"

    def test_non_final(self) -> None:
        assert encode_frame(b"a", Opcode.BINARY, fin=False)[0] == 0x02

    @pytest.mark.parametrize(
        ("size", "header"),
        [
            (125, b"\x82\x7d"),
            (126, b"\x82\x7e" + struct.pack("!H", 126)),
            (65535, b"\x82\x7e" + struct.pack("!H", 65535)),
            (65536, b"\x82\x7f" + struct.pack("!Q", 65536)),
        ],
    )
    def test_length_forms(self, size: int, header: bytes) -> None:
        frame = encode_frame(b"x" * size, Opcode.BINARY)
        assert frame[: len(header)] == header
        assert len(frame) == len(header) + size


class TestReadFrame:
    async def test_masked_text(self) -> None:
        frame = await read_frame(_reader(encode_frame(b"Hello", mask=MASK)))
        assert frame.fin
        assert frame.opcode == Opcode.TEXT
        assert frame.payload == b"Hello"
        assert frame.masked

    @pytest.mark.parametrize("size", [0, 125, 126, 70_000])
    async def test_length_forms(self, size: int) -> None:
        payload = bytes(i % 251 for i in range(size))
        frame = await read_frame(_reader(encode_frame(payload, Opcode.BINARY, mask=MASK)))
        assert frame.payload == payload

    async def test_unmasked_allowed_when_not_required(self) -> None:
        frame = await read_frame(_reader(encode_frame(b"hi")), require_mask=False)
        assert frame.payload == b"hi"

    async def test_unmasked_rejected(self) -> None:
        with pytest.raises(ProtocolError, match="must be masked"):
            await read_frame(_reader(encode_frame(b"hi")))

    async def test_reserved_bits(self) -> None:
        with pytest.raises(ProtocolError, match="Reserved bits"):
            await read_frame(_reader(b"\xc1\x80" + MASK))

    async def test_unknown_opcode(self) -> None:
        with pytest.raises(ProtocolError, match="Unknown opcode"):
            await read_frame(_reader(b"\x83\x80" + MASK))

    async def test_fragmented_control_frame(self) -> None:
        data = encode_frame(b"", Opcode.PING, fin=False, mask=MASK)
        with pytest.raises(ProtocolError, match="Control frames"):
            await read_frame(_reader(data))

    async def test_oversized_control_frame(self) -> None:
        data = encode_frame(b"x" * 126, Opcode.PING, mask=MASK)
        with pytest.raises(ProtocolError, match="Control frames"):
            await read_frame(_reader(data))

    async def test_max_size(self) -> None:
        data = encode_frame(b"x" * 200, Opcode.BINARY, mask=MASK)
        with pytest.raises(ProtocolError, match="exceeds"):
            await read_frame(_reader(data), max_size=100)

    async def test_truncated(self) -> None:
        data = encode_frame(b"Hello", mask=MASK)[:-2]
        with pytest.raises(ConnectionClosed) as info:
            await read_frame(_reader(data))
        assert info.value.code == CloseCode.ABNORMAL

    async def test_eof_before_frame(self) -> None:
        with pytest.raises(ConnectionClosed):
            await read_frame(_reader(b""))


class TestClosePayload:
    def test_encode(self) -> None:
        assert encode_close_payload(1000, "bye") == b"\x03\xe8bye"

    def test_parse(self) -> None:
        assert parse_close_payload(b"\x03\xe9away") == (1001, "away")

    def test_empty_means_no_status(self) -> None:
        assert parse_close_payload(b"") == (CloseCode.NO_STATUS, "")

    def test_one_byte(self) -> None:
        with pytest.raises(ProtocolError):
            parse_close_payload(b"\x03")

    def test_bad_utf8_reason(self) -> None:
        with pytest.raises(ProtocolError):
            parse_close_payload(b"\x03\xe8\xff")
