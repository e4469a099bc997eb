"""Encodes and decodes depth snapshots for the on-disk log.

A log file is a concatenation of frames:

Length of payload (unsigned, little endian)      4 bytes
Payload                                          length bytes

The payload uses the protobuf wire format so that every frame describes
itself (each field carries its own tag and wire type) and can be decoded
without any state from the frames around it. Reading from left to right:

event_time       field 1, varint (int64, UTC millis)
last_update_id   field 2, varint (int64)
bids             field 3, length delimited Level, repeated
asks             field 4, length delimited Level, repeated

Level:
price            field 1, fixed64 (double)
quantity         field 2, fixed64 (double)

Readers skip fields they don't know about, so new fields can be appended
later without breaking old files.
"""

import struct
from enum import IntEnum
from typing import BinaryIO, List

from helpers.types.depth import DepthSnapshot, Level

LENGTH_PREFIX_BYTES = 4
MAX_PAYLOAD_BYTES = (1 << (8 * LENGTH_PREFIX_BYTES)) - 1

EVENT_TIME_FIELD = 1
LAST_UPDATE_ID_FIELD = 2
BIDS_FIELD = 3
ASKS_FIELD = 4

LEVEL_PRICE_FIELD = 1
LEVEL_QUANTITY_FIELD = 2

_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1
_UINT64_MASK = (1 << 64) - 1
# A 64 bit number needs at most 10 groups of 7 bits
_MAX_VARINT_BYTES = 10

_DOUBLE = struct.Struct("<d")


class WireType(IntEnum):
    VARINT = 0
    FIXED64 = 1
    LENGTH_DELIMITED = 2
    FIXED32 = 5


class DepthLogError(ValueError):
    """Base class for errors reading the depth log"""


class FramingError(DepthLogError):
    """The length prefix does not agree with the bytes left in the stream.

    Once this happens we no longer know where the next frame starts, so
    nothing after this point in the stream can be trusted"""


class PayloadDecodeError(DepthLogError):
    """A frame had a valid length but its payload could not be parsed.

    The stream is still positioned at the start of the next frame"""


########### Encoding #############


def encode(snapshot: DepthSnapshot) -> bytes:
    """Returns the length prefixed frame for a snapshot"""
    payload = encode_payload(snapshot)
    if len(payload) > MAX_PAYLOAD_BYTES:
        raise ValueError(
            f"Payload of {len(payload)} bytes does not fit in the length prefix. "
            + f"Last update id: {snapshot.last_update_id}."
        )
    return len(payload).to_bytes(LENGTH_PREFIX_BYTES, "little") + payload


def encode_payload(snapshot: DepthSnapshot) -> bytes:
    b = bytearray()
    b += _encode_tag(EVENT_TIME_FIELD, WireType.VARINT)
    b += _encode_int64(snapshot.event_time)
    b += _encode_tag(LAST_UPDATE_ID_FIELD, WireType.VARINT)
    b += _encode_int64(snapshot.last_update_id)
    for field_number, levels in (
        (BIDS_FIELD, snapshot.bids),
        (ASKS_FIELD, snapshot.asks),
    ):
        for level in levels:
            level_bytes = _encode_level(level)
            b += _encode_tag(field_number, WireType.LENGTH_DELIMITED)
            b += _encode_varint(len(level_bytes))
            b += level_bytes
    return bytes(b)


def _encode_level(level: Level) -> bytes:
    # Zeros are written out too. Decoders treat a missing field as zero either way
    return (
        _encode_tag(LEVEL_PRICE_FIELD, WireType.FIXED64)
        + _DOUBLE.pack(level.price)
        + _encode_tag(LEVEL_QUANTITY_FIELD, WireType.FIXED64)
        + _DOUBLE.pack(level.quantity)
    )


def _encode_tag(field_number: int, wire_type: WireType) -> bytes:
    return _encode_varint((field_number << 3) | wire_type)


def _encode_int64(value: int) -> bytes:
    """Negative numbers are sent as their 64 bit two's complement, which
    always takes the full 10 bytes"""
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise ValueError(f"{value} does not fit in a signed 64 bit integer")
    return _encode_varint(value & _UINT64_MASK)


def _encode_varint(value: int) -> bytes:
    b = bytearray()
    while True:
        bits = value & 0x7F
        value >>= 7
        if value:
            b.append(bits | 0x80)
        else:
            b.append(bits)
            return bytes(b)


########### Decoding #############


class _PayloadCursor:
    """Walks over a single payload. Any attempt to read past the end of
    the payload raises PayloadDecodeError"""

    def __init__(self, payload: bytes):
        self._payload = payload
        self._pos = 0

    def at_end(self) -> bool:
        return self._pos >= len(self._payload)

    def read_varint(self) -> int:
        result = 0
        for i in range(_MAX_VARINT_BYTES):
            if self.at_end():
                raise PayloadDecodeError("Payload ended in the middle of a varint")
            byte = self._payload[self._pos]
            self._pos += 1
            result |= (byte & 0x7F) << (7 * i)
            if not byte & 0x80:
                return result
        raise PayloadDecodeError(f"Varint longer than {_MAX_VARINT_BYTES} bytes")

    def read_int64(self) -> int:
        value = self.read_varint() & _UINT64_MASK
        if value > _INT64_MAX:
            value -= 1 << 64
        return value

    def read_bytes(self, size: int) -> bytes:
        if self._pos + size > len(self._payload):
            raise PayloadDecodeError(
                f"Needed {size} bytes at offset {self._pos} "
                + f"but payload is {len(self._payload)} bytes"
            )
        chunk = self._payload[self._pos : self._pos + size]
        self._pos += size
        return chunk

    def read_double(self) -> float:
        return _DOUBLE.unpack(self.read_bytes(_DOUBLE.size))[0]

    def read_tag(self) -> tuple[int, int]:
        key = self.read_varint()
        field_number, wire_type = key >> 3, key & 0x7
        if field_number == 0:
            raise PayloadDecodeError("Field number 0 is not valid")
        return field_number, wire_type

    def skip(self, wire_type: int):
        """Skips over a field we don't know about"""
        match wire_type:
            case WireType.VARINT:
                self.read_varint()
            case WireType.FIXED64:
                self.read_bytes(8)
            case WireType.LENGTH_DELIMITED:
                self.read_bytes(self.read_varint())
            case WireType.FIXED32:
                self.read_bytes(4)
            case _:
                raise PayloadDecodeError(f"Unsupported wire type {wire_type}")


def decode_payload(payload: bytes) -> DepthSnapshot:
    """Parses a payload (without its length prefix)

    Raises PayloadDecodeError if the bytes are not a valid snapshot"""
    cursor = _PayloadCursor(payload)
    event_time = 0
    last_update_id = 0
    bids: List[Level] = []
    asks: List[Level] = []
    while not cursor.at_end():
        field_number, wire_type = cursor.read_tag()
        if field_number in (EVENT_TIME_FIELD, LAST_UPDATE_ID_FIELD):
            _check_wire_type(field_number, wire_type, WireType.VARINT)
            if field_number == EVENT_TIME_FIELD:
                event_time = cursor.read_int64()
            else:
                last_update_id = cursor.read_int64()
        elif field_number in (BIDS_FIELD, ASKS_FIELD):
            _check_wire_type(field_number, wire_type, WireType.LENGTH_DELIMITED)
            level = _decode_level(cursor.read_bytes(cursor.read_varint()))
            (bids if field_number == BIDS_FIELD else asks).append(level)
        else:
            cursor.skip(wire_type)
    return DepthSnapshot(
        event_time=event_time, last_update_id=last_update_id, bids=bids, asks=asks
    )


def _decode_level(level_bytes: bytes) -> Level:
    cursor = _PayloadCursor(level_bytes)
    price = 0.0
    quantity = 0.0
    while not cursor.at_end():
        field_number, wire_type = cursor.read_tag()
        if field_number == LEVEL_PRICE_FIELD:
            _check_wire_type(field_number, wire_type, WireType.FIXED64)
            price = cursor.read_double()
        elif field_number == LEVEL_QUANTITY_FIELD:
            _check_wire_type(field_number, wire_type, WireType.FIXED64)
            quantity = cursor.read_double()
        else:
            cursor.skip(wire_type)
    return Level(price=price, quantity=quantity)


def _check_wire_type(field_number: int, actual: int, expected: WireType):
    if actual != expected:
        raise PayloadDecodeError(
            f"Field {field_number} has wire type {actual}, expected {expected.name}"
        )


def read_frame(stream: BinaryIO) -> DepthSnapshot:
    """Reads the next frame from a binary stream

    Raises EOFError if the stream is exhausted exactly at a frame boundary.
    Raises FramingError if the prefix is cut short or promises more bytes
    than are left. Raises PayloadDecodeError if the payload is bad, in which
    case the stream has already moved past the bad frame."""
    prefix = stream.read(LENGTH_PREFIX_BYTES)
    if not prefix:
        raise EOFError()
    if len(prefix) < LENGTH_PREFIX_BYTES:
        raise FramingError(
            f"Stream ended inside a length prefix ({len(prefix)} of "
            + f"{LENGTH_PREFIX_BYTES} bytes)"
        )
    length = int.from_bytes(prefix, "little")
    remaining = _remaining_bytes(stream)
    if remaining is not None and length > remaining:
        raise FramingError(
            f"Length prefix says {length} bytes but only {remaining} remain"
        )
    payload = stream.read(length)
    if len(payload) < length:
        raise FramingError(
            f"Length prefix says {length} bytes but only {len(payload)} remain"
        )
    return decode_payload(payload)


def _remaining_bytes(stream: BinaryIO) -> int | None:
    """Bytes left after the current position, if the stream can tell us.

    We check this before reading so that a garbage prefix doesn't make us
    allocate gigabytes"""
    if not stream.seekable():
        return None
    position = stream.tell()
    end = stream.seek(0, 2)
    stream.seek(position)
    return end - position
