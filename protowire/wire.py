"""Low-level Protobuf wire format primitives: varints, keys and field skipping."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, TypeVar

from protowire.errors import DecodeError

T = TypeVar("T")

MIN_TAG = 1
MAX_TAG = (1 << 29) - 1
RECURSION_LIMIT = 100

_U32_MAX = 0xFFFF_FFFF
_U64_MASK = 0xFFFF_FFFF_FFFF_FFFF
_MAX_VARINT_LEN = 10


class Reader:
    """A cursor over an immutable byte sequence."""

    def __init__(self, data: bytes | bytearray | memoryview = b"") -> None:
        self._data = memoryview(bytes(data))
        self._pos = 0

    def remaining(self) -> int:
        """Number of unread bytes."""
        return len(self._data) - self._pos

    def has_remaining(self) -> bool:
        """Whether any unread bytes are left."""
        return self._pos < len(self._data)

    def read_byte(self) -> int:
        """Read and return one byte."""
        if not self.has_remaining():
            raise DecodeError("buffer underflow")
        byte = self._data[self._pos]
        self._pos += 1
        return byte

    def read(self, n: int) -> bytes:
        """Read and return exactly ``n`` bytes."""
        if n < 0 or n > self.remaining():
            raise DecodeError("buffer underflow")
        chunk = bytes(self._data[self._pos : self._pos + n])
        self._pos += n
        return chunk

    def advance(self, n: int) -> None:
        """Skip ``n`` bytes."""
        if n < 0 or n > self.remaining():
            raise DecodeError("buffer underflow")
        self._pos += n

    def __len__(self) -> int:
        return self.remaining()

    def __repr__(self) -> str:
        return f"Reader(remaining={self.remaining()})"


class WireType(IntEnum):
    """The wire type carried in the low three bits of a field key."""

    VARINT = 0
    SIXTY_FOUR_BIT = 1
    LENGTH_DELIMITED = 2
    START_GROUP = 3
    END_GROUP = 4
    THIRTY_TWO_BIT = 5

    @classmethod
    def from_value(cls, value: int) -> "WireType":
        """Return the wire type for ``value`` or raise DecodeError."""
        try:
            return cls(value)
        except ValueError:
            raise DecodeError(f"invalid wire type value: {value}") from None


@dataclass(frozen=True)
class DecodeContext:
    """Decoding state passed down through nested decodes."""

    recurse_count: int = RECURSION_LIMIT

    def enter_recursion(self) -> "DecodeContext":
        """Return the context to use one nesting level deeper."""
        return DecodeContext(self.recurse_count - 1)

    def limit_reached(self) -> None:
        """Raise DecodeError if no further nesting is allowed."""
        if self.recurse_count <= 0:
            raise DecodeError("recursion limit reached")


def encode_varint(value: int, buf: bytearray) -> None:
    """Append ``value`` as an LEB128 varint to ``buf``."""
    if not 0 <= value <= _U64_MASK:
        raise ValueError(f"varint value out of range: {value}")
    while value >= 0x80:
        buf.append((value & 0x7F) | 0x80)
        value >>= 7
    buf.append(value)


def decode_varint(reader: Reader) -> int:
    """Read an LEB128 varint of at most ten bytes."""
    value = 0
    for shift in range(0, 7 * _MAX_VARINT_LEN, 7):
        if not reader.has_remaining():
            break
        byte = reader.read_byte()
        value |= (byte & 0x7F) << shift
        if byte < 0x80:
            return value & _U64_MASK
    raise DecodeError("invalid varint")


def encoded_len_varint(value: int) -> int:
    """Number of bytes ``value`` takes as a varint, from 1 to 10."""
    return max(1, (value.bit_length() + 6) // 7)


def encode_key(tag: int, wire_type: WireType, buf: bytearray) -> None:
    """Append a field key made of ``tag`` and ``wire_type``."""
    if not MIN_TAG <= tag <= MAX_TAG:
        raise ValueError(f"invalid tag value: {tag}")
    encode_varint((tag << 3) | int(wire_type), buf)


def decode_key(reader: Reader) -> tuple[int, WireType]:
    """Read a field key and return ``(tag, wire_type)``."""
    key = decode_varint(reader)
    if key > _U32_MAX:
        raise DecodeError(f"invalid key value: {key}")
    wire_type = WireType.from_value(key & 0x07)
    tag = key >> 3
    if tag < MIN_TAG:
        raise DecodeError("invalid tag value: 0")
    return tag, wire_type


def key_len(tag: int) -> int:
    """Encoded width of a key with ``tag``, from 1 to 5 bytes."""
    return encoded_len_varint(tag << 3)


def check_wire_type(expected: WireType, actual: WireType) -> None:
    """Raise DecodeError unless ``actual`` is ``expected``."""
    if expected != actual:
        raise DecodeError(
            f"invalid wire type: {WireType(actual).name} "
            f"(expected {WireType(expected).name})"
        )


def merge_loop(
    value: T,
    reader: Reader,
    ctx: DecodeContext,
    merge: Callable[[T, Reader, DecodeContext], None],
) -> None:
    """Read a length prefix and call ``merge`` until that many bytes are consumed."""
    length = decode_varint(reader)
    remaining = reader.remaining()
    if length > remaining:
        raise DecodeError("buffer underflow")
    limit = remaining - length
    while reader.remaining() > limit:
        merge(value, reader, ctx)
    if reader.remaining() != limit:
        raise DecodeError("delimited length exceeded")


def skip_field(
    wire_type: WireType, tag: int, reader: Reader, ctx: DecodeContext
) -> None:
    """Consume the body of a field whose key has already been read."""
    ctx.limit_reached()
    if wire_type == WireType.VARINT:
        decode_varint(reader)
        length = 0
    elif wire_type == WireType.THIRTY_TWO_BIT:
        length = 4
    elif wire_type == WireType.SIXTY_FOUR_BIT:
        length = 8
    elif wire_type == WireType.LENGTH_DELIMITED:
        length = decode_varint(reader)
    elif wire_type == WireType.START_GROUP:
        while True:
            inner_tag, inner_wire_type = decode_key(reader)
            if inner_wire_type == WireType.END_GROUP:
                if inner_tag != tag:
                    raise DecodeError("unexpected end group tag")
                break
            skip_field(inner_wire_type, inner_tag, reader, ctx.enter_recursion())
        length = 0
    else:
        raise DecodeError("unexpected end group tag")

    if length > reader.remaining():
        raise DecodeError("buffer underflow")
    reader.advance(length)