"""Codecs for Protobuf scalar field types: varints, fixed-width numbers, strings and bytes."""

from __future__ import annotations

import struct
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Sequence

from protowire.errors import DecodeError
from protowire.wire import (
    DecodeContext,
    Reader,
    WireType,
    check_wire_type,
    decode_varint,
    encode_key,
    encode_varint,
    encoded_len_varint,
    key_len,
    merge_loop,
)

_U32_MASK = 0xFFFF_FFFF
_U64_MASK = 0xFFFF_FFFF_FFFF_FFFF


class Codec(ABC):
    """Encoding functions for one Protobuf field type.

    Subclasses provide ``wire_type`` and ``default`` attributes.
    """

    wire_type: WireType
    default: Any

    @abstractmethod
    def encode(self, tag: int, value: Any, buf: bytearray) -> None:
        """Append ``value`` as field ``tag`` to ``buf``."""

    @abstractmethod
    def merge(self, wire_type: WireType, reader: Reader, ctx: DecodeContext) -> Any:
        """Read one value whose key has already been read and return it."""

    @abstractmethod
    def encoded_len(self, tag: int, value: Any) -> int:
        """Encoded size of ``value`` as field ``tag``, key included."""

    def encode_repeated(self, tag: int, values: Iterable[Any], buf: bytearray) -> None:
        """Append every value as its own field ``tag``."""
        for value in values:
            self.encode(tag, value, buf)

    def merge_repeated(
        self,
        wire_type: WireType,
        values: list[Any],
        reader: Reader,
        ctx: DecodeContext,
    ) -> None:
        """Read one element of a repeated field and append it to ``values``."""
        check_wire_type(self.wire_type, wire_type)
        values.append(self.merge(wire_type, reader, ctx))

    def encoded_len_repeated(self, tag: int, values: Sequence[Any]) -> int:
        """Encoded size of ``values`` written as unpacked repeated fields."""
        return sum(self.encoded_len(tag, value) for value in values)


class _PackableCodec(Codec):
    """A numeric codec whose repeated fields may also arrive packed."""

    def merge_repeated(
        self,
        wire_type: WireType,
        values: list[Any],
        reader: Reader,
        ctx: DecodeContext,
    ) -> None:
        if wire_type == WireType.LENGTH_DELIMITED:
            merge_loop(
                values,
                reader,
                ctx,
                lambda vals, r, c: vals.append(self.merge(self.wire_type, r, c)),
            )
        else:
            check_wire_type(self.wire_type, wire_type)
            values.append(self.merge(wire_type, reader, ctx))

    @staticmethod
    def _packed_len(tag: int, body_len: int) -> int:
        return key_len(tag) + encoded_len_varint(body_len) + body_len


@dataclass(frozen=True, eq=False)
class VarintCodec(_PackableCodec):
    """A type stored as a varint, with conversions to and from its wire integer."""

    name: str
    to_wire: Callable[[Any], int] = field(repr=False)
    from_wire: Callable[[int], Any] = field(repr=False)
    default: Any = 0

    @property
    def wire_type(self) -> WireType:  # type: ignore[override]
        return WireType.VARINT

    def encode(self, tag: int, value: Any, buf: bytearray) -> None:
        encode_key(tag, WireType.VARINT, buf)
        encode_varint(self.to_wire(value), buf)

    def merge(self, wire_type: WireType, reader: Reader, ctx: DecodeContext) -> Any:
        check_wire_type(WireType.VARINT, wire_type)
        return self.from_wire(decode_varint(reader))

    def encoded_len(self, tag: int, value: Any) -> int:
        return key_len(tag) + encoded_len_varint(self.to_wire(value))

    def encoded_len_repeated(self, tag: int, values: Sequence[Any]) -> int:
        return key_len(tag) * len(values) + self._body_len(values)

    def _body_len(self, values: Iterable[Any]) -> int:
        return sum(encoded_len_varint(self.to_wire(value)) for value in values)

    def encode_packed(self, tag: int, values: Sequence[Any], buf: bytearray) -> None:
        """Append ``values`` as one packed field; nothing is written when empty."""
        if not values:
            return
        wire_values = [self.to_wire(value) for value in values]
        encode_key(tag, WireType.LENGTH_DELIMITED, buf)
        encode_varint(sum(encoded_len_varint(v) for v in wire_values), buf)
        for wire_value in wire_values:
            encode_varint(wire_value, buf)

    def encoded_len_packed(self, tag: int, values: Sequence[Any]) -> int:
        """Encoded size of ``values`` as one packed field, 0 when empty."""
        if not values:
            return 0
        return self._packed_len(tag, self._body_len(values))


@dataclass(frozen=True, eq=False)
class FixedCodec(_PackableCodec):
    """A fixed-width little-endian number described by a ``struct`` format."""

    name: str
    fmt: str
    wire_type: WireType  # type: ignore[misc]
    default: Any = 0

    @property
    def width(self) -> int:
        """Encoded width of one value in bytes."""
        return struct.calcsize(self.fmt)

    def _pack(self, value: Any) -> bytes:
        try:
            return struct.pack(self.fmt, value)
        except (struct.error, OverflowError) as exc:
            raise ValueError(f"{self.name} value out of range: {value!r}") from exc

    def encode(self, tag: int, value: Any, buf: bytearray) -> None:
        data = self._pack(value)
        encode_key(tag, self.wire_type, buf)
        buf += data

    def merge(self, wire_type: WireType, reader: Reader, ctx: DecodeContext) -> Any:
        check_wire_type(self.wire_type, wire_type)
        if reader.remaining() < self.width:
            raise DecodeError("buffer underflow")
        return struct.unpack(self.fmt, reader.read(self.width))[0]

    def encoded_len(self, tag: int, value: Any) -> int:
        return key_len(tag) + self.width

    def encoded_len_repeated(self, tag: int, values: Sequence[Any]) -> int:
        return (key_len(tag) + self.width) * len(values)

    def encode_packed(self, tag: int, values: Sequence[Any], buf: bytearray) -> None:
        """Append ``values`` as one packed field; nothing is written when empty."""
        if not values:
            return
        body = b"".join(self._pack(value) for value in values)
        encode_key(tag, WireType.LENGTH_DELIMITED, buf)
        encode_varint(len(body), buf)
        buf += body

    def encoded_len_packed(self, tag: int, values: Sequence[Any]) -> int:
        """Encoded size of ``values`` as one packed field, 0 when empty."""
        if not values:
            return 0
        return self._packed_len(tag, self.width * len(values))


def _read_delimited(wire_type: WireType, reader: Reader) -> bytes:
    check_wire_type(WireType.LENGTH_DELIMITED, wire_type)
    length = decode_varint(reader)
    if length > reader.remaining():
        raise DecodeError("buffer underflow")
    return reader.read(length)


def _delimited_len(tag: int, size: int) -> int:
    return key_len(tag) + encoded_len_varint(size) + size


class StringCodec(Codec):
    """UTF-8 text stored as a length-delimited field."""

    wire_type = WireType.LENGTH_DELIMITED
    default = ""

    def encode(self, tag: int, value: str, buf: bytearray) -> None:
        data = value.encode("utf-8")
        encode_key(tag, WireType.LENGTH_DELIMITED, buf)
        encode_varint(len(data), buf)
        buf += data

    def merge(self, wire_type: WireType, reader: Reader, ctx: DecodeContext) -> str:
        data = _read_delimited(wire_type, reader)
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            raise DecodeError(
                "invalid string value: data is not UTF-8 encoded"
            ) from None

    def encoded_len(self, tag: int, value: str) -> int:
        return _delimited_len(tag, len(value.encode("utf-8")))

    def __repr__(self) -> str:
        return "StringCodec()"


class BytesCodec(Codec):
    """Raw bytes stored as a length-delimited field."""

    wire_type = WireType.LENGTH_DELIMITED
    default = b""

    def encode(self, tag: int, value: bytes, buf: bytearray) -> None:
        data = bytes(value)
        encode_key(tag, WireType.LENGTH_DELIMITED, buf)
        encode_varint(len(data), buf)
        buf += data

    def merge(self, wire_type: WireType, reader: Reader, ctx: DecodeContext) -> bytes:
        return _read_delimited(wire_type, reader)

    def encoded_len(self, tag: int, value: bytes) -> int:
        return _delimited_len(tag, len(value))

    def __repr__(self) -> str:
        return "BytesCodec()"


def _checked(value: int, low: int, high: int, name: str) -> int:
    if not low <= value <= high:
        raise ValueError(f"{name} value out of range: {value}")
    return value


def _to_signed(value: int, bits: int) -> int:
    value &= (1 << bits) - 1
    return value - (1 << bits) if value >> (bits - 1) else value


def _zigzag_decode(value: int) -> int:
    return (value >> 1) ^ -(value & 1)


_I32 = (-(1 << 31), (1 << 31) - 1)
_I64 = (-(1 << 63), (1 << 63) - 1)

BOOL = VarintCodec(
    "bool",
    to_wire=lambda value: 1 if value else 0,
    from_wire=lambda value: value != 0,
    default=False,
)
INT32 = VarintCodec(
    "int32",
    to_wire=lambda value: _checked(value, *_I32, "int32") & _U64_MASK,
    from_wire=lambda value: _to_signed(value, 32),
)
INT64 = VarintCodec(
    "int64",
    to_wire=lambda value: _checked(value, *_I64, "int64") & _U64_MASK,
    from_wire=lambda value: _to_signed(value, 64),
)
UINT32 = VarintCodec(
    "uint32",
    to_wire=lambda value: _checked(value, 0, _U32_MASK, "uint32"),
    from_wire=lambda value: value & _U32_MASK,
)
UINT64 = VarintCodec(
    "uint64",
    to_wire=lambda value: _checked(value, 0, _U64_MASK, "uint64"),
    from_wire=lambda value: value & _U64_MASK,
)
SINT32 = VarintCodec(
    "sint32",
    to_wire=lambda value: ((_checked(value, *_I32, "sint32") << 1) ^ (value >> 31))
    & _U32_MASK,
    from_wire=lambda value: _zigzag_decode(value & _U32_MASK),
)
SINT64 = VarintCodec(
    "sint64",
    to_wire=lambda value: ((_checked(value, *_I64, "sint64") << 1) ^ (value >> 63))
    & _U64_MASK,
    from_wire=_zigzag_decode,
)

FLOAT = FixedCodec("float", "<f", WireType.THIRTY_TWO_BIT, 0.0)
DOUBLE = FixedCodec("double", "<d", WireType.SIXTY_FOUR_BIT, 0.0)
FIXED32 = FixedCodec("fixed32", "<I", WireType.THIRTY_TWO_BIT)
FIXED64 = FixedCodec("fixed64", "<Q", WireType.SIXTY_FOUR_BIT)
SFIXED32 = FixedCodec("sfixed32", "<i", WireType.THIRTY_TWO_BIT)
SFIXED64 = FixedCodec("sfixed64", "<q", WireType.SIXTY_FOUR_BIT)

STRING = StringCodec()
BYTES = BytesCodec()