"""Messages for the Protobuf well-known wrapper types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar

from protowire.message import Message
from protowire.scalars import (
    BOOL,
    BYTES,
    DOUBLE,
    FLOAT,
    INT32,
    INT64,
    STRING,
    UINT32,
    UINT64,
    Codec,
)
from protowire.wire import DecodeContext, Reader, WireType, skip_field

_VALUE_TAG = 1


class _Wrapper(Message):
    """A message holding one scalar in field 1, omitted when it is the default."""

    codec: ClassVar[Codec]
    value: Any

    def _is_set(self) -> bool:
        return self.value != self.codec.default

    def encode_raw(self, buf: bytearray) -> None:
        if self._is_set():
            self.codec.encode(_VALUE_TAG, self.value, buf)

    def merge_field(
        self, tag: int, wire_type: WireType, reader: Reader, ctx: DecodeContext
    ) -> None:
        if tag == _VALUE_TAG:
            self.value = self.codec.merge(wire_type, reader, ctx)
        else:
            skip_field(wire_type, tag, reader, ctx)

    def encoded_len(self) -> int:
        return self.codec.encoded_len(_VALUE_TAG, self.value) if self._is_set() else 0

    def clear(self) -> None:
        self.value = self.codec.default


@dataclass
class BoolValue(_Wrapper):
    """``google.protobuf.BoolValue``"""

    value: bool = False
    codec: ClassVar[Codec] = BOOL


@dataclass
class UInt32Value(_Wrapper):
    """``google.protobuf.UInt32Value``"""

    value: int = 0
    codec: ClassVar[Codec] = UINT32


@dataclass
class UInt64Value(_Wrapper):
    """``google.protobuf.UInt64Value``"""

    value: int = 0
    codec: ClassVar[Codec] = UINT64


@dataclass
class Int32Value(_Wrapper):
    """``google.protobuf.Int32Value``"""

    value: int = 0
    codec: ClassVar[Codec] = INT32


@dataclass
class Int64Value(_Wrapper):
    """``google.protobuf.Int64Value``"""

    value: int = 0
    codec: ClassVar[Codec] = INT64


@dataclass
class FloatValue(_Wrapper):
    """``google.protobuf.FloatValue``"""

    value: float = 0.0
    codec: ClassVar[Codec] = FLOAT


@dataclass
class DoubleValue(_Wrapper):
    """``google.protobuf.DoubleValue``"""

    value: float = 0.0
    codec: ClassVar[Codec] = DOUBLE


@dataclass
class StringValue(_Wrapper):
    """``google.protobuf.StringValue``"""

    value: str = ""
    codec: ClassVar[Codec] = STRING


@dataclass
class BytesValue(_Wrapper):
    """``google.protobuf.BytesValue``"""

    value: bytes = b""
    codec: ClassVar[Codec] = BYTES


@dataclass
class Empty(Message):
    """``google.protobuf.Empty``: a message with no fields."""

    def encode_raw(self, buf: bytearray) -> None:
        pass

    def merge_field(
        self, tag: int, wire_type: WireType, reader: Reader, ctx: DecodeContext
    ) -> None:
        skip_field(wire_type, tag, reader, ctx)

    def encoded_len(self) -> int:
        return 0

    def clear(self) -> None:
        pass