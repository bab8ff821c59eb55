"""Built-in codecs for Python primitive types.

This module provides the base codec registry: codecs for Python's
built-in scalar types and a few standard library types. Derived codecs
delegate to these for every primitive field.

Supported Types:
    - Primitives: str, int, float, bool, bytes
    - Standard library: uuid.UUID, datetime.datetime
    - Width markers: Int32, Int64, Byte, Short, Float32, Char

Width markers are ``typing.NewType`` aliases. Annotating a field as
``Int64`` instead of ``int`` pins its BSON width::

    @dataclass
    class Counter:
        name: str
        hits: Int64

Plain ``int`` is written as int32 when it fits and int64 otherwise.
"""

import struct
import uuid
from datetime import datetime
from typing import Any, Dict, NewType, Tuple

from bsonderive.exceptions import EncodeError, TypeMismatch, ValueOutOfRange
from bsonderive.serialization.api import (
    BINARY_SUBTYPE_UUID,
    BsonType,
    Codec,
    DocumentReader,
    DocumentWriter,
)
from bsonderive.serialization.document import (
    INT32_MAX,
    INT32_MIN,
    datetime_to_millis,
    millis_to_datetime,
)


Int32 = NewType("Int32", int)
Int64 = NewType("Int64", int)
Byte = NewType("Byte", int)
Short = NewType("Short", int)
Float32 = NewType("Float32", float)
Char = NewType("Char", str)

_FLOAT32 = struct.Struct("<f")
_LEGACY_UUID_SUBTYPE = 0x03


def _require(writer: DocumentWriter, value: Any, types: Tuple[type, ...], kind: str) -> None:
    # bool is an int subclass; it must not pass as a number
    if not isinstance(value, types) or (isinstance(value, bool) and bool not in types):
        raise EncodeError(
            f"Expected {kind} at '{writer.path}' but got {type(value).__name__}"
        )


class StringCodec(Codec[str]):
    """Codec for ``str`` values stored as BSON strings."""

    @property
    def value_type(self) -> type:
        return str

    def encode(self, writer: DocumentWriter, value: str) -> None:
        _require(writer, value, (str,), "str")
        writer.write_string(value)

    def decode(self, reader: DocumentReader) -> str:
        return reader.read_string()


class CharCodec(Codec[str]):
    """Codec for single characters stored as one-character strings."""

    @property
    def value_type(self) -> type:
        return Char

    def encode(self, writer: DocumentWriter, value: str) -> None:
        _require(writer, value, (str,), "str")
        if len(value) != 1:
            raise ValueOutOfRange(writer.path, "char", value)
        writer.write_string(value)

    def decode(self, reader: DocumentReader) -> str:
        value = reader.read_string()
        if len(value) != 1:
            raise TypeMismatch(reader.path, "char", f"string of length {len(value)}")
        return value


class IntCodec(Codec[int]):
    """Codec for ``int`` values.

    Writes int32 when the value fits and int64 otherwise; reads either.
    """

    @property
    def value_type(self) -> type:
        return int

    def encode(self, writer: DocumentWriter, value: int) -> None:
        _require(writer, value, (int,), "int")
        if INT32_MIN <= value <= INT32_MAX:
            writer.write_int32(value)
        else:
            writer.write_int64(value)

    def decode(self, reader: DocumentReader) -> int:
        return reader.read_int64()


class Int32Codec(Codec[int]):
    """Codec for 32-bit integers."""

    @property
    def value_type(self) -> type:
        return Int32

    def encode(self, writer: DocumentWriter, value: int) -> None:
        _require(writer, value, (int,), "int")
        writer.write_int32(value)

    def decode(self, reader: DocumentReader) -> int:
        return reader.read_int32()


class Int64Codec(Codec[int]):
    """Codec for 64-bit integers."""

    @property
    def value_type(self) -> type:
        return Int64

    def encode(self, writer: DocumentWriter, value: int) -> None:
        _require(writer, value, (int,), "int")
        writer.write_int64(value)

    def decode(self, reader: DocumentReader) -> int:
        return reader.read_int64()


class _NarrowIntCodec(Codec[int]):
    """Small integers stored as int32 with a narrower range."""

    kind = ""
    low = 0
    high = 0

    def encode(self, writer: DocumentWriter, value: int) -> None:
        _require(writer, value, (int,), "int")
        if not self.low <= value <= self.high:
            raise ValueOutOfRange(writer.path, self.kind, value)
        writer.write_int32(value)

    def decode(self, reader: DocumentReader) -> int:
        value = reader.read_int32()
        if not self.low <= value <= self.high:
            raise TypeMismatch(reader.path, self.kind, f"int32 value {value}")
        return value


class ByteCodec(_NarrowIntCodec):
    """Codec for signed 8-bit integers."""

    kind = "int8"
    low = -128
    high = 127

    @property
    def value_type(self) -> type:
        return Byte


class ShortCodec(_NarrowIntCodec):
    """Codec for signed 16-bit integers."""

    kind = "int16"
    low = -32768
    high = 32767

    @property
    def value_type(self) -> type:
        return Short


class DoubleCodec(Codec[float]):
    """Codec for ``float`` values stored as BSON doubles.

    Integer document values are widened on decode.
    """

    @property
    def value_type(self) -> type:
        return float

    def encode(self, writer: DocumentWriter, value: float) -> None:
        _require(writer, value, (float, int), "float")
        writer.write_double(float(value))

    def decode(self, reader: DocumentReader) -> float:
        if reader.current_bson_type in (BsonType.INT32, BsonType.INT64):
            return float(reader.read_int64())
        return reader.read_double()


class Float32Codec(DoubleCodec):
    """Codec for single precision floats.

    Values are rounded to 32-bit precision and stored as BSON doubles.
    """

    @property
    def value_type(self) -> type:
        return Float32

    def encode(self, writer: DocumentWriter, value: float) -> None:
        _require(writer, value, (float, int), "float")
        try:
            rounded = _FLOAT32.unpack(_FLOAT32.pack(value))[0]
        except (OverflowError, struct.error):
            raise ValueOutOfRange(writer.path, "float32", value)
        writer.write_double(rounded)


class BoolCodec(Codec[bool]):
    """Codec for ``bool`` values."""

    @property
    def value_type(self) -> type:
        return bool

    def encode(self, writer: DocumentWriter, value: bool) -> None:
        _require(writer, value, (bool,), "bool")
        writer.write_boolean(value)

    def decode(self, reader: DocumentReader) -> bool:
        return reader.read_boolean()


class BytesCodec(Codec[bytes]):
    """Codec for ``bytes`` stored as generic BSON binary."""

    @property
    def value_type(self) -> type:
        return bytes

    def encode(self, writer: DocumentWriter, value: bytes) -> None:
        _require(writer, value, (bytes, bytearray), "bytes")
        writer.write_binary(bytes(value))

    def decode(self, reader: DocumentReader) -> bytes:
        return reader.read_binary().data


class UUIDCodec(Codec[uuid.UUID]):
    """Codec for ``uuid.UUID`` stored as BSON binary subtype 4.

    Legacy subtype 3 values are accepted on decode.
    """

    @property
    def value_type(self) -> type:
        return uuid.UUID

    def encode(self, writer: DocumentWriter, value: uuid.UUID) -> None:
        _require(writer, value, (uuid.UUID,), "UUID")
        writer.write_binary(value.bytes, BINARY_SUBTYPE_UUID)

    def decode(self, reader: DocumentReader) -> uuid.UUID:
        path = reader.path
        binary = reader.read_binary()
        if binary.subtype not in (BINARY_SUBTYPE_UUID, _LEGACY_UUID_SUBTYPE):
            raise TypeMismatch(path, "UUID binary", f"binary subtype {binary.subtype}")
        if len(binary.data) != 16:
            raise TypeMismatch(path, "UUID binary", f"{len(binary.data)} bytes")
        return uuid.UUID(bytes=binary.data)


class DateTimeCodec(Codec[datetime]):
    """Codec for ``datetime`` stored as UTC milliseconds.

    Naive datetimes are taken as UTC. Decoded values are timezone-aware
    and truncated to millisecond precision.
    """

    @property
    def value_type(self) -> type:
        return datetime

    def encode(self, writer: DocumentWriter, value: datetime) -> None:
        _require(writer, value, (datetime,), "datetime")
        writer.write_datetime(datetime_to_millis(value))

    def decode(self, reader: DocumentReader) -> datetime:
        return millis_to_datetime(reader.read_datetime())


def get_builtin_codecs() -> Dict[Any, Codec]:
    """Get the base registry of primitive codecs keyed by value type.

    Returns:
        A new dictionary mapping each supported type to its codec.
    """
    codecs = [
        StringCodec(),
        CharCodec(),
        IntCodec(),
        Int32Codec(),
        Int64Codec(),
        ByteCodec(),
        ShortCodec(),
        DoubleCodec(),
        Float32Codec(),
        BoolCodec(),
        BytesCodec(),
        UUIDCodec(),
        DateTimeCodec(),
    ]
    return {codec.value_type: codec for codec in codecs}
