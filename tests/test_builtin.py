"""Tests for builtin primitive codecs."""

import uuid
from datetime import datetime, timezone

import pytest

from bsonderive.exceptions import EncodeError, TypeMismatch, ValueOutOfRange
from bsonderive.serialization.api import BINARY_SUBTYPE_UUID, Binary
from bsonderive.serialization.builtin import (
    Byte,
    Char,
    Float32,
    Int32,
    Int64,
    Short,
    BoolCodec,
    ByteCodec,
    BytesCodec,
    CharCodec,
    DateTimeCodec,
    DoubleCodec,
    Float32Codec,
    Int32Codec,
    Int64Codec,
    IntCodec,
    ShortCodec,
    StringCodec,
    UUIDCodec,
    get_builtin_codecs,
)
from bsonderive.serialization.document import DocumentTreeReader, DocumentTreeWriter


def encode_field(codec, value):
    writer = DocumentTreeWriter()
    writer.write_start_document()
    writer.write_name("v")
    codec.encode(writer, value)
    writer.write_end_document()
    return writer.document["v"]


def decode_field(codec, value):
    reader = DocumentTreeReader({"v": value})
    reader.read_start_document()
    reader.read_bson_type()
    return codec.decode(reader)


class TestGetBuiltinCodecs:
    """Tests for the base registry."""

    def test_contains_primitives(self):
        codecs = get_builtin_codecs()
        for value_type in (str, int, float, bool, bytes, uuid.UUID, datetime):
            assert codecs[value_type].value_type is value_type

    def test_contains_width_markers(self):
        codecs = get_builtin_codecs()
        for marker in (Int32, Int64, Byte, Short, Float32, Char):
            assert marker in codecs

    def test_returns_new_mapping(self):
        assert get_builtin_codecs() is not get_builtin_codecs()


class TestScalarCodecs:
    """Tests for scalar codecs."""

    def test_string(self):
        assert encode_field(StringCodec(), "Main") == "Main"
        assert decode_field(StringCodec(), "Main") == "Main"

    def test_string_rejects_other_types(self):
        with pytest.raises(EncodeError):
            encode_field(StringCodec(), 5)

    def test_int_widths(self):
        assert encode_field(IntCodec(), 10001) == 10001
        assert encode_field(IntCodec(), 2 ** 40) == 2 ** 40
        assert decode_field(IntCodec(), 2 ** 40) == 2 ** 40

    def test_int_rejects_bool(self):
        with pytest.raises(EncodeError):
            encode_field(IntCodec(), True)

    def test_int32_out_of_range(self):
        with pytest.raises(ValueOutOfRange) as exc_info:
            encode_field(Int32Codec(), 2 ** 31)
        assert exc_info.value.path == "v"

    def test_int64_reads_int32(self):
        assert decode_field(Int64Codec(), 7) == 7

    def test_byte_and_short_ranges(self):
        assert encode_field(ByteCodec(), -128) == -128
        with pytest.raises(ValueOutOfRange):
            encode_field(ByteCodec(), 128)
        assert encode_field(ShortCodec(), 32767) == 32767
        with pytest.raises(ValueOutOfRange):
            encode_field(ShortCodec(), -32769)

    def test_byte_decode_out_of_range(self):
        with pytest.raises(TypeMismatch):
            decode_field(ByteCodec(), 1000)

    def test_double_accepts_int_document_values(self):
        assert encode_field(DoubleCodec(), 2) == 2.0
        assert decode_field(DoubleCodec(), 2) == 2.0
        assert isinstance(decode_field(DoubleCodec(), 2), float)

    def test_float32_rounds(self):
        assert encode_field(Float32Codec(), 0.1) == pytest.approx(0.1, rel=1e-7)
        assert encode_field(Float32Codec(), 0.1) != 0.1

    def test_float32_overflow(self):
        with pytest.raises(ValueOutOfRange):
            encode_field(Float32Codec(), 1e300)

    def test_bool(self):
        assert encode_field(BoolCodec(), True) is True
        with pytest.raises(TypeMismatch):
            decode_field(BoolCodec(), 1)

    def test_char(self):
        assert encode_field(CharCodec(), "x") == "x"
        with pytest.raises(ValueOutOfRange):
            encode_field(CharCodec(), "xy")
        with pytest.raises(TypeMismatch):
            decode_field(CharCodec(), "")


class TestBinaryCodecs:
    """Tests for bytes and UUID codecs."""

    def test_bytes(self):
        assert encode_field(BytesCodec(), b"\x00\x01") == b"\x00\x01"
        assert decode_field(BytesCodec(), b"\x00\x01") == b"\x00\x01"

    def test_uuid_subtype_4(self):
        value = uuid.UUID("12345678-1234-5678-1234-567812345678")
        encoded = encode_field(UUIDCodec(), value)
        assert encoded == Binary(value.bytes, BINARY_SUBTYPE_UUID)
        assert decode_field(UUIDCodec(), encoded) == value

    def test_uuid_rejects_generic_binary(self):
        with pytest.raises(TypeMismatch):
            decode_field(UUIDCodec(), b"\x00" * 16)


class TestDateTimeCodec:
    """Tests for DateTimeCodec."""

    def test_round_trip_millis(self):
        moment = datetime(2024, 3, 4, 5, 6, 7, 891000, tzinfo=timezone.utc)
        assert decode_field(DateTimeCodec(), encode_field(DateTimeCodec(), moment)) == moment

    def test_microseconds_truncated(self):
        moment = datetime(2024, 3, 4, 5, 6, 7, 891234, tzinfo=timezone.utc)
        decoded = decode_field(DateTimeCodec(), encode_field(DateTimeCodec(), moment))
        assert decoded.microsecond == 891000

    def test_naive_taken_as_utc(self):
        decoded = decode_field(DateTimeCodec(), encode_field(DateTimeCodec(), datetime(2024, 1, 1)))
        assert decoded == datetime(2024, 1, 1, tzinfo=timezone.utc)
