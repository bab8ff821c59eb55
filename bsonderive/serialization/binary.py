"""Binary BSON reader and writer.

Implements the subset of the BSON format the codecs use: double,
string, embedded document, array, binary, boolean, UTC datetime, null,
int32 and int64. All numbers are little-endian.
"""

import struct
from typing import Any, List, Optional, Tuple

from bsonderive.exceptions import DecodeError, DocumentFormatError, EncodeError, TypeMismatch
from bsonderive.serialization.api import (
    BINARY_SUBTYPE_GENERIC,
    Binary,
    BsonType,
    DocumentReader,
    DocumentWriter,
    ReaderMark,
)
from bsonderive.serialization.document import (
    DocumentTreeReader,
    DocumentTreeWriter,
    check_int_range,
    join_path,
    pipe,
)

_INT32 = struct.Struct("<i")
_INT64 = struct.Struct("<q")
_DOUBLE = struct.Struct("<d")

_KNOWN_TYPES = {t.value: t for t in BsonType if t is not BsonType.END_OF_DOCUMENT}


class _WriteFrame:
    __slots__ = ("start", "is_array", "count", "name")

    def __init__(self, start: int, is_array: bool, name: Optional[str]):
        self.start = start
        self.is_array = is_array
        self.count = 0
        self.name = name


class BinaryDocumentWriter(DocumentWriter):
    """Writer that produces BSON bytes.

    Document lengths are reserved when a document opens and patched in
    when it closes.
    """

    def __init__(self):
        self._buffer = bytearray()
        self._stack: List[_WriteFrame] = []
        self._name: Optional[str] = None
        self._done = False

    @property
    def path(self) -> str:
        path = ""
        for frame in self._stack:
            path = join_path(path, frame.name)
        return join_path(path, self._next_name())

    def _next_name(self) -> Optional[str]:
        if not self._stack:
            return None
        frame = self._stack[-1]
        if frame.is_array:
            return str(frame.count)
        return self._name

    def _write_header(self, bson_type: BsonType) -> Optional[str]:
        if not self._stack:
            if self._done:
                raise EncodeError("The document root has already been written")
            if bson_type is not BsonType.DOCUMENT:
                raise EncodeError(f"A BSON root must be a document, not {bson_type.name}")
            return None
        frame = self._stack[-1]
        if frame.is_array:
            name = str(frame.count)
            frame.count += 1
        else:
            if self._name is None:
                raise EncodeError(f"No field name was written before the value at '{self.path}'")
            name = self._name
            self._name = None
        self._buffer.append(bson_type)
        self._write_cstring(name)
        return name

    def _write_cstring(self, value: str) -> None:
        encoded = value.encode("utf-8")
        if b"\x00" in encoded:
            raise EncodeError(f"Field name {value!r} contains a NUL byte")
        self._buffer.extend(encoded)
        self._buffer.append(0)

    def _open(self, bson_type: BsonType, is_array: bool) -> None:
        name = self._write_header(bson_type)
        self._stack.append(_WriteFrame(len(self._buffer), is_array, name))
        self._buffer.extend(b"\x00\x00\x00\x00")

    def _close(self, is_array: bool, kind: str) -> None:
        if not self._stack or self._stack[-1].is_array is not is_array:
            raise EncodeError(f"No open {kind} to close at '{self.path}'")
        if self._name is not None:
            raise EncodeError(f"Field name '{self._name}' was written without a value")
        self._buffer.append(0)
        frame = self._stack.pop()
        _INT32.pack_into(self._buffer, frame.start, len(self._buffer) - frame.start)
        if not self._stack:
            self._done = True

    def write_start_document(self) -> None:
        self._open(BsonType.DOCUMENT, is_array=False)

    def write_end_document(self) -> None:
        self._close(False, "document")

    def write_start_array(self) -> None:
        self._open(BsonType.ARRAY, is_array=True)

    def write_end_array(self) -> None:
        self._close(True, "array")

    def write_name(self, name: str) -> None:
        if not self._stack or self._stack[-1].is_array:
            raise EncodeError(f"Field name '{name}' written outside of a document")
        if self._name is not None:
            raise EncodeError(f"Field name '{self._name}' was written without a value")
        self._name = name

    def write_string(self, value: str) -> None:
        self._write_header(BsonType.STRING)
        encoded = value.encode("utf-8")
        self._buffer.extend(_INT32.pack(len(encoded) + 1))
        self._buffer.extend(encoded)
        self._buffer.append(0)

    def write_int32(self, value: int) -> None:
        check_int_range(self.path, "int32", value)
        self._write_header(BsonType.INT32)
        self._buffer.extend(_INT32.pack(value))

    def write_int64(self, value: int) -> None:
        check_int_range(self.path, "int64", value)
        self._write_header(BsonType.INT64)
        self._buffer.extend(_INT64.pack(value))

    def write_double(self, value: float) -> None:
        self._write_header(BsonType.DOUBLE)
        self._buffer.extend(_DOUBLE.pack(value))

    def write_boolean(self, value: bool) -> None:
        self._write_header(BsonType.BOOLEAN)
        self._buffer.append(1 if value else 0)

    def write_null(self) -> None:
        self._write_header(BsonType.NULL)

    def write_binary(self, value: bytes, subtype: int = BINARY_SUBTYPE_GENERIC) -> None:
        self._write_header(BsonType.BINARY)
        self._buffer.extend(_INT32.pack(len(value)))
        self._buffer.append(subtype)
        self._buffer.extend(value)

    def write_datetime(self, millis: int) -> None:
        check_int_range(self.path, "int64", millis)
        self._write_header(BsonType.DATE_TIME)
        self._buffer.extend(_INT64.pack(millis))

    def to_bytes(self) -> bytes:
        """Get the complete BSON document."""
        if not self._done:
            raise EncodeError("The BSON document is not complete")
        return bytes(self._buffer)


class _BinaryMark(ReaderMark):
    def __init__(self, reader: "BinaryDocumentReader"):
        self._reader = reader
        self._state = (reader._pos, list(reader._stack), reader._name, reader._type)

    def reset(self) -> None:
        pos, stack, name, bson_type = self._state
        self._reader._pos = pos
        self._reader._stack = list(stack)
        self._reader._name = name
        self._reader._type = bson_type


class BinaryDocumentReader(DocumentReader):
    """Reader over BSON bytes.

    Args:
        data: A complete BSON document.

    Raises:
        DocumentFormatError: While reading, if the bytes are malformed.
    """

    def __init__(self, data: bytes):
        self._data = bytes(data)
        self._pos = 0
        # (end offset, is_array, name) per open container
        self._stack: List[Tuple[int, bool, Optional[str]]] = []
        self._name: Optional[str] = None
        self._type: Optional[BsonType] = BsonType.DOCUMENT

    @property
    def path(self) -> str:
        path = ""
        for _, _, name in self._stack:
            path = join_path(path, name)
        return join_path(path, self._name)

    @property
    def position(self) -> int:
        return self._pos

    @property
    def current_bson_type(self) -> BsonType:
        if self._type is None:
            raise DecodeError(f"No current element at '{self.path}'; call read_bson_type first")
        return self._type

    def _limit(self) -> int:
        if self._stack:
            return self._stack[-1][0]
        return len(self._data)

    def _take(self, size: int) -> bytes:
        end = self._pos + size
        if size < 0 or end > self._limit():
            raise DocumentFormatError("Unexpected end of BSON data", self._pos)
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def _take_int32(self) -> int:
        return _INT32.unpack(self._take(4))[0]

    def _take_cstring(self) -> str:
        end = self._data.find(b"\x00", self._pos, self._limit())
        if end < 0:
            raise DocumentFormatError("Unterminated field name", self._pos)
        raw = self._data[self._pos:end]
        self._pos = end + 1
        return self._decode_utf8(raw)

    def _decode_utf8(self, raw: bytes) -> str:
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DocumentFormatError(f"Invalid UTF-8 at '{self.path}': {e}", self._pos)

    def _expect(self, *expected: BsonType) -> BsonType:
        actual = self.current_bson_type
        if actual not in expected:
            raise TypeMismatch(self.path, expected[0].name, actual.name)
        return actual

    def read_bson_type(self) -> BsonType:
        if not self._stack:
            raise DecodeError("read_bson_type called outside of a document or array")
        code = self._take(1)[0]
        if code == BsonType.END_OF_DOCUMENT:
            if self._pos != self._limit():
                raise DocumentFormatError("Document terminator before declared end", self._pos)
            self._name, self._type = None, BsonType.END_OF_DOCUMENT
            return self._type
        bson_type = _KNOWN_TYPES.get(code)
        if bson_type is None:
            raise DocumentFormatError(f"Unsupported BSON element type 0x{code:02x}", self._pos - 1)
        self._name = self._take_cstring()
        self._type = bson_type
        return bson_type

    def read_name(self) -> str:
        if not self._stack or self._type in (None, BsonType.END_OF_DOCUMENT):
            raise DecodeError(f"No current element name at '{self.path}'")
        return self._name

    def _enter(self, is_array: bool) -> None:
        start = self._pos
        length = self._take_int32()
        end = start + length
        if length < 5 or end > self._limit():
            raise DocumentFormatError(f"Invalid document length {length}", start)
        self._stack.append((end, is_array, self._name))
        self._name, self._type = None, None

    def _leave(self, is_array: bool, kind: str) -> None:
        if not self._stack or self._stack[-1][1] is not is_array:
            raise DecodeError(f"No open {kind} to leave at '{self.path}'")
        while self._type is not BsonType.END_OF_DOCUMENT:
            if self._type is not None:
                self.skip_value()
            self.read_bson_type()
        _, _, name = self._stack.pop()
        self._name, self._type = name, None
        if not self._stack and self._pos != len(self._data):
            raise DocumentFormatError("Trailing bytes after the root document", self._pos)

    def read_start_document(self) -> None:
        self._expect(BsonType.DOCUMENT)
        self._enter(is_array=False)

    def read_end_document(self) -> None:
        self._leave(False, "document")

    def read_start_array(self) -> None:
        self._expect(BsonType.ARRAY)
        self._enter(is_array=True)

    def read_end_array(self) -> None:
        self._leave(True, "array")

    def read_string(self) -> str:
        self._expect(BsonType.STRING)
        length = self._take_int32()
        if length < 1:
            raise DocumentFormatError(f"Invalid string length {length}", self._pos - 4)
        raw = self._take(length)
        if raw[-1] != 0:
            raise DocumentFormatError("String is not NUL terminated", self._pos - 1)
        self._type = None
        return self._decode_utf8(raw[:-1])

    def read_int32(self) -> int:
        self._expect(BsonType.INT32)
        self._type = None
        return self._take_int32()

    def read_int64(self) -> int:
        actual = self._expect(BsonType.INT64, BsonType.INT32)
        self._type = None
        if actual is BsonType.INT32:
            return self._take_int32()
        return _INT64.unpack(self._take(8))[0]

    def read_double(self) -> float:
        self._expect(BsonType.DOUBLE)
        self._type = None
        return _DOUBLE.unpack(self._take(8))[0]

    def read_boolean(self) -> bool:
        self._expect(BsonType.BOOLEAN)
        self._type = None
        value = self._take(1)[0]
        if value not in (0, 1):
            raise DocumentFormatError(f"Invalid boolean byte {value}", self._pos - 1)
        return value == 1

    def read_null(self) -> None:
        self._expect(BsonType.NULL)
        self._type = None
        return None

    def read_binary(self) -> Binary:
        self._expect(BsonType.BINARY)
        self._type = None
        length = self._take_int32()
        subtype = self._take(1)[0]
        return Binary(self._take(length), subtype)

    def read_datetime(self) -> int:
        self._expect(BsonType.DATE_TIME)
        self._type = None
        return _INT64.unpack(self._take(8))[0]

    def skip_value(self) -> None:
        bson_type = self.current_bson_type
        if bson_type is BsonType.END_OF_DOCUMENT:
            raise DecodeError(f"No current element to skip at '{self.path}'")
        if bson_type in (BsonType.DOCUMENT, BsonType.ARRAY):
            start = self._pos
            length = self._take_int32()
            self._pos = start
            self._take(length)
        elif bson_type is BsonType.STRING:
            self._take(self._take_int32())
        elif bson_type is BsonType.BINARY:
            self._take(self._take_int32() + 1)
        elif bson_type in (BsonType.DOUBLE, BsonType.INT64, BsonType.DATE_TIME):
            self._take(8)
        elif bson_type is BsonType.INT32:
            self._take(4)
        elif bson_type is BsonType.BOOLEAN:
            self._take(1)
        self._type = None

    def get_mark(self) -> ReaderMark:
        return _BinaryMark(self)


def document_to_bytes(document: Any) -> bytes:
    """Encode a ``dict`` document tree as BSON bytes."""
    writer = BinaryDocumentWriter()
    pipe(DocumentTreeReader(document), writer)
    return writer.to_bytes()


def bytes_to_document(data: bytes) -> Any:
    """Decode BSON bytes into a ``dict`` document tree."""
    writer = DocumentTreeWriter()
    pipe(BinaryDocumentReader(data), writer)
    return writer.document
