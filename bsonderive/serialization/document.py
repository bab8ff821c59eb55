"""In-memory document reader and writer.

Documents are plain Python trees: ``dict`` for BSON documents, ``list`` for
arrays, and ``str``, ``int``, ``float``, ``bool``, ``None``, ``bytes``,
:class:`~bsonderive.serialization.api.Binary` and timezone-aware
``datetime`` for scalars. Dictionaries keep insertion order, so a tree
written by a derived codec has its fields in declaration order.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, List, Mapping, Optional, Tuple

from bsonderive.exceptions import DecodeError, EncodeError, TypeMismatch, ValueOutOfRange
from bsonderive.serialization.api import (
    BINARY_SUBTYPE_GENERIC,
    Binary,
    BsonType,
    DocumentReader,
    DocumentWriter,
    ReaderMark,
)


INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1
INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MILLISECOND = timedelta(milliseconds=1)


def datetime_to_millis(value: datetime) -> int:
    """Convert a datetime to BSON milliseconds; naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - EPOCH) // _ONE_MILLISECOND


def millis_to_datetime(millis: int) -> datetime:
    """Convert BSON milliseconds to a UTC datetime."""
    return EPOCH + timedelta(milliseconds=millis)


def join_path(parent: str, name: Optional[str]) -> str:
    """Append ``name`` to a dotted path."""
    if name is None:
        return parent
    if not parent:
        return name
    return f"{parent}.{name}"


def check_int_range(path: str, kind: str, value: int) -> None:
    """Raise ValueOutOfRange if ``value`` does not fit ``kind`` (int32 or int64)."""
    if kind == "int32":
        low, high = INT32_MIN, INT32_MAX
    else:
        low, high = INT64_MIN, INT64_MAX
    if not low <= value <= high:
        raise ValueOutOfRange(path, kind, value)


def bson_type_of(value: Any) -> BsonType:
    """Get the BSON type a tree value is stored as."""
    if value is None:
        return BsonType.NULL
    if isinstance(value, bool):
        return BsonType.BOOLEAN
    if isinstance(value, int):
        if INT32_MIN <= value <= INT32_MAX:
            return BsonType.INT32
        return BsonType.INT64
    if isinstance(value, float):
        return BsonType.DOUBLE
    if isinstance(value, str):
        return BsonType.STRING
    if isinstance(value, (bytes, bytearray, Binary)):
        return BsonType.BINARY
    if isinstance(value, datetime):
        return BsonType.DATE_TIME
    if isinstance(value, Mapping):
        return BsonType.DOCUMENT
    if isinstance(value, (list, tuple)):
        return BsonType.ARRAY
    raise DecodeError(f"Unsupported document value of type {type(value).__name__}")


class _WriteContext:
    __slots__ = ("container", "name")

    def __init__(self, container: Any, name: Optional[str]):
        self.container = container
        self.name = name


class DocumentTreeWriter(DocumentWriter):
    """Writer that builds a ``dict``/``list`` tree.

    Example:
        >>> writer = DocumentTreeWriter()
        >>> writer.write_start_document()
        >>> writer.write_name("city")
        >>> writer.write_string("NYC")
        >>> writer.write_end_document()
        >>> writer.document
        {'city': 'NYC'}
    """

    _UNSET = object()

    def __init__(self):
        self._root: Any = self._UNSET
        self._stack: List[_WriteContext] = []
        self._name: Optional[str] = None

    @property
    def document(self) -> Any:
        """Get the written root value."""
        if self._root is self._UNSET:
            raise EncodeError("Nothing has been written yet")
        if self._stack:
            raise EncodeError(f"Document is still open at '{self.path}'")
        return self._root

    @property
    def path(self) -> str:
        path = ""
        for context in self._stack:
            path = join_path(path, context.name)
        return join_path(path, self._element_name())

    def _element_name(self) -> Optional[str]:
        if not self._stack:
            return None
        container = self._stack[-1].container
        if isinstance(container, list):
            return str(len(container))
        return self._name

    def _put(self, value: Any) -> None:
        if not self._stack:
            if self._root is not self._UNSET:
                raise EncodeError("The document root has already been written")
            self._root = value
            return
        container = self._stack[-1].container
        if isinstance(container, list):
            container.append(value)
            return
        if self._name is None:
            raise EncodeError(f"No field name was written before the value at '{self.path}'")
        container[self._name] = value
        self._name = None

    def _open(self, container: Any) -> None:
        name = self._element_name()
        self._put(container)
        self._stack.append(_WriteContext(container, name))

    def _close(self, expected: type, kind: str) -> None:
        if not self._stack or not isinstance(self._stack[-1].container, expected):
            raise EncodeError(f"No open {kind} to close at '{self.path}'")
        if self._name is not None:
            raise EncodeError(f"Field name '{self._name}' was written without a value")
        self._stack.pop()

    def write_start_document(self) -> None:
        self._open({})

    def write_end_document(self) -> None:
        self._close(dict, "document")

    def write_start_array(self) -> None:
        self._open([])

    def write_end_array(self) -> None:
        self._close(list, "array")

    def write_name(self, name: str) -> None:
        if not self._stack or not isinstance(self._stack[-1].container, dict):
            raise EncodeError(f"Field name '{name}' written outside of a document")
        if self._name is not None:
            raise EncodeError(f"Field name '{self._name}' was written without a value")
        self._name = name

    def write_string(self, value: str) -> None:
        self._put(value)

    def write_int32(self, value: int) -> None:
        check_int_range(self.path, "int32", value)
        self._put(value)

    def write_int64(self, value: int) -> None:
        check_int_range(self.path, "int64", value)
        self._put(value)

    def write_double(self, value: float) -> None:
        self._put(float(value))

    def write_boolean(self, value: bool) -> None:
        self._put(bool(value))

    def write_null(self) -> None:
        self._put(None)

    def write_binary(self, value: bytes, subtype: int = BINARY_SUBTYPE_GENERIC) -> None:
        if subtype == BINARY_SUBTYPE_GENERIC:
            self._put(bytes(value))
        else:
            self._put(Binary(bytes(value), subtype))

    def write_datetime(self, millis: int) -> None:
        check_int_range(self.path, "int64", millis)
        self._put(millis_to_datetime(millis))


class _ReadContext:
    __slots__ = ("items", "index", "name", "is_array")

    def __init__(self, items: List[Tuple[str, Any]], index: int, name: Optional[str], is_array: bool):
        self.items = items
        self.index = index
        self.name = name
        self.is_array = is_array


class _TreeMark(ReaderMark):
    def __init__(self, reader: "DocumentTreeReader"):
        self._reader = reader
        self._stack = [(c.items, c.index, c.name, c.is_array) for c in reader._stack]
        self._current = (reader._name, reader._value, reader._type)

    def reset(self) -> None:
        self._reader._stack = [_ReadContext(*state) for state in self._stack]
        self._reader._name, self._reader._value, self._reader._type = self._current


class DocumentTreeReader(DocumentReader):
    """Reader over a ``dict``/``list`` tree.

    Args:
        document: The root value, normally a ``dict``.
    """

    def __init__(self, document: Any):
        self._stack: List[_ReadContext] = []
        self._name: Optional[str] = None
        self._value: Any = document
        self._type: Optional[BsonType] = bson_type_of(document)

    @property
    def path(self) -> str:
        path = ""
        for context in self._stack:
            path = join_path(path, context.name)
        return join_path(path, self._name)

    @property
    def current_bson_type(self) -> BsonType:
        if self._type is None:
            raise DecodeError(f"No current element at '{self.path}'; call read_bson_type first")
        return self._type

    def _expect(self, *expected: BsonType) -> Any:
        actual = self.current_bson_type
        if actual not in expected:
            raise TypeMismatch(self.path, expected[0].name, actual.name)
        return self._value

    def read_bson_type(self) -> BsonType:
        if not self._stack:
            raise DecodeError("read_bson_type called outside of a document or array")
        context = self._stack[-1]
        context.index += 1
        if context.index >= len(context.items):
            self._name, self._value, self._type = None, None, BsonType.END_OF_DOCUMENT
        else:
            self._name, self._value = context.items[context.index]
            self._type = bson_type_of(self._value)
        return self._type

    def read_name(self) -> str:
        if not self._stack or self._type in (None, BsonType.END_OF_DOCUMENT):
            raise DecodeError(f"No current element name at '{self.path}'")
        return self._name

    def _enter(self, items: List[Tuple[str, Any]], is_array: bool) -> None:
        self._stack.append(_ReadContext(items, -1, self._name, is_array))
        self._name, self._value, self._type = None, None, None

    def _leave(self, is_array: bool, kind: str) -> None:
        if not self._stack or self._stack[-1].is_array is not is_array:
            raise DecodeError(f"No open {kind} to leave at '{self.path}'")
        context = self._stack.pop()
        self._name, self._value, self._type = context.name, None, None

    def read_start_document(self) -> None:
        document = self._expect(BsonType.DOCUMENT)
        self._enter(list(document.items()), is_array=False)

    def read_end_document(self) -> None:
        self._leave(False, "document")

    def read_start_array(self) -> None:
        array = self._expect(BsonType.ARRAY)
        self._enter([(str(i), item) for i, item in enumerate(array)], is_array=True)

    def read_end_array(self) -> None:
        self._leave(True, "array")

    def read_string(self) -> str:
        return self._expect(BsonType.STRING)

    def read_int32(self) -> int:
        return self._expect(BsonType.INT32)

    def read_int64(self) -> int:
        return self._expect(BsonType.INT64, BsonType.INT32)

    def read_double(self) -> float:
        return self._expect(BsonType.DOUBLE)

    def read_boolean(self) -> bool:
        return self._expect(BsonType.BOOLEAN)

    def read_null(self) -> None:
        self._expect(BsonType.NULL)
        return None

    def read_binary(self) -> Binary:
        value = self._expect(BsonType.BINARY)
        if isinstance(value, Binary):
            return value
        return Binary(bytes(value), BINARY_SUBTYPE_GENERIC)

    def read_datetime(self) -> int:
        return datetime_to_millis(self._expect(BsonType.DATE_TIME))

    def skip_value(self) -> None:
        # Tree values are already materialized; only the state is checked.
        if self._type in (None, BsonType.END_OF_DOCUMENT):
            raise DecodeError(f"No current element to skip at '{self.path}'")

    def get_mark(self) -> ReaderMark:
        return _TreeMark(self)


def pipe(reader: DocumentReader, writer: DocumentWriter) -> None:
    """Copy the reader's current value to the writer."""
    bson_type = reader.current_bson_type
    if bson_type is BsonType.DOCUMENT:
        reader.read_start_document()
        writer.write_start_document()
        while reader.read_bson_type() is not BsonType.END_OF_DOCUMENT:
            writer.write_name(reader.read_name())
            pipe(reader, writer)
        reader.read_end_document()
        writer.write_end_document()
    elif bson_type is BsonType.ARRAY:
        reader.read_start_array()
        writer.write_start_array()
        while reader.read_bson_type() is not BsonType.END_OF_DOCUMENT:
            pipe(reader, writer)
        reader.read_end_array()
        writer.write_end_array()
    elif bson_type is BsonType.STRING:
        writer.write_string(reader.read_string())
    elif bson_type is BsonType.INT32:
        writer.write_int32(reader.read_int32())
    elif bson_type is BsonType.INT64:
        writer.write_int64(reader.read_int64())
    elif bson_type is BsonType.DOUBLE:
        writer.write_double(reader.read_double())
    elif bson_type is BsonType.BOOLEAN:
        writer.write_boolean(reader.read_boolean())
    elif bson_type is BsonType.NULL:
        reader.read_null()
        writer.write_null()
    elif bson_type is BsonType.BINARY:
        binary = reader.read_binary()
        writer.write_binary(binary.data, binary.subtype)
    elif bson_type is BsonType.DATE_TIME:
        writer.write_datetime(reader.read_datetime())
    else:
        raise DecodeError(f"Cannot copy BSON type {bson_type.name} at '{reader.path}'")
