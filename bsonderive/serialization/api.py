"""Serialization API interfaces.

This module defines the document reader and writer contracts that codecs
are written against, and the :class:`Codec` interface itself.

A reader and a writer walk a BSON document as a stream of events: start
and end of documents and arrays, field names and scalar values. Two
implementations ship with the package:

- :mod:`bsonderive.serialization.document` works on ``dict``/``list`` trees
- :mod:`bsonderive.serialization.binary` works on BSON bytes

Example:
    Implementing a codec by hand::

        from bsonderive.serialization.api import Codec, DocumentReader, DocumentWriter

        class MoneyCodec(Codec[Money]):
            @property
            def value_type(self) -> type:
                return Money

            def encode(self, writer: DocumentWriter, value: Money) -> None:
                writer.write_start_document()
                writer.write_name("amount")
                writer.write_int64(value.cents)
                writer.write_name("currency")
                writer.write_string(value.currency)
                writer.write_end_document()

            def decode(self, reader: DocumentReader) -> Money:
                fields = {}
                reader.read_start_document()
                while reader.read_bson_type() is not BsonType.END_OF_DOCUMENT:
                    name = reader.read_name()
                    if name == "amount":
                        fields["cents"] = reader.read_int64()
                    elif name == "currency":
                        fields["currency"] = reader.read_string()
                    else:
                        reader.skip_value()
                reader.read_end_document()
                return Money(**fields)
"""

from abc import ABC, abstractmethod
from enum import IntEnum
from typing import Generic, NamedTuple, TypeVar

T = TypeVar("T")


class BsonType(IntEnum):
    """BSON element type codes."""

    END_OF_DOCUMENT = 0x00
    DOUBLE = 0x01
    STRING = 0x02
    DOCUMENT = 0x03
    ARRAY = 0x04
    BINARY = 0x05
    BOOLEAN = 0x08
    DATE_TIME = 0x09
    NULL = 0x0A
    INT32 = 0x10
    INT64 = 0x12


BINARY_SUBTYPE_GENERIC = 0x00
BINARY_SUBTYPE_UUID = 0x04


class Binary(NamedTuple):
    """Binary payload with a non-generic BSON subtype.

    Generic binary data (subtype 0) is represented as plain ``bytes``.
    """

    data: bytes
    subtype: int


class ReaderMark(ABC):
    """A saved reader position that can be returned to."""

    @abstractmethod
    def reset(self) -> None:
        """Move the reader back to the saved position."""
        pass


class DocumentWriter(ABC):
    """Interface for writing a BSON document as a stream of events.

    Every value inside a document must be preceded by :meth:`write_name`.
    Values inside an array are written without names.
    """

    @property
    @abstractmethod
    def path(self) -> str:
        """Dotted path of the element currently being written."""
        pass

    @abstractmethod
    def write_start_document(self) -> None:
        """Open a document (the root, a nested field or an array element)."""
        pass

    @abstractmethod
    def write_end_document(self) -> None:
        """Close the innermost open document."""
        pass

    @abstractmethod
    def write_start_array(self) -> None:
        """Open an array."""
        pass

    @abstractmethod
    def write_end_array(self) -> None:
        """Close the innermost open array."""
        pass

    @abstractmethod
    def write_name(self, name: str) -> None:
        """Name the next value written inside the current document.

        Args:
            name: The field name.
        """
        pass

    @abstractmethod
    def write_string(self, value: str) -> None:
        """Write a UTF-8 string value."""
        pass

    @abstractmethod
    def write_int32(self, value: int) -> None:
        """Write a 32-bit signed integer value."""
        pass

    @abstractmethod
    def write_int64(self, value: int) -> None:
        """Write a 64-bit signed integer value."""
        pass

    @abstractmethod
    def write_double(self, value: float) -> None:
        """Write a 64-bit floating point value."""
        pass

    @abstractmethod
    def write_boolean(self, value: bool) -> None:
        """Write a boolean value."""
        pass

    @abstractmethod
    def write_null(self) -> None:
        """Write an explicit null marker."""
        pass

    @abstractmethod
    def write_binary(self, value: bytes, subtype: int = BINARY_SUBTYPE_GENERIC) -> None:
        """Write binary data.

        Args:
            value: The payload.
            subtype: The BSON binary subtype.
        """
        pass

    @abstractmethod
    def write_datetime(self, millis: int) -> None:
        """Write a UTC datetime as milliseconds since the Unix epoch."""
        pass


class DocumentReader(ABC):
    """Interface for reading a BSON document as a stream of events.

    Inside a document or array, call :meth:`read_bson_type` to advance to
    the next element; it returns ``END_OF_DOCUMENT`` once the container is
    exhausted. Reading a value with the wrong ``read_*`` method raises
    :class:`~bsonderive.exceptions.TypeMismatch`.
    """

    @property
    @abstractmethod
    def path(self) -> str:
        """Dotted path of the current element."""
        pass

    @property
    @abstractmethod
    def current_bson_type(self) -> BsonType:
        """BSON type of the current element."""
        pass

    @abstractmethod
    def read_bson_type(self) -> BsonType:
        """Advance to the next element of the current container.

        Returns:
            The element's type, or ``END_OF_DOCUMENT`` at the end.
        """
        pass

    @abstractmethod
    def read_name(self) -> str:
        """Get the name of the current element."""
        pass

    @abstractmethod
    def read_start_document(self) -> None:
        """Enter the current document element."""
        pass

    @abstractmethod
    def read_end_document(self) -> None:
        """Leave the innermost document, skipping unread elements."""
        pass

    @abstractmethod
    def read_start_array(self) -> None:
        """Enter the current array element."""
        pass

    @abstractmethod
    def read_end_array(self) -> None:
        """Leave the innermost array, skipping unread elements."""
        pass

    @abstractmethod
    def read_string(self) -> str:
        pass

    @abstractmethod
    def read_int32(self) -> int:
        pass

    @abstractmethod
    def read_int64(self) -> int:
        """Read a 64-bit integer; 32-bit integers are widened."""
        pass

    @abstractmethod
    def read_double(self) -> float:
        pass

    @abstractmethod
    def read_boolean(self) -> bool:
        pass

    @abstractmethod
    def read_null(self) -> None:
        pass

    @abstractmethod
    def read_binary(self) -> Binary:
        """Read binary data together with its subtype."""
        pass

    @abstractmethod
    def read_datetime(self) -> int:
        """Read a UTC datetime as milliseconds since the Unix epoch."""
        pass

    @abstractmethod
    def skip_value(self) -> None:
        """Skip the current element."""
        pass

    @abstractmethod
    def get_mark(self) -> ReaderMark:
        """Save the current position so it can be restored later."""
        pass


class Codec(ABC, Generic[T]):
    """Encoder/decoder pair for one Python type.

    Codecs are stateless after construction and safe to share between
    threads.

    Type Parameters:
        T: The type of value this codec handles.
    """

    @property
    @abstractmethod
    def value_type(self) -> type:
        """Get the Python type this codec encodes and decodes."""
        pass

    @abstractmethod
    def encode(self, writer: DocumentWriter, value: T) -> None:
        """Write a value to the writer.

        Args:
            writer: The document writer positioned where the value belongs.
            value: The value to write.
        """
        pass

    @abstractmethod
    def decode(self, reader: DocumentReader) -> T:
        """Read a value from the reader.

        Args:
            reader: The document reader positioned on the value.

        Returns:
            The decoded value.
        """
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}({getattr(self.value_type, '__qualname__', self.value_type)})"
