"""Helpers for testing codecs.

Example:
    >>> from bsonderive.testkit import assert_codec_symmetry, assert_document_structure
    >>> codec = registry.lookup(Address)
    >>> assert_codec_symmetry(codec, Address("Main", "NYC", 10001))
    >>> assert_document_structure(
    ...     codec,
    ...     Address("Main", "NYC", 10001),
    ...     {"street": "Main", "city": "NYC", "zipCode": 10001},
    ... )
"""

from typing import Any

from bsonderive.registry import CodecRegistry
from bsonderive.serialization.api import Codec
from bsonderive.serialization.binary import BinaryDocumentReader, BinaryDocumentWriter
from bsonderive.serialization.document import DocumentTreeReader, DocumentTreeWriter


def to_document(codec: Codec, value: Any) -> Any:
    """Encode ``value`` to a ``dict`` document tree."""
    writer = DocumentTreeWriter()
    codec.encode(writer, value)
    return writer.document


def from_document(codec: Codec, document: Any) -> Any:
    """Decode a ``dict`` document tree."""
    return codec.decode(DocumentTreeReader(document))


def to_bytes(codec: Codec, value: Any) -> bytes:
    """Encode ``value`` to BSON bytes."""
    writer = BinaryDocumentWriter()
    codec.encode(writer, value)
    return writer.to_bytes()


def from_bytes(codec: Codec, data: bytes) -> Any:
    """Decode BSON bytes."""
    return codec.decode(BinaryDocumentReader(data))


def round_trip(codec: Codec, value: Any, binary: bool = False) -> Any:
    """Encode and decode ``value``, through BSON bytes when ``binary`` is set."""
    if binary:
        return from_bytes(codec, to_bytes(codec, value))
    return from_document(codec, to_document(codec, value))


def assert_codec_symmetry(codec: Codec, value: Any) -> None:
    """Assert that ``value`` survives a round trip through both document forms.

    Raises:
        AssertionError: If either round trip changes the value.
    """
    for binary in (False, True):
        result = round_trip(codec, value, binary=binary)
        form = "BSON bytes" if binary else "document tree"
        assert result == value, (
            f"Codec symmetry violation through {form}: "
            f"round-trip changed value from {value!r} to {result!r}"
        )


def assert_document_structure(codec: Codec, value: Any, expected: Any) -> None:
    """Assert that ``value`` encodes to exactly ``expected``, field order included.

    Raises:
        AssertionError: If the documents differ.
    """
    actual = to_document(codec, value)
    assert _ordered(actual) == _ordered(expected), (
        f"Document structure mismatch:\nExpected: {expected!r}\nActual:   {actual!r}"
    )


def _ordered(document: Any) -> Any:
    if isinstance(document, dict):
        return [(key, _ordered(item)) for key, item in document.items()]
    if isinstance(document, list):
        return [_ordered(item) for item in document]
    return type(document), document


def test_registry(*codecs: Codec) -> CodecRegistry:
    """Build a registry holding only the given hand-written codecs."""
    return CodecRegistry().with_codecs(*codecs)


# not a pytest test
test_registry.__test__ = False
