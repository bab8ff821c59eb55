"""BSON documents, readers, writers and primitive codecs."""

from bsonderive.serialization.api import (
    BsonType,
    Binary,
    Codec,
    DocumentReader,
    DocumentWriter,
    ReaderMark,
    BINARY_SUBTYPE_GENERIC,
    BINARY_SUBTYPE_UUID,
)
from bsonderive.serialization.document import (
    DocumentTreeReader,
    DocumentTreeWriter,
    pipe,
)
from bsonderive.serialization.binary import (
    BinaryDocumentReader,
    BinaryDocumentWriter,
    bytes_to_document,
    document_to_bytes,
)
from bsonderive.serialization.builtin import (
    Int32,
    Int64,
    Byte,
    Short,
    Float32,
    Char,
    get_builtin_codecs,
)

__all__ = [
    "BsonType",
    "Binary",
    "Codec",
    "DocumentReader",
    "DocumentWriter",
    "ReaderMark",
    "BINARY_SUBTYPE_GENERIC",
    "BINARY_SUBTYPE_UUID",
    "DocumentTreeReader",
    "DocumentTreeWriter",
    "pipe",
    "BinaryDocumentReader",
    "BinaryDocumentWriter",
    "bytes_to_document",
    "document_to_bytes",
    "Int32",
    "Int64",
    "Byte",
    "Short",
    "Float32",
    "Char",
    "get_builtin_codecs",
]
