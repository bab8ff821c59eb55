"""bsonderive - derived BSON codecs for Python dataclasses."""

from bsonderive.config import (
    CodecConfig,
    NoneHandling,
    DiscriminatorStrategy,
    EnumEncoding,
    DEFAULT_DISCRIMINATOR_FIELD,
)
from bsonderive.exceptions import (
    BsonDeriveException,
    ConfigurationError,
    DerivationError,
    NotARecord,
    DuplicateRegistration,
    DuplicateInBatch,
    DuplicateWireName,
    UnsupportedFieldType,
    EncodeError,
    NullRootValue,
    NullFieldValue,
    UnknownVariant,
    ValueOutOfRange,
    DecodeError,
    MissingRequiredField,
    MissingDiscriminator,
    UnknownDiscriminator,
    TypeMismatch,
    UnknownEnumValue,
    DocumentFormatError,
)
from bsonderive.registry import CodecRegistry, CodecBinding, Provenance
from bsonderive.derivation.fields import bson_field
from bsonderive.paths import field_path
from bsonderive.serialization.api import Codec, DocumentReader, DocumentWriter, BsonType, Binary
from bsonderive.serialization.builtin import Int32, Int64, Byte, Short, Float32, Char

__version__ = "0.1.0"

__all__ = [
    "CodecConfig",
    "NoneHandling",
    "DiscriminatorStrategy",
    "EnumEncoding",
    "DEFAULT_DISCRIMINATOR_FIELD",
    "BsonDeriveException",
    "ConfigurationError",
    "DerivationError",
    "NotARecord",
    "DuplicateRegistration",
    "DuplicateInBatch",
    "DuplicateWireName",
    "UnsupportedFieldType",
    "EncodeError",
    "NullRootValue",
    "NullFieldValue",
    "UnknownVariant",
    "ValueOutOfRange",
    "DecodeError",
    "MissingRequiredField",
    "MissingDiscriminator",
    "UnknownDiscriminator",
    "TypeMismatch",
    "UnknownEnumValue",
    "DocumentFormatError",
    "CodecRegistry",
    "CodecBinding",
    "Provenance",
    "bson_field",
    "field_path",
    "Codec",
    "DocumentReader",
    "DocumentWriter",
    "BsonType",
    "Binary",
    "Int32",
    "Int64",
    "Byte",
    "Short",
    "Float32",
    "Char",
]
