"""Codec derivation for dataclass records and sum types."""

from bsonderive.derivation.descriptors import (
    TypeDescriptor,
    PrimitiveType,
    OptionalType,
    CollectionType,
    MapType,
    ProductType,
    SumType,
    EnumType,
    FieldDescriptor,
)
from bsonderive.derivation.fields import FieldMetadataResolver, bson_field
from bsonderive.derivation.discriminator import DiscriminatorMap, DiscriminatorResolver
from bsonderive.derivation.codecs import (
    OptionalCodec,
    CollectionCodec,
    MapCodec,
    EnumCodec,
    EnumValueCodec,
    ProductCodec,
    SumCodec,
)
from bsonderive.derivation.derive import TypeCodecDerivation

__all__ = [
    "TypeDescriptor",
    "PrimitiveType",
    "OptionalType",
    "CollectionType",
    "MapType",
    "ProductType",
    "SumType",
    "EnumType",
    "FieldDescriptor",
    "FieldMetadataResolver",
    "bson_field",
    "DiscriminatorMap",
    "DiscriminatorResolver",
    "OptionalCodec",
    "CollectionCodec",
    "MapCodec",
    "EnumCodec",
    "EnumValueCodec",
    "ProductCodec",
    "SumCodec",
    "TypeCodecDerivation",
]
