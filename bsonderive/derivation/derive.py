"""Recursive codec derivation.

:class:`TypeCodecDerivation` turns a Python type into a
:class:`~bsonderive.derivation.descriptors.TypeDescriptor` and a
descriptor into a :class:`~bsonderive.serialization.api.Codec`. Types the
registry already knows are used as they are; everything else is derived
inline from its shape.

Supported field annotations:

=============================  ==========================
Annotation                     Stored as
=============================  ==========================
registered or builtin type     that type's codec
``Optional[X]``                X or null
``List[X]``, ``Sequence[X]``   array
``Tuple[X, ...]``              array
``Set[X]``, ``FrozenSet[X]``   array
``Dict[str, V]``               nested document
``enum.Enum`` subclass         member name, or value
dataclass                      nested document
class with dataclass leaves    tagged nested document
=============================  ==========================

Collections decode to the container the annotation names: a tuple held by a
``Sequence[X]`` field comes back as a list. Annotate the field as
``Tuple[X, ...]`` to get a tuple back.
"""

import collections.abc
import dataclasses
import inspect
import types
import typing
from contextlib import contextmanager
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterator, Optional, Sequence, Set

from bsonderive.config import CodecConfig, EnumEncoding
from bsonderive.derivation.codecs import (
    CollectionCodec,
    EnumCodec,
    EnumValueCodec,
    MapCodec,
    OptionalCodec,
    ProductCodec,
    SumCodec,
)
from bsonderive.derivation.descriptors import (
    CollectionType,
    EnumType,
    MapType,
    OptionalType,
    PrimitiveType,
    ProductType,
    SumType,
    TypeDescriptor,
)
from bsonderive.derivation.discriminator import DiscriminatorResolver
from bsonderive.derivation.fields import FieldMetadataResolver
from bsonderive.exceptions import DerivationError, UnsupportedFieldType
from bsonderive.logging import get_logger
from bsonderive.serialization.api import Codec

_logger = get_logger("derivation")

_NONE_TYPE = type(None)
_UNION_TYPES = tuple(t for t in (typing.Union, getattr(types, "UnionType", None)) if t is not None)

_COLLECTION_ORIGINS = {
    list: list,
    tuple: tuple,
    set: set,
    frozenset: frozenset,
    collections.abc.Sequence: list,
    collections.abc.MutableSequence: list,
    collections.abc.Set: frozenset,
    collections.abc.MutableSet: set,
}

_MAP_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)

CodecLookup = Callable[[Any], Optional[Codec]]


def _type_label(tp: Any) -> str:
    return getattr(tp, "__qualname__", None) or repr(tp)


class TypeCodecDerivation:
    """Derives codecs under one configuration.

    Args:
        lookup: Returns the codec bound for a type (registry binding or
            base codec), or None when the type is unknown.
        config: Configuration captured by every codec derived here.
    """

    def __init__(self, lookup: CodecLookup, config: CodecConfig):
        self._lookup = lookup
        self._config = config
        self._fields = FieldMetadataResolver(self.describe)
        self._discriminators = DiscriminatorResolver(config)
        self._active: Set[type] = set()
        self._inline: Set[Any] = set()

    @property
    def config(self) -> CodecConfig:
        return self._config

    @property
    def discriminators(self) -> DiscriminatorResolver:
        return self._discriminators

    @property
    def inline_types(self) -> FrozenSet[Any]:
        """Types described here that had no codec and were derived inline."""
        return frozenset(self._inline)

    def _check_closed(self, cls: type) -> None:
        subclasses = cls.__subclasses__()
        if subclasses:
            names = ", ".join(sub.__qualname__ for sub in subclasses)
            raise DerivationError(
                f"{cls.__qualname__} has subclasses ({names}) whose fields a record "
                "codec would drop; register it with register_sum to store them as variants"
            )

    @contextmanager
    def _entering(self, tp: type) -> Iterator[None]:
        if tp in self._active:
            raise DerivationError(
                f"{tp.__qualname__} refers to itself; recursive types are not supported"
            )
        self._active.add(tp)
        try:
            yield
        finally:
            self._active.discard(tp)

    def describe(self, tp: Any) -> TypeDescriptor:
        """Analyse the shape of a type.

        Raises:
            UnsupportedFieldType: If no codec can be found or derived.
            DerivationError: If the type is recursive.
        """
        origin = typing.get_origin(tp)
        args = typing.get_args(tp)

        if origin in _UNION_TYPES:
            members = [a for a in args if a is not _NONE_TYPE]
            if len(members) == 1 and len(args) == 2:
                return OptionalType(self.describe(members[0]))
            raise UnsupportedFieldType(tp, "only Optional[X] unions are supported")

        if tp is _NONE_TYPE or tp is typing.Any:
            raise UnsupportedFieldType(tp)

        if self._lookup(tp) is not None:
            return PrimitiveType(tp)

        if hasattr(tp, "__supertype__"):
            return self.describe(tp.__supertype__)

        if isinstance(tp, type) and issubclass(tp, Enum):
            self._inline.add(tp)
            return EnumType(tp)

        if origin in _COLLECTION_ORIGINS:
            if origin is tuple:
                if len(args) != 2 or args[1] is not Ellipsis:
                    raise UnsupportedFieldType(tp, "only Tuple[X, ...] is supported")
                args = args[:1]
            if len(args) != 1:
                raise UnsupportedFieldType(tp, "element type is missing")
            return CollectionType(self.describe(args[0]), _COLLECTION_ORIGINS[origin])

        if origin in _MAP_ORIGINS:
            if len(args) != 2:
                raise UnsupportedFieldType(tp, "key and value types are missing")
            if args[0] is not str:
                raise UnsupportedFieldType(tp, "mapping keys must be str")
            return MapType(self.describe(args[1]))

        if not isinstance(tp, type):
            raise UnsupportedFieldType(tp)

        if tp in _COLLECTION_ORIGINS or tp in _MAP_ORIGINS:
            raise UnsupportedFieldType(tp, "container needs a type parameter")

        if dataclasses.is_dataclass(tp) and not inspect.isabstract(tp):
            self._check_closed(tp)
            self._inline.add(tp)
            with self._entering(tp):
                return self._fields.resolve(tp)

        try:
            variants = self._discriminators.flatten(tp)
        except DerivationError:
            raise UnsupportedFieldType(
                tp, "no codec is registered and it has no dataclass variants"
            )
        self._inline.add(tp)
        self._inline.update(variants)
        return SumType(tp, variants)

    def describe_record(self, cls: type) -> ProductType:
        """Describe a dataclass; raises NotARecord for anything else."""
        with self._entering(cls):
            return self._fields.resolve(cls)

    def derive(self, descriptor: TypeDescriptor) -> Codec:
        """Build the codec of a descriptor."""
        if isinstance(descriptor, PrimitiveType):
            codec = self._lookup(descriptor.python_type)
            if codec is None:
                raise UnsupportedFieldType(descriptor.python_type, "no codec is registered")
            return codec
        if isinstance(descriptor, OptionalType):
            return OptionalCodec(self.derive(descriptor.inner))
        if isinstance(descriptor, CollectionType):
            return CollectionCodec(
                self.derive(descriptor.element),
                descriptor.container,
                isinstance(descriptor.element, OptionalType),
            )
        if isinstance(descriptor, MapType):
            return MapCodec(
                self.derive(descriptor.value), isinstance(descriptor.value, OptionalType)
            )
        if isinstance(descriptor, EnumType):
            return self.derive_enum(descriptor.python_type)
        if isinstance(descriptor, ProductType):
            return self.derive_product(descriptor)
        if isinstance(descriptor, SumType):
            return self.derive_sum(descriptor.python_type, descriptor.variants)
        raise DerivationError(f"Unknown type descriptor {descriptor!r}")

    def derive_product(
        self, product: ProductType, discriminator: Optional[tuple] = None
    ) -> ProductCodec:
        fields = [(fd, self.derive(fd.type_descriptor)) for fd in product.fields]
        _logger.debug(
            "Derived record codec for %s with %d fields",
            product.python_type.__qualname__,
            len(fields),
        )
        return ProductCodec(product.python_type, fields, self._config, discriminator)

    def derive_record(self, cls: type) -> ProductCodec:
        """Derive the plain record codec of a dataclass."""
        self._check_closed(cls)
        return self.derive_product(self.describe_record(cls))

    def derive_enum(self, enum_type: type) -> Codec:
        """Derive an enum codec storing members by name or by value.

        Raises:
            UnsupportedFieldType: If members are stored by value and their
                values do not share one type with a codec.
        """
        if self._config.enum_encoding is EnumEncoding.NAME:
            return EnumCodec(enum_type)

        value_types = {type(member.value) for member in enum_type}
        if len(value_types) != 1:
            raise UnsupportedFieldType(enum_type, "enum values must all have the same type")
        value_codec = self._lookup(value_types.pop())
        if value_codec is None:
            raise UnsupportedFieldType(enum_type, "no codec is registered for its values")
        return EnumValueCodec(enum_type, value_codec)

    def derive_sum(self, base: type, variants: Optional[Sequence[type]] = None) -> SumCodec:
        """Derive a sum type codec and the tag-writing codec of each variant.

        Raises:
            DerivationError: If the variant set is empty or invalid, or a
                variant has a field named like the discriminator.
        """
        field_name = self._config.discriminator_field
        with self._entering(base):
            discriminators = self._discriminators.resolve(base, variants)
            variant_codecs: Dict[type, Codec] = {}
            for variant in discriminators.variants:
                product = self.describe_record(variant)
                for fd in product.fields:
                    if fd.wire_name == field_name:
                        raise DerivationError(
                            f"Field '{fd.declared_name}' of {variant.__qualname__} uses the "
                            f"discriminator field name '{field_name}'"
                        )
                tag = discriminators.tag_for(variant)
                variant_codecs[variant] = self.derive_product(product, (field_name, tag))

        _logger.debug(
            "Derived sum codec for %s with tags %s",
            _type_label(base),
            ", ".join(discriminators.tags),
        )
        return SumCodec(base, discriminators, variant_codecs, field_name)
