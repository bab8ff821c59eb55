"""Codecs produced by derivation.

These codecs are assembled from descriptors by
:class:`~bsonderive.derivation.derive.TypeCodecDerivation`; they are not
meant to be constructed by hand.
"""

from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from bsonderive.config import CodecConfig
from bsonderive.derivation.descriptors import FieldDescriptor
from bsonderive.derivation.discriminator import DiscriminatorMap
from bsonderive.exceptions import (
    EncodeError,
    MissingDiscriminator,
    MissingRequiredField,
    NullFieldValue,
    NullRootValue,
    TypeMismatch,
    UnknownDiscriminator,
    UnknownEnumValue,
    UnknownVariant,
)
from bsonderive.serialization.api import BsonType, Codec, DocumentReader, DocumentWriter
from bsonderive.serialization.document import DocumentTreeWriter, join_path, pipe


def _check_instance(
    writer: DocumentWriter, value: Any, python_type: type, exact: bool = False
) -> None:
    if value is None:
        raise NullRootValue(python_type)
    if exact and type(value) is not python_type and isinstance(value, python_type):
        # a subclass would lose the fields the record codec does not know
        raise EncodeError(
            f"Expected exactly {python_type.__qualname__} at '{writer.path}' but got "
            f"subclass {type(value).__qualname__}; register the hierarchy with register_sum"
        )
    if not isinstance(value, python_type):
        raise EncodeError(
            f"Expected {python_type.__qualname__} at '{writer.path}' "
            f"but got {type(value).__qualname__}"
        )


class OptionalCodec(Codec[Any]):
    """Wraps a codec so that ``None`` maps to BSON null."""

    def __init__(self, inner: Codec):
        self._inner = inner

    @property
    def inner(self) -> Codec:
        return self._inner

    @property
    def value_type(self) -> type:
        return self._inner.value_type

    def encode(self, writer: DocumentWriter, value: Any) -> None:
        if value is None:
            writer.write_null()
        else:
            self._inner.encode(writer, value)

    def decode(self, reader: DocumentReader) -> Any:
        if reader.current_bson_type is BsonType.NULL:
            reader.read_null()
            return None
        return self._inner.decode(reader)

    def __repr__(self) -> str:
        return f"OptionalCodec({self._inner!r})"


class CollectionCodec(Codec[Any]):
    """Sequences and sets as BSON arrays.

    Element order and duplicates are kept. Sets are written in sorted
    order when their elements are orderable.
    """

    def __init__(self, element: Codec, container: type = list, element_optional: bool = False):
        self._element = element
        self._container = container
        self._element_optional = element_optional

    @property
    def value_type(self) -> type:
        return self._container

    def _ordered(self, value: Any) -> Sequence[Any]:
        if isinstance(value, (set, frozenset)):
            try:
                return sorted(value)
            except TypeError:
                return list(value)
        return value

    def encode(self, writer: DocumentWriter, value: Any) -> None:
        if isinstance(value, (str, bytes, bytearray, Mapping)):
            raise EncodeError(
                f"Expected a collection at '{writer.path}' but got {type(value).__name__}"
            )
        try:
            items = self._ordered(value)
            iter(items)
        except TypeError:
            raise EncodeError(
                f"Expected a collection at '{writer.path}' but got {type(value).__name__}"
            )

        writer.write_start_array()
        for item in items:
            if item is None and not self._element_optional:
                raise NullFieldValue(writer.path)
            self._element.encode(writer, item)
        writer.write_end_array()

    def decode(self, reader: DocumentReader) -> Any:
        reader.read_start_array()
        items = []
        while reader.read_bson_type() is not BsonType.END_OF_DOCUMENT:
            items.append(self._element.decode(reader))
        reader.read_end_array()
        if self._container is list:
            return items
        return self._container(items)

    def __repr__(self) -> str:
        return f"CollectionCodec({self._container.__name__}, {self._element!r})"


class MapCodec(Codec[Dict[str, Any]]):
    """String-keyed mappings as nested documents."""

    def __init__(self, value: Codec, value_optional: bool = False):
        self._value = value
        self._value_optional = value_optional

    @property
    def value_type(self) -> type:
        return dict

    def encode(self, writer: DocumentWriter, value: Mapping[str, Any]) -> None:
        if not isinstance(value, Mapping):
            raise EncodeError(
                f"Expected a mapping at '{writer.path}' but got {type(value).__name__}"
            )
        writer.write_start_document()
        for key, item in value.items():
            if not isinstance(key, str):
                raise EncodeError(
                    f"Mapping keys must be str; got {type(key).__name__} at '{writer.path}'"
                )
            if item is None and not self._value_optional:
                raise NullFieldValue(join_path(writer.path, key))
            writer.write_name(key)
            self._value.encode(writer, item)
        writer.write_end_document()

    def decode(self, reader: DocumentReader) -> Dict[str, Any]:
        reader.read_start_document()
        result: Dict[str, Any] = {}
        while reader.read_bson_type() is not BsonType.END_OF_DOCUMENT:
            key = reader.read_name()
            result[key] = self._value.decode(reader)
        reader.read_end_document()
        return result


class EnumCodec(Codec[Enum]):
    """Enum members stored by name."""

    def __init__(self, enum_type: type):
        self._enum_type = enum_type

    @property
    def value_type(self) -> type:
        return self._enum_type

    def encode(self, writer: DocumentWriter, value: Enum) -> None:
        _check_instance(writer, value, self._enum_type)
        writer.write_string(value.name)

    def decode(self, reader: DocumentReader) -> Enum:
        path = reader.path
        name = reader.read_string()
        try:
            return self._enum_type[name]
        except KeyError:
            raise UnknownEnumValue(path, name, [m.name for m in self._enum_type])


class EnumValueCodec(Codec[Enum]):
    """Enum members stored by value through the codec of the value type.

    Args:
        enum_type: The enum class.
        value_codec: Codec shared by every member value.
    """

    def __init__(self, enum_type: type, value_codec: Codec):
        self._enum_type = enum_type
        self._value_codec = value_codec

    @property
    def value_type(self) -> type:
        return self._enum_type

    def encode(self, writer: DocumentWriter, value: Enum) -> None:
        _check_instance(writer, value, self._enum_type)
        self._value_codec.encode(writer, value.value)

    def decode(self, reader: DocumentReader) -> Enum:
        path = reader.path
        raw = self._value_codec.decode(reader)
        try:
            return self._enum_type(raw)
        except ValueError:
            raise UnknownEnumValue(path, raw, [repr(m.value) for m in self._enum_type])

    def __repr__(self) -> str:
        return f"EnumValueCodec({self._enum_type.__qualname__}, {self._value_codec!r})"


class ProductCodec(Codec[Any]):
    """Dataclass records as BSON documents.

    Args:
        python_type: The dataclass.
        fields: Field descriptors paired with their codecs, in declaration
            order.
        config: Configuration captured at derivation time.
        discriminator: Optional ``(field_name, tag)`` written before the
            fields when the record is a sum type variant.
    """

    def __init__(
        self,
        python_type: type,
        fields: Sequence[Tuple[FieldDescriptor, Codec]],
        config: CodecConfig,
        discriminator: Optional[Tuple[str, str]] = None,
    ):
        self._python_type = python_type
        self._fields = tuple(fields)
        self._by_wire_name = {fd.wire_name: (fd, codec) for fd, codec in self._fields}
        self._config = config
        self._discriminator = discriminator

    @property
    def value_type(self) -> type:
        return self._python_type

    @property
    def config(self) -> CodecConfig:
        return self._config

    @property
    def discriminator(self) -> Optional[Tuple[str, str]]:
        return self._discriminator

    @property
    def fields(self) -> Tuple[FieldDescriptor, ...]:
        return tuple(fd for fd, _ in self._fields)

    def encode(self, writer: DocumentWriter, value: Any) -> None:
        _check_instance(writer, value, self._python_type, exact=True)
        writer.write_start_document()
        if self._discriminator is not None:
            field_name, tag = self._discriminator
            writer.write_name(field_name)
            writer.write_string(tag)

        for fd, codec in self._fields:
            item = getattr(value, fd.declared_name)
            if item is None:
                if not fd.is_optional:
                    raise NullFieldValue(join_path(writer.path, fd.wire_name))
                if not self._config.should_encode_none:
                    continue
            writer.write_name(fd.wire_name)
            codec.encode(writer, item)

        writer.write_end_document()

    def decode(self, reader: DocumentReader) -> Any:
        reader.read_start_document()
        values: Dict[str, Any] = {}
        while reader.read_bson_type() is not BsonType.END_OF_DOCUMENT:
            entry = self._by_wire_name.get(reader.read_name())
            if entry is None:
                reader.skip_value()
                continue
            fd, codec = entry
            values[fd.declared_name] = codec.decode(reader)

        for fd, _ in self._fields:
            if fd.declared_name in values:
                continue
            if fd.is_optional:
                values[fd.declared_name] = None
            elif fd.default_provider is not None:
                values[fd.declared_name] = fd.default_provider()
            else:
                raise MissingRequiredField(join_path(reader.path, fd.wire_name))

        reader.read_end_document()
        return self._python_type(**values)

    def __repr__(self) -> str:
        return f"ProductCodec({self._python_type.__qualname__})"


class SumCodec(Codec[Any]):
    """Polymorphic codec dispatching on the discriminator tag.

    Args:
        python_type: The sum type.
        discriminators: Tag map of the variants.
        variant_codecs: Discriminator-writing codec of every variant.
        field_name: Document field holding the tag.
    """

    _MISSING = object()

    def __init__(
        self,
        python_type: type,
        discriminators: DiscriminatorMap,
        variant_codecs: Mapping[type, Codec],
        field_name: str,
    ):
        self._python_type = python_type
        self._discriminators = discriminators
        self._variant_codecs = dict(variant_codecs)
        self._field_name = field_name

    @property
    def value_type(self) -> type:
        return self._python_type

    @property
    def discriminators(self) -> DiscriminatorMap:
        return self._discriminators

    @property
    def variant_codecs(self) -> Dict[type, Codec]:
        return dict(self._variant_codecs)

    @property
    def field_name(self) -> str:
        return self._field_name

    def encode(self, writer: DocumentWriter, value: Any) -> None:
        if value is None:
            raise NullRootValue(self._python_type)
        codec = self._variant_codecs.get(type(value))
        if codec is None:
            raise UnknownVariant(type(value), self._python_type, self._discriminators.variants)
        codec.encode(writer, value)

    def _read_tag(self, reader: DocumentReader) -> Any:
        reader.read_start_document()
        while reader.read_bson_type() is not BsonType.END_OF_DOCUMENT:
            if reader.read_name() != self._field_name:
                reader.skip_value()
                continue
            if reader.current_bson_type is BsonType.STRING:
                return reader.read_string()
            tag_writer = DocumentTreeWriter()
            pipe(reader, tag_writer)
            return tag_writer.document
        return self._MISSING

    def decode(self, reader: DocumentReader) -> Any:
        actual = reader.current_bson_type
        if actual is not BsonType.DOCUMENT:
            raise TypeMismatch(reader.path, BsonType.DOCUMENT.name, actual.name)

        mark = reader.get_mark()
        tag = self._read_tag(reader)
        mark.reset()

        if tag is self._MISSING:
            raise MissingDiscriminator(
                self._python_type.__qualname__, self._field_name, reader.path
            )
        variant = self._discriminators.variant_for(tag) if isinstance(tag, str) else None
        if variant is None:
            raise UnknownDiscriminator(
                tag, self._discriminators.tags, self._python_type.__qualname__
            )
        return self._variant_codecs[variant].decode(reader)

    def __repr__(self) -> str:
        return f"SumCodec({self._python_type.__qualname__}, {list(self._discriminators.tags)})"
