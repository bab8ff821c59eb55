"""Type and field descriptors.

Descriptors are the structural model a codec is derived from. They are
computed once, when a type is registered, and never change afterwards.
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple


class TypeDescriptor:
    """Base class for the shape of a Python type."""

    __slots__ = ()

    @property
    def display_name(self) -> str:
        return repr(self)


@dataclass(frozen=True)
class PrimitiveType(TypeDescriptor):
    """A type whose codec comes straight from the registry."""

    python_type: Any

    @property
    def display_name(self) -> str:
        return getattr(self.python_type, "__qualname__", None) or repr(self.python_type)


@dataclass(frozen=True)
class OptionalType(TypeDescriptor):
    """``Optional[X]``."""

    inner: TypeDescriptor

    @property
    def display_name(self) -> str:
        return f"Optional[{self.inner.display_name}]"


@dataclass(frozen=True)
class CollectionType(TypeDescriptor):
    """A homogeneous sequence or set stored as a BSON array.

    Attributes:
        element: Descriptor of the element type.
        container: Python type the decoded elements are collected into.
    """

    element: TypeDescriptor
    container: type = list

    @property
    def display_name(self) -> str:
        return f"{self.container.__name__}[{self.element.display_name}]"


@dataclass(frozen=True)
class MapType(TypeDescriptor):
    """A string-keyed mapping stored as a nested document."""

    value: TypeDescriptor

    @property
    def display_name(self) -> str:
        return f"dict[str, {self.value.display_name}]"


@dataclass(frozen=True)
class FieldDescriptor:
    """Describes one persisted field of a record.

    Attributes:
        declared_name: Attribute name on the dataclass.
        wire_name: Field name in the document.
        type_descriptor: Shape of the field's type.
        default_provider: Zero-argument callable producing the default,
            or None if the field has no default.
        declaration_order: Zero-based position among persisted fields.
    """

    declared_name: str
    wire_name: str
    type_descriptor: TypeDescriptor
    default_provider: Optional[Callable[[], Any]] = None
    declaration_order: int = 0

    @property
    def is_optional(self) -> bool:
        return isinstance(self.type_descriptor, OptionalType)

    @property
    def has_default(self) -> bool:
        return self.default_provider is not None


@dataclass(frozen=True)
class ProductType(TypeDescriptor):
    """A dataclass record."""

    python_type: type
    fields: Tuple[FieldDescriptor, ...] = ()

    @property
    def display_name(self) -> str:
        return self.python_type.__qualname__

    def field(self, declared_name: str) -> Optional[FieldDescriptor]:
        for f in self.fields:
            if f.declared_name == declared_name:
                return f
        return None


@dataclass(frozen=True)
class SumType(TypeDescriptor):
    """A base class and its concrete dataclass variants."""

    python_type: type
    variants: Tuple[type, ...] = ()

    @property
    def display_name(self) -> str:
        return self.python_type.__qualname__


@dataclass(frozen=True)
class EnumType(TypeDescriptor):
    """An ``enum.Enum`` subclass stored by member name."""

    python_type: type

    @property
    def display_name(self) -> str:
        return self.python_type.__qualname__
