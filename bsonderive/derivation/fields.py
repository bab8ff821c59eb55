"""Field metadata for dataclass records.

Example:
    Renaming a field on the wire::

        from dataclasses import dataclass
        from bsonderive import bson_field

        @dataclass
        class Address:
            street: str
            zip_code: int = bson_field(name="zipCode")
"""

import dataclasses
import typing
from typing import Any, Callable, Dict, List, Optional

from bsonderive.derivation.descriptors import FieldDescriptor, ProductType, TypeDescriptor
from bsonderive.exceptions import DerivationError, DuplicateWireName, NotARecord

BSON_NAME = "bson_name"


def bson_field(
    name: Optional[str] = None,
    *,
    default: Any = dataclasses.MISSING,
    default_factory: Any = dataclasses.MISSING,
    metadata: Optional[Dict[str, Any]] = None,
    **kwargs: Any,
) -> Any:
    """Declare a dataclass field with a custom wire name.

    Args:
        name: Field name used in the document. Defaults to the attribute name.
        default: Default value used when the field is absent.
        default_factory: Zero-argument callable producing the default.
        metadata: Extra field metadata.
        **kwargs: Passed through to :func:`dataclasses.field`.
    """
    merged = dict(metadata or {})
    if name is not None:
        if not isinstance(name, str) or not name:
            raise DerivationError("bson_field name must be a non-empty string")
        merged[BSON_NAME] = name
    return dataclasses.field(
        default=default, default_factory=default_factory, metadata=merged, **kwargs
    )


def _default_provider(f: dataclasses.Field) -> Optional[Callable[[], Any]]:
    if f.default_factory is not dataclasses.MISSING:
        return f.default_factory
    if f.default is not dataclasses.MISSING:
        value = f.default
        return lambda: value
    return None


class FieldMetadataResolver:
    """Builds the :class:`ProductType` of a dataclass.

    Args:
        describe: Callback turning a field annotation into a
            :class:`TypeDescriptor`.
    """

    def __init__(self, describe: Callable[[Any], TypeDescriptor]):
        self._describe = describe

    def resolve(self, cls: type) -> ProductType:
        """Describe every persisted field of ``cls``.

        Raises:
            NotARecord: If ``cls`` is not a dataclass type.
            DuplicateWireName: If two fields share a wire name.
            UnsupportedFieldType: If a field type has no codec.
        """
        if not isinstance(cls, type) or not dataclasses.is_dataclass(cls):
            raise NotARecord(cls)

        try:
            hints = typing.get_type_hints(cls)
        except (NameError, TypeError) as e:
            raise DerivationError(
                f"Cannot resolve field annotations of {cls.__qualname__}: {e}", cause=e
            )

        descriptors: List[FieldDescriptor] = []
        by_wire_name: Dict[str, str] = {}
        for f in dataclasses.fields(cls):
            if not f.init:
                continue
            wire_name = f.metadata.get(BSON_NAME, f.name)
            if wire_name in by_wire_name:
                raise DuplicateWireName(cls, wire_name, [by_wire_name[wire_name], f.name])
            by_wire_name[wire_name] = f.name

            descriptors.append(
                FieldDescriptor(
                    declared_name=f.name,
                    wire_name=wire_name,
                    type_descriptor=self._describe(hints.get(f.name, f.type)),
                    default_provider=_default_provider(f),
                    declaration_order=len(descriptors),
                )
            )

        return ProductType(cls, tuple(descriptors))
