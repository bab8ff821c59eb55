"""Wire-name field paths for queries.

Query filters and projections address document fields by their wire
names. :func:`field_path` translates a dotted path of attribute names into
the matching wire path, so renamed fields stay correct in queries.

Example:
    >>> @dataclass
    ... class Address:
    ...     zip_code: int = bson_field(name="zipCode")
    >>> @dataclass
    ... class Person:
    ...     home: Optional[Address] = bson_field(name="homeAddress")
    >>> field_path(Person, "home.zip_code")
    'homeAddress.zipCode'
"""

import collections.abc
import dataclasses
import inspect
import typing
from typing import Any, Optional

from bsonderive.config import CodecConfig
from bsonderive.derivation.discriminator import DiscriminatorResolver
from bsonderive.derivation.fields import BSON_NAME
from bsonderive.exceptions import ConfigurationError, DerivationError

_NONE_TYPE = type(None)
_COLLECTION_ORIGINS = (
    list,
    tuple,
    set,
    frozenset,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Set,
    collections.abc.MutableSet,
)
_MAP_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)


def _strip_optional(tp: Any) -> Any:
    args = typing.get_args(tp)
    if _NONE_TYPE in args:
        members = [a for a in args if a is not _NONE_TYPE]
        if len(members) == 1:
            return members[0]
    return tp


def _find_field(cls: type, name: str) -> Optional[dataclasses.Field]:
    for f in dataclasses.fields(cls):
        if f.init and f.name == name:
            return f
    return None


def _candidates(tp: Any) -> list:
    if not isinstance(tp, type):
        return []
    if dataclasses.is_dataclass(tp) and not inspect.isabstract(tp) and not tp.__subclasses__():
        return [tp]
    try:
        return list(DiscriminatorResolver(CodecConfig()).flatten(tp))
    except DerivationError:
        return []


def field_path(cls: type, path: str) -> str:
    """Translate a dotted attribute path into a dotted wire-name path.

    Optional fields are looked through, collection fields descend into
    their elements, numeric segments (array indexes) pass through and
    ``Dict[str, V]`` fields take the next segment as a key. Fields of a sum
    type are searched across its variants.

    Args:
        cls: The root dataclass.
        path: Attribute names joined by dots, e.g. ``"address.zip_code"``.

    Returns:
        The path with every attribute replaced by its wire name.

    Raises:
        ConfigurationError: If a segment names no field.
    """
    if not isinstance(path, str) or not path:
        raise ConfigurationError("Field path must be a non-empty string")

    current: Any = cls
    wire_segments = []
    for segment in path.split("."):
        if not segment:
            raise ConfigurationError(f"Empty segment in field path {path!r}")
        current = _strip_optional(current)
        origin = typing.get_origin(current)

        if origin in _COLLECTION_ORIGINS:
            args = [a for a in typing.get_args(current) if a is not Ellipsis]
            current = _strip_optional(args[0]) if args else Any
            if segment.isdigit():
                wire_segments.append(segment)
                continue
            origin = typing.get_origin(current)

        if origin in _MAP_ORIGINS:
            args = typing.get_args(current)
            wire_segments.append(segment)
            current = args[1] if len(args) == 2 else Any
            continue

        match = None
        for candidate in _candidates(current):
            f = _find_field(candidate, segment)
            if f is not None:
                match = (candidate, f)
                break
        if match is None:
            raise ConfigurationError(
                f"Unknown field '{segment}' in path {path!r} "
                f"(type {getattr(current, '__qualname__', current)!r})"
            )

        owner, f = match
        wire_segments.append(f.metadata.get(BSON_NAME, f.name))
        current = typing.get_type_hints(owner).get(f.name, f.type)

    return ".".join(wire_segments)
