"""Discriminator tags for sum types.

A sum type is a base class with a closed set of concrete dataclass
variants. On the wire each variant document carries a tag in the
discriminator field naming the variant it was written from.
"""

import dataclasses
import inspect
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from bsonderive.config import CodecConfig, DiscriminatorStrategy
from bsonderive.exceptions import DerivationError
from bsonderive.logging import get_logger

_logger = get_logger("discriminator")


def qualified_name(cls: type) -> str:
    return f"{cls.__module__}.{cls.__qualname__}"


class DiscriminatorMap:
    """Two-way mapping between tags and variant types of one sum type."""

    __slots__ = ("_sum_type", "_by_tag", "_by_type")

    def __init__(self, sum_type: type, entries: Iterable[Tuple[str, type]]):
        by_tag: Dict[str, type] = {}
        by_type: Dict[type, str] = {}
        for tag, variant in entries:
            previous = by_tag.get(tag)
            if previous is not None and previous is not variant:
                _logger.warning(
                    "Discriminator tag %r of %s is shared by %s and %s; "
                    "decoding will produce %s",
                    tag,
                    sum_type.__qualname__,
                    previous.__qualname__,
                    variant.__qualname__,
                    variant.__qualname__,
                )
            by_tag[tag] = variant
            by_type[variant] = tag
        self._sum_type = sum_type
        self._by_tag = MappingProxyType(by_tag)
        self._by_type = MappingProxyType(by_type)

    @property
    def sum_type(self) -> type:
        return self._sum_type

    @property
    def tags(self) -> Tuple[str, ...]:
        return tuple(self._by_tag)

    @property
    def variants(self) -> Tuple[type, ...]:
        return tuple(self._by_type)

    def tag_for(self, variant: type) -> Optional[str]:
        return self._by_type.get(variant)

    def variant_for(self, tag: str) -> Optional[type]:
        return self._by_tag.get(tag)

    def __len__(self) -> int:
        return len(self._by_type)

    def __repr__(self) -> str:
        return f"DiscriminatorMap({self._sum_type.__qualname__}, {dict(self._by_tag)!r})"


class DiscriminatorResolver:
    """Computes variant sets and tags under one :class:`CodecConfig`."""

    def __init__(self, config: CodecConfig):
        self._config = config

    @property
    def field_name(self) -> str:
        return self._config.discriminator_field

    def flatten(self, base: type, variants: Optional[Sequence[type]] = None) -> Tuple[type, ...]:
        """Expand ``variants`` to concrete dataclass leaves of ``base``.

        Abstract intermediate classes (non-dataclasses, or abstract
        dataclasses) are replaced by their own leaves. With ``variants``
        omitted, every leaf under ``base`` is discovered.

        Raises:
            DerivationError: If a variant is not a subclass of ``base`` or
                no concrete variant is found.
        """
        if not isinstance(base, type):
            raise DerivationError(f"{base!r} is not a class")

        roots = list(variants) if variants is not None else list(base.__subclasses__())
        leaves: List[type] = []
        for root in roots:
            if not isinstance(root, type) or not issubclass(root, base) or root is base:
                raise DerivationError(
                    f"{getattr(root, '__qualname__', root)!r} is not a subclass of "
                    f"{base.__qualname__}"
                )
            for leaf in self._leaves(root):
                if leaf not in leaves:
                    leaves.append(leaf)

        if not leaves:
            raise DerivationError(
                f"Sum type {base.__qualname__} has no concrete dataclass variants"
            )
        return tuple(leaves)

    def _leaves(self, cls: type) -> List[type]:
        if dataclasses.is_dataclass(cls) and not inspect.isabstract(cls):
            return [cls]
        found: List[type] = []
        for sub in cls.__subclasses__():
            found.extend(self._leaves(sub))
        return found

    def tag_for(self, cls: type) -> str:
        """Get the wire tag of a variant under the configured strategy."""
        strategy = self._config.discriminator_strategy
        if strategy is DiscriminatorStrategy.FULLY_QUALIFIED_NAME:
            return qualified_name(cls)
        if strategy is DiscriminatorStrategy.CUSTOM_MAP:
            tags: Mapping = self._config.custom_tags
            for key in (cls, qualified_name(cls), cls.__name__):
                if key in tags:
                    return tags[key]
        return cls.__name__

    def resolve(self, base: type, variants: Optional[Sequence[type]] = None) -> DiscriminatorMap:
        """Build the tag map of a sum type.

        Args:
            base: The sum type.
            variants: Listed variants; discovered from subclasses if omitted.
        """
        leaves = self.flatten(base, variants)
        return DiscriminatorMap(base, [(self.tag_for(leaf), leaf) for leaf in leaves])
