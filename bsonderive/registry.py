"""Codec registry.

A :class:`CodecRegistry` maps Python types to codecs. It is immutable:
every registration returns a new registry, and a type can be bound at most
once. Registries are layered over a base registry of primitive codecs
(see :mod:`bsonderive.serialization.builtin`).

Example:
    Assembling a registry and round-tripping a value::

        from dataclasses import dataclass
        from bsonderive import CodecRegistry

        @dataclass
        class Address:
            street: str
            city: str
            zip_code: int

        @dataclass
        class Person:
            name: str
            address: Address

        registry = CodecRegistry().register_all(Address, Person)

        document = registry.encode(Person("Ann", Address("Main", "NYC", 10001)))
        person = registry.decode(Person, document)
"""

import dataclasses
import inspect
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, FrozenSet, Iterator, List, Mapping, Optional, Sequence, Tuple

from bsonderive.config import CodecConfig
from bsonderive.derivation.derive import TypeCodecDerivation
from bsonderive.exceptions import (
    ConfigurationError,
    DerivationError,
    DuplicateInBatch,
    DuplicateRegistration,
    NotARecord,
    NullRootValue,
)
from bsonderive.logging import get_logger
from bsonderive.serialization.api import Codec
from bsonderive.serialization.binary import BinaryDocumentReader, BinaryDocumentWriter
from bsonderive.serialization.builtin import get_builtin_codecs
from bsonderive.serialization.document import DocumentTreeReader, DocumentTreeWriter

_logger = get_logger("registry")


class Provenance(Enum):
    """How a binding entered the registry."""

    EXPLICIT = "explicit"
    """A user-authored codec added with :meth:`CodecRegistry.with_codec`."""

    DERIVED = "derived"
    """A codec derived from a dataclass or sum type."""


@dataclass(frozen=True)
class CodecBinding:
    """A type bound to its codec.

    ``inline_types`` lists the types the codec derived for itself because
    they had no binding at the time. Binding one of them later would leave
    two codecs for the same type, so the registry refuses it.
    """

    value_type: Any
    codec: Codec
    provenance: Provenance
    inline_types: FrozenSet[Any] = frozenset()


def _type_name(value_type: Any) -> str:
    return getattr(value_type, "__qualname__", None) or repr(value_type)


class CodecRegistry:
    """Immutable, conflict-checked mapping from types to codecs.

    Args:
        config: Configuration for codecs derived by this registry.
        base: Codecs used when a type has no binding. Defaults to the
            builtin primitive codecs.
    """

    def __init__(
        self,
        config: Optional[CodecConfig] = None,
        base: Optional[Mapping[Any, Codec]] = None,
    ):
        if config is not None and not isinstance(config, CodecConfig):
            raise ConfigurationError(f"Expected CodecConfig, got {type(config).__name__}")
        self._config = config or CodecConfig()
        self._base = MappingProxyType(dict(get_builtin_codecs() if base is None else base))
        self._bindings: Mapping[Any, CodecBinding] = MappingProxyType({})

    def _copy(
        self,
        bindings: Optional[Dict[Any, CodecBinding]] = None,
        config: Optional[CodecConfig] = None,
    ) -> "CodecRegistry":
        registry = object.__new__(type(self))
        registry._config = config or self._config
        registry._base = self._base
        registry._bindings = MappingProxyType(
            dict(self._bindings) if bindings is None else bindings
        )
        return registry

    @property
    def config(self) -> CodecConfig:
        """Get the configuration used for future derivations."""
        return self._config

    @property
    def base(self) -> Mapping[Any, Codec]:
        """Get the read-only base codecs."""
        return self._base

    def _find(self, value_type: Any) -> Optional[Codec]:
        try:
            binding = self._bindings.get(value_type)
            if binding is not None:
                return binding.codec
            return self._base.get(value_type)
        except TypeError:
            # unhashable annotation
            return None

    def _derivation(self) -> TypeCodecDerivation:
        return TypeCodecDerivation(self._find, self._config)

    def _check_free(
        self, value_type: Any, bindings: Optional[Mapping[Any, CodecBinding]] = None
    ) -> None:
        bindings = self._bindings if bindings is None else bindings
        existing = bindings.get(value_type)
        if existing is not None:
            raise DuplicateRegistration(value_type, existing.provenance)
        for binding in bindings.values():
            if value_type in binding.inline_types:
                raise DuplicateRegistration(value_type, binding.provenance, binding.value_type)

    def _add(self, new_bindings: Sequence[CodecBinding]) -> "CodecRegistry":
        bindings = dict(self._bindings)
        for binding in new_bindings:
            self._check_free(binding.value_type, bindings)
            for inline_type in binding.inline_types:
                existing = bindings.get(inline_type)
                if existing is not None:
                    raise DuplicateRegistration(
                        inline_type, existing.provenance, binding.value_type
                    )
            bindings[binding.value_type] = binding
            _logger.debug(
                "Bound %s codec for %s",
                binding.provenance.value,
                _type_name(binding.value_type),
            )
        return self._copy(bindings)

    def _derive(self, value_type: Any) -> List[CodecBinding]:
        if not isinstance(value_type, type):
            raise NotARecord(value_type)
        derivation = self._derivation()
        if dataclasses.is_dataclass(value_type) and not inspect.isabstract(value_type):
            codec = derivation.derive_record(value_type)
            return [
                CodecBinding(value_type, codec, Provenance.DERIVED, derivation.inline_types)
            ]

        try:
            variants = derivation.discriminators.flatten(value_type)
        except DerivationError:
            raise NotARecord(value_type)
        return self._derive_sum(value_type, variants)

    def _derive_sum(
        self, base: type, variants: Optional[Sequence[type]]
    ) -> List[CodecBinding]:
        derivation = self._derivation()
        codec = derivation.derive_sum(base, variants)
        variant_codecs = codec.variant_codecs
        # a variant used as a field of another variant is bound by this same call
        inline = derivation.inline_types - {base} - set(variant_codecs)
        bindings = [CodecBinding(base, codec, Provenance.DERIVED, inline)]
        for variant, variant_codec in variant_codecs.items():
            bindings.append(CodecBinding(variant, variant_codec, Provenance.DERIVED, inline))
        return bindings

    # ------------------------------------------------------------------
    # Assembly
    # ------------------------------------------------------------------

    def register(self, value_type: type) -> "CodecRegistry":
        """Derive and bind the codec of a dataclass or a sum type.

        A sum type binds its variants as well, each with a codec that writes
        the discriminator. An abstract dataclass is treated as a sum type.

        Raises:
            DuplicateRegistration: If the type (or a sum variant) is bound,
                or another binding already derived its codec inline.
            NotARecord: If the type is neither a dataclass nor a class with
                dataclass subclasses.
            DerivationError: If derivation fails, including for a dataclass
                that has subclasses.
        """
        self._check_free(value_type)
        return self._add(self._derive(value_type))

    def register_all(self, *value_types: type) -> "CodecRegistry":
        """Register several types.

        Types of the batch that others refer to are registered first, so
        the result does not depend on the order they are listed in.

        Raises:
            DuplicateInBatch: If a type is listed twice. Nothing is derived.
            DuplicateRegistration: If a type is bound already, directly or
                through an earlier sum type of the batch.
        """
        seen = set()
        for value_type in value_types:
            if value_type in seen:
                raise DuplicateInBatch(value_type)
            seen.add(value_type)

        registry = self
        pending = list(value_types)
        while pending:
            for value_type in pending:
                registry._check_free(value_type)
            derived = [(t, registry._derive(t)) for t in pending]
            chosen = derived[0]
            for value_type, bindings in derived:
                provided = {
                    b.value_type for other, bs in derived if other is not value_type for b in bs
                }
                if not any(provided & b.inline_types for b in bindings):
                    chosen = (value_type, bindings)
                    break
            pending.remove(chosen[0])
            registry = registry._add(chosen[1])
        return registry

    def register_sum(
        self, base: type, variants: Optional[Sequence[type]] = None
    ) -> "CodecRegistry":
        """Bind a sum type and its variants.

        Args:
            base: The sum type.
            variants: Concrete variants, or abstract intermediates to expand.
                Every dataclass leaf under ``base`` is used when omitted.

        Raises:
            DuplicateRegistration: If ``base`` or a variant is already bound.
            DerivationError: If the variant set is empty or invalid.
        """
        self._check_free(base)
        return self._add(self._derive_sum(base, variants))

    def with_codec(self, codec: Codec, value_type: Any = None) -> "CodecRegistry":
        """Bind a hand-written codec.

        Args:
            codec: The codec.
            value_type: Type to bind; defaults to ``codec.value_type``.
        """
        if not isinstance(codec, Codec):
            raise ConfigurationError(f"Expected a Codec, got {type(codec).__name__}")
        bound_type = codec.value_type if value_type is None else value_type
        return self._add([CodecBinding(bound_type, codec, Provenance.EXPLICIT)])

    def with_codecs(self, *codecs: Codec) -> "CodecRegistry":
        """Bind several hand-written codecs by their ``value_type``.

        Raises:
            DuplicateInBatch: If two codecs share a value type.
        """
        bindings = []
        seen = set()
        for codec in codecs:
            if not isinstance(codec, Codec):
                raise ConfigurationError(f"Expected a Codec, got {type(codec).__name__}")
            if codec.value_type in seen:
                raise DuplicateInBatch(codec.value_type)
            seen.add(codec.value_type)
            bindings.append(CodecBinding(codec.value_type, codec, Provenance.EXPLICIT))
        return self._add(bindings)

    def merge(self, other: "CodecRegistry") -> "CodecRegistry":
        """Combine the bindings of two registries.

        The result keeps this registry's configuration and base codecs.

        Raises:
            DuplicateRegistration: If a type is bound in both registries.
        """
        merged = self._add(other.bindings())
        _logger.debug("Merged %d bindings into a registry of %d", len(other), len(self))
        return merged

    def with_config(self, config: CodecConfig) -> "CodecRegistry":
        """Return a copy whose future derivations use ``config``.

        Codecs that are already bound keep the configuration they were
        derived with.
        """
        if not isinstance(config, CodecConfig):
            raise ConfigurationError(f"Expected CodecConfig, got {type(config).__name__}")
        _logger.debug("Registry configuration changed to %r", config)
        return self._copy(config=config)

    def configure(self, fn: Callable[[CodecConfig], CodecConfig]) -> "CodecRegistry":
        """Return a copy with ``fn`` applied to the configuration.

        Example:
            >>> registry = CodecRegistry().configure(lambda c: c.with_ignore_none())
        """
        return self.with_config(fn(self._config))

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def lookup(self, value_type: Any) -> Codec:
        """Get the codec of a type.

        Bindings win over base codecs. There is no fallback to a
        superclass or a structurally similar type.

        Raises:
            ConfigurationError: If the type has no codec.
        """
        codec = self._find(value_type)
        if codec is None:
            raise ConfigurationError(f"No codec registered for {_type_name(value_type)}")
        return codec

    def binding(self, value_type: Any) -> Optional[CodecBinding]:
        """Get the binding of a type, or None if it is not bound."""
        return self._bindings.get(value_type)

    def bindings(self) -> Tuple[CodecBinding, ...]:
        """Get all bindings in registration order."""
        return tuple(self._bindings.values())

    def __contains__(self, value_type: Any) -> bool:
        return value_type in self._bindings

    def __len__(self) -> int:
        return len(self._bindings)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._bindings)

    def __repr__(self) -> str:
        names = ", ".join(_type_name(t) for t in self._bindings)
        return f"CodecRegistry([{names}], config={self._config!r})"

    # ------------------------------------------------------------------
    # Convenience
    # ------------------------------------------------------------------

    def encode(self, value: Any, value_type: Any = None) -> Any:
        """Encode a value to a ``dict`` document tree.

        Args:
            value: The value.
            value_type: Codec to use; defaults to ``type(value)``. Pass the
                sum type to encode through its polymorphic codec.
        """
        if value is None:
            raise NullRootValue(value_type)
        codec = self.lookup(type(value) if value_type is None else value_type)
        writer = DocumentTreeWriter()
        codec.encode(writer, value)
        return writer.document

    def decode(self, value_type: Any, document: Any) -> Any:
        """Decode a ``dict`` document tree."""
        return self.lookup(value_type).decode(DocumentTreeReader(document))

    def to_bytes(self, value: Any, value_type: Any = None) -> bytes:
        """Encode a value to BSON bytes."""
        if value is None:
            raise NullRootValue(value_type)
        codec = self.lookup(type(value) if value_type is None else value_type)
        writer = BinaryDocumentWriter()
        codec.encode(writer, value)
        return writer.to_bytes()

    def from_bytes(self, value_type: Any, data: bytes) -> Any:
        """Decode BSON bytes."""
        return self.lookup(value_type).decode(BinaryDocumentReader(data))
