"""bsonderive exceptions.

This module defines the exception hierarchy for bsonderive. All exceptions
inherit from :class:`BsonDeriveException`.

Errors fall into four families:

- :class:`ConfigurationError` for invalid configuration and unregistered types
- :class:`DerivationError` raised while a registry is being assembled
- :class:`EncodeError` raised while writing a value to a document
- :class:`DecodeError` raised while reading a value from a document

Example:
    Handling decode failures::

        from bsonderive.exceptions import (
            DecodeError,
            MissingRequiredField,
            UnknownDiscriminator,
        )

        try:
            animal = registry.decode(Animal, document)
        except MissingRequiredField as e:
            print(f"Document is missing {e.path}")
        except UnknownDiscriminator as e:
            print(f"Unknown tag {e.tag!r}, expected one of {e.known_tags}")
        except DecodeError as e:
            print(f"Cannot decode: {e}")
"""

from typing import Any, Iterable, Optional, Sequence


def _type_name(value_type: Any) -> str:
    return getattr(value_type, "__qualname__", None) or repr(value_type)


class BsonDeriveException(Exception):
    """Base class for all bsonderive exceptions.

    Args:
        message: The error message describing the exception.
        cause: The underlying exception that caused this error, if any.

    Attributes:
        cause: The underlying cause of this exception, if any.
    """

    def __init__(self, message: str = "", cause: Exception = None):
        super().__init__(message)
        self.cause = cause


class ConfigurationError(BsonDeriveException):
    """Raised when configuration is invalid or a type has no codec.

    Example:
        - An empty discriminator field name
        - A YAML configuration file that cannot be parsed
        - Looking up a codec for a type that was never registered
    """
    pass


# ---------------------------------------------------------------------------
# Derivation (assembly time)
# ---------------------------------------------------------------------------


class DerivationError(BsonDeriveException):
    """Raised when a codec cannot be derived or a registry cannot be assembled.

    Derivation errors happen while a registry is built, never while a value
    is encoded or decoded. They are not retried.
    """
    pass


class NotARecord(DerivationError):
    """Raised when registering a type that is neither a record nor a sum type."""

    def __init__(self, value_type: Any):
        super().__init__(
            f"{_type_name(value_type)} is not a dataclass record or a sum type "
            "with dataclass variants"
        )
        self.value_type = value_type


class DuplicateRegistration(DerivationError):
    """Raised when a type is bound twice in the same registry.

    Attributes:
        value_type: The type that already has a binding.
        provenance: Provenance of the existing binding.
        owner: Type whose binding derived a codec for ``value_type`` inline,
            or None when ``value_type`` itself is bound.
    """

    def __init__(self, value_type: Any, provenance: Any, owner: Any = None):
        provenance_name = getattr(provenance, "value", provenance)
        if owner is None:
            detail = f"a {provenance_name} codec is already registered in this registry"
        else:
            detail = (
                f"the {provenance_name} codec of {_type_name(owner)} already derived "
                "its own codec for it"
            )
        super().__init__(f"Duplicate codec detected for {_type_name(value_type)}: {detail}")
        self.value_type = value_type
        self.provenance = provenance
        self.owner = owner


class DuplicateInBatch(DerivationError):
    """Raised when one batch registration lists the same type twice."""

    def __init__(self, value_type: Any):
        super().__init__(
            f"Duplicate codec detected for {_type_name(value_type)}: "
            "the type appears more than once in a single batch"
        )
        self.value_type = value_type


class DuplicateWireName(DerivationError):
    """Raised when two fields of one record share a wire name."""

    def __init__(self, value_type: Any, wire_name: str, fields: Sequence[str]):
        super().__init__(
            f"Fields {', '.join(fields)} of {_type_name(value_type)} "
            f"all map to wire name {wire_name!r}"
        )
        self.value_type = value_type
        self.wire_name = wire_name
        self.fields = tuple(fields)


class UnsupportedFieldType(DerivationError):
    """Raised when a field annotation has no codec and cannot be derived."""

    def __init__(self, annotation: Any, reason: str = ""):
        message = f"Cannot derive a codec for {annotation!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.annotation = annotation


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


class EncodeError(BsonDeriveException):
    """Raised when a value cannot be written to a document."""
    pass


class NullRootValue(EncodeError):
    """Raised when encoding ``None`` as a non-optional root value."""

    def __init__(self, value_type: Any):
        super().__init__(f"Cannot encode None as {_type_name(value_type)}")
        self.value_type = value_type


class NullFieldValue(EncodeError):
    """Raised when a non-optional field holds ``None``."""

    def __init__(self, path: str):
        super().__init__(f"Field '{path}' is not optional but its value is None")
        self.path = path


class UnknownVariant(EncodeError):
    """Raised when encoding an instance outside a sum type's variant set."""

    def __init__(self, value_type: Any, sum_type: Any, known: Iterable[Any]):
        names = ", ".join(_type_name(k) for k in known)
        super().__init__(
            f"{_type_name(value_type)} is not a registered variant of "
            f"{_type_name(sum_type)}. Known variants: {names}"
        )
        self.value_type = value_type
        self.sum_type = sum_type


class ValueOutOfRange(EncodeError):
    """Raised when a number does not fit the declared BSON width."""

    def __init__(self, path: str, kind: str, value: Any):
        location = f" at '{path}'" if path else ""
        super().__init__(f"Value {value!r}{location} does not fit in {kind}")
        self.path = path
        self.kind = kind
        self.value = value


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


class DecodeError(BsonDeriveException):
    """Raised when a document cannot be read back into a value.

    Decode errors are fatal to the decode call and carry enough context
    (field path, discriminator tag, known tags) to diagnose the document
    without re-deriving the codec by hand.
    """
    pass


class MissingRequiredField(DecodeError):
    """Raised when a required field without default is absent."""

    def __init__(self, path: str):
        super().__init__(f"Missing required field '{path}'")
        self.path = path


class MissingDiscriminator(DecodeError):
    """Raised when a sum type document has no discriminator field."""

    def __init__(self, type_name: str, field_name: str, path: str = ""):
        location = f" at '{path}'" if path else ""
        super().__init__(
            f"Missing discriminator field '{field_name}'{location} "
            f"when decoding {type_name}"
        )
        self.type_name = type_name
        self.field_name = field_name
        self.path = path


class UnknownDiscriminator(DecodeError):
    """Raised when the discriminator tag matches no known variant."""

    def __init__(self, tag: Any, known_tags: Iterable[str], type_name: str = ""):
        self.tag = tag
        self.known_tags = tuple(known_tags)
        target = f" for {type_name}" if type_name else ""
        super().__init__(
            f"Unknown discriminator value {tag!r}{target}. "
            f"Valid discriminators: {', '.join(self.known_tags)}"
        )
        self.type_name = type_name


class TypeMismatch(DecodeError):
    """Raised when a document value has a different BSON type than expected."""

    def __init__(self, path: str, expected: str, actual: str):
        location = f"'{path}'" if path else "document root"
        super().__init__(f"Expected {expected} at {location} but found {actual}")
        self.path = path
        self.expected = expected
        self.actual = actual


class UnknownEnumValue(DecodeError):
    """Raised when an enum field holds a name or value the enum does not define."""

    def __init__(self, path: str, value: Any, known: Iterable[str]):
        self.known = tuple(known)
        super().__init__(
            f"No enum member matches {value!r} at '{path}'. "
            f"Known members: {', '.join(self.known)}"
        )
        self.path = path
        self.value = value


class DocumentFormatError(DecodeError):
    """Raised when binary input is not a well-formed BSON document."""

    def __init__(self, message: str, position: Optional[int] = None):
        if position is not None:
            message = f"{message} (at byte {position})"
        super().__init__(message)
        self.position = position
