"""Codec derivation configuration.

:class:`CodecConfig` is the immutable policy object threaded through every
derivation. A derived codec captures the configuration in force when it was
derived; replacing the configuration of a registry later only affects codecs
derived afterwards.

Example:
    Building a configuration in code::

        config = (
            CodecConfig()
            .with_ignore_none()
            .with_discriminator("_kind")
        )

    Loading it from YAML::

        config = CodecConfig.from_yaml("codecs.yml")
"""

import os
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

from bsonderive.exceptions import ConfigurationError
from bsonderive.logging import get_logger

_logger = get_logger("config")


DEFAULT_DISCRIMINATOR_FIELD = "_type"


class NoneHandling(Enum):
    """Strategy for ``None`` values in optional fields."""

    ENCODE = "ENCODE"
    """Write ``None`` as an explicit BSON null."""

    IGNORE = "IGNORE"
    """Leave the field out of the document."""


class DiscriminatorStrategy(Enum):
    """How a sum type variant is turned into its wire tag."""

    SIMPLE_NAME = "SIMPLE_NAME"
    FULLY_QUALIFIED_NAME = "FULLY_QUALIFIED_NAME"
    CUSTOM_MAP = "CUSTOM_MAP"


class EnumEncoding(Enum):
    """How enum members are stored."""

    NAME = "NAME"
    """Store the member name as a string."""

    VALUE = "VALUE"
    """Store the member value through the codec of its type."""


TagKey = Union[type, str]


class CodecConfig:
    """Immutable configuration for codec derivation.

    Args:
        none_handling: Policy for ``None`` in optional fields.
        discriminator_field: Document field holding the variant tag.
        discriminator_strategy: How variant tags are computed.
        custom_tags: Explicit variant tags for ``CUSTOM_MAP``. Keys are
            classes, qualified names (``module.Class``) or simple names.
        enum_encoding: Whether enum members are stored by name or by value.

    Raises:
        ConfigurationError: If a value is invalid.
    """

    __slots__ = (
        "_none_handling",
        "_discriminator_field",
        "_discriminator_strategy",
        "_custom_tags",
        "_enum_encoding",
    )

    def __init__(
        self,
        none_handling: NoneHandling = NoneHandling.ENCODE,
        discriminator_field: str = DEFAULT_DISCRIMINATOR_FIELD,
        discriminator_strategy: DiscriminatorStrategy = DiscriminatorStrategy.SIMPLE_NAME,
        custom_tags: Optional[Mapping[TagKey, str]] = None,
        enum_encoding: EnumEncoding = EnumEncoding.NAME,
    ):
        if custom_tags is not None and not isinstance(custom_tags, Mapping):
            raise ConfigurationError("custom_tags must be a mapping of type to tag")
        object.__setattr__(self, "_none_handling", _coerce_enum(NoneHandling, none_handling))
        object.__setattr__(self, "_discriminator_field", discriminator_field)
        object.__setattr__(
            self,
            "_discriminator_strategy",
            _coerce_enum(DiscriminatorStrategy, discriminator_strategy),
        )
        object.__setattr__(
            self, "_custom_tags", MappingProxyType(dict(custom_tags or {}))
        )
        object.__setattr__(self, "_enum_encoding", _coerce_enum(EnumEncoding, enum_encoding))
        self._validate()

    def _validate(self) -> None:
        if not isinstance(self._discriminator_field, str) or not self._discriminator_field:
            raise ConfigurationError("discriminator_field must be a non-empty string")
        for key, tag in self._custom_tags.items():
            if not isinstance(key, (type, str)):
                raise ConfigurationError(
                    f"custom_tags key {key!r} must be a class or a class name"
                )
            if not isinstance(tag, str) or not tag:
                raise ConfigurationError(
                    f"custom tag for {key!r} must be a non-empty string"
                )

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("CodecConfig is immutable; use the with_* methods")

    @property
    def none_handling(self) -> NoneHandling:
        """Get the policy for ``None`` in optional fields."""
        return self._none_handling

    @property
    def discriminator_field(self) -> str:
        """Get the document field that holds sum type tags."""
        return self._discriminator_field

    @property
    def discriminator_strategy(self) -> DiscriminatorStrategy:
        """Get the variant tag strategy."""
        return self._discriminator_strategy

    @property
    def custom_tags(self) -> Mapping[TagKey, str]:
        """Get the read-only custom tag table."""
        return self._custom_tags

    @property
    def enum_encoding(self) -> EnumEncoding:
        """Get how enum members are stored."""
        return self._enum_encoding

    @property
    def should_encode_none(self) -> bool:
        """True if ``None`` is written as BSON null."""
        return self._none_handling is NoneHandling.ENCODE

    def _replace(self, **changes: Any) -> "CodecConfig":
        values = {
            "none_handling": self._none_handling,
            "discriminator_field": self._discriminator_field,
            "discriminator_strategy": self._discriminator_strategy,
            "custom_tags": self._custom_tags,
            "enum_encoding": self._enum_encoding,
        }
        values.update(changes)
        return CodecConfig(**values)

    def with_none_handling(self, none_handling: NoneHandling) -> "CodecConfig":
        """Return a copy with a different ``None`` policy."""
        return self._replace(none_handling=none_handling)

    def with_ignore_none(self) -> "CodecConfig":
        """Return a copy that omits ``None`` fields."""
        return self._replace(none_handling=NoneHandling.IGNORE)

    def with_encode_none(self) -> "CodecConfig":
        """Return a copy that writes ``None`` fields as null."""
        return self._replace(none_handling=NoneHandling.ENCODE)

    def with_discriminator(self, field_name: str) -> "CodecConfig":
        """Return a copy using ``field_name`` for sum type tags."""
        return self._replace(discriminator_field=field_name)

    def with_discriminator_strategy(
        self,
        strategy: DiscriminatorStrategy,
        custom_tags: Optional[Mapping[TagKey, str]] = None,
    ) -> "CodecConfig":
        """Return a copy with a different tag strategy.

        Args:
            strategy: The new strategy.
            custom_tags: Replacement tag table. Keeps the current table
                when omitted.
        """
        changes: Dict[str, Any] = {"discriminator_strategy": strategy}
        if custom_tags is not None:
            changes["custom_tags"] = custom_tags
        return self._replace(**changes)

    def with_enum_encoding(self, enum_encoding: EnumEncoding) -> "CodecConfig":
        """Return a copy storing enum members by name or by value."""
        return self._replace(enum_encoding=enum_encoding)

    def to_dict(self) -> Dict[str, Any]:
        """Convert this configuration to the dictionary form of :meth:`from_dict`."""
        tags = {}
        for key, tag in self._custom_tags.items():
            if isinstance(key, type):
                key = f"{key.__module__}.{key.__qualname__}"
            tags[key] = tag
        return {
            "none_handling": self._none_handling.value,
            "discriminator": {
                "field": self._discriminator_field,
                "strategy": self._discriminator_strategy.value,
                "tags": tags,
            },
            "enum_encoding": self._enum_encoding.value,
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CodecConfig):
            return NotImplemented
        return (
            self._none_handling is other._none_handling
            and self._discriminator_field == other._discriminator_field
            and self._discriminator_strategy is other._discriminator_strategy
            and dict(self._custom_tags) == dict(other._custom_tags)
            and self._enum_encoding is other._enum_encoding
        )

    def __hash__(self) -> int:
        return hash(
            (
                self._none_handling,
                self._discriminator_field,
                self._discriminator_strategy,
                tuple(sorted((repr(k), v) for k, v in self._custom_tags.items())),
                self._enum_encoding,
            )
        )

    def __repr__(self) -> str:
        return (
            f"CodecConfig(none_handling={self._none_handling.name}, "
            f"discriminator_field={self._discriminator_field!r}, "
            f"discriminator_strategy={self._discriminator_strategy.name}, "
            f"custom_tags={dict(self._custom_tags)!r}, "
            f"enum_encoding={self._enum_encoding.name})"
        )

    @classmethod
    def from_dict(cls, data: dict) -> "CodecConfig":
        """Create CodecConfig from a dictionary.

        Recognized keys are ``none_handling``, ``enum_encoding`` and a
        ``discriminator`` section with ``field``, ``strategy`` and ``tags``.
        """
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration must be a mapping")

        discriminator = data.get("discriminator") or {}
        if not isinstance(discriminator, dict):
            raise ConfigurationError("'discriminator' must be a mapping")

        return cls(
            none_handling=data.get("none_handling", NoneHandling.ENCODE),
            discriminator_field=discriminator.get("field", DEFAULT_DISCRIMINATOR_FIELD),
            discriminator_strategy=discriminator.get(
                "strategy", DiscriminatorStrategy.SIMPLE_NAME
            ),
            custom_tags=discriminator.get("tags") or {},
            enum_encoding=data.get("enum_encoding", EnumEncoding.NAME),
        )

    @classmethod
    def from_yaml(cls, yaml_path: str) -> "CodecConfig":
        """Load configuration from a YAML file.

        Args:
            yaml_path: Path to the YAML configuration file.

        Returns:
            CodecConfig instance.

        Raises:
            ConfigurationError: If the file cannot be read or parsed.
        """
        import yaml

        if not os.path.exists(yaml_path):
            raise ConfigurationError(f"Configuration file not found: {yaml_path}")

        try:
            with open(yaml_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse YAML: {e}", cause=e)
        except IOError as e:
            raise ConfigurationError(f"Failed to read configuration file: {e}", cause=e)

        config = cls._from_loaded(data)
        _logger.debug("Loaded codec configuration from %s: %r", yaml_path, config)
        return config

    @classmethod
    def from_yaml_string(cls, yaml_content: str) -> "CodecConfig":
        """Load configuration from a YAML string.

        Args:
            yaml_content: YAML configuration as a string.

        Returns:
            CodecConfig instance.

        Raises:
            ConfigurationError: If the YAML cannot be parsed.
        """
        import yaml

        try:
            data = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse YAML: {e}", cause=e)

        return cls._from_loaded(data)

    @classmethod
    def _from_loaded(cls, data: Any) -> "CodecConfig":
        if data is None:
            data = {}

        if isinstance(data, dict) and "bsonderive" in data:
            data = data["bsonderive"] or {}

        return cls.from_dict(data)


def _coerce_enum(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls[value.upper()]
        except KeyError:
            pass
    valid = ", ".join(member.name for member in enum_cls)
    raise ConfigurationError(
        f"Invalid {enum_cls.__name__} value {value!r}; expected one of {valid}"
    )
