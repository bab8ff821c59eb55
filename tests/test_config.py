"""Unit tests for bsonderive.config module."""

import pytest

from bsonderive.config import (
    CodecConfig,
    DEFAULT_DISCRIMINATOR_FIELD,
    DiscriminatorStrategy,
    EnumEncoding,
    NoneHandling,
)
from bsonderive.exceptions import ConfigurationError


class Dog:
    pass


class TestCodecConfig:
    """Tests for CodecConfig."""

    def test_default_values(self):
        config = CodecConfig()
        assert config.none_handling is NoneHandling.ENCODE
        assert config.discriminator_field == DEFAULT_DISCRIMINATOR_FIELD == "_type"
        assert config.discriminator_strategy is DiscriminatorStrategy.SIMPLE_NAME
        assert dict(config.custom_tags) == {}
        assert config.should_encode_none is True

    def test_custom_values(self, custom_tag_config):
        assert custom_tag_config.discriminator_field == "kind"
        assert custom_tag_config.discriminator_strategy is DiscriminatorStrategy.CUSTOM_MAP
        assert custom_tag_config.custom_tags["Dog"] == "dog"

    def test_enum_names_are_accepted(self):
        config = CodecConfig(none_handling="ignore", discriminator_strategy="custom_map")
        assert config.none_handling is NoneHandling.IGNORE
        assert config.discriminator_strategy is DiscriminatorStrategy.CUSTOM_MAP

    def test_invalid_none_handling(self):
        with pytest.raises(ConfigurationError) as exc_info:
            CodecConfig(none_handling="DROP")
        assert "expected one of ENCODE, IGNORE" in str(exc_info.value)

    def test_empty_discriminator_field(self):
        with pytest.raises(ConfigurationError) as exc_info:
            CodecConfig(discriminator_field="")
        assert "discriminator_field" in str(exc_info.value)

    def test_custom_tags_must_be_mapping(self):
        with pytest.raises(ConfigurationError):
            CodecConfig(custom_tags=[("Dog", "dog")])

    def test_custom_tag_must_be_string(self):
        with pytest.raises(ConfigurationError):
            CodecConfig(custom_tags={Dog: 1})

    def test_immutable(self):
        config = CodecConfig()
        with pytest.raises(AttributeError):
            config.discriminator_field = "kind"

    def test_custom_tags_read_only(self):
        config = CodecConfig(custom_tags={"Dog": "dog"})
        with pytest.raises(TypeError):
            config.custom_tags["Cat"] = "cat"

    def test_with_methods_return_copies(self):
        config = CodecConfig()
        ignoring = config.with_ignore_none()
        assert ignoring.none_handling is NoneHandling.IGNORE
        assert config.none_handling is NoneHandling.ENCODE
        assert ignoring.with_encode_none() == config

    def test_with_discriminator(self):
        config = CodecConfig().with_discriminator("_kind")
        assert config.discriminator_field == "_kind"

    def test_with_discriminator_strategy_keeps_tags(self, custom_tag_config):
        config = custom_tag_config.with_discriminator_strategy(DiscriminatorStrategy.SIMPLE_NAME)
        assert config.discriminator_strategy is DiscriminatorStrategy.SIMPLE_NAME
        assert dict(config.custom_tags) == {"Dog": "dog", "Cat": "cat"}

    def test_with_discriminator_strategy_replaces_tags(self):
        config = CodecConfig().with_discriminator_strategy(
            DiscriminatorStrategy.CUSTOM_MAP, {Dog: "dog"}
        )
        assert config.custom_tags[Dog] == "dog"

    def test_enum_encoding(self):
        assert CodecConfig().enum_encoding is EnumEncoding.NAME
        config = CodecConfig().with_enum_encoding(EnumEncoding.VALUE)
        assert config.enum_encoding is EnumEncoding.VALUE
        assert config != CodecConfig()
        assert CodecConfig.from_dict(config.to_dict()) == config

    def test_invalid_enum_encoding(self):
        with pytest.raises(ConfigurationError):
            CodecConfig(enum_encoding="ORDINAL")

    def test_equality_and_hash(self):
        a = CodecConfig(custom_tags={"Dog": "dog"})
        b = CodecConfig(custom_tags={"Dog": "dog"})
        assert a == b
        assert hash(a) == hash(b)
        assert a != a.with_ignore_none()

    def test_to_dict_round_trip(self, custom_tag_config):
        assert CodecConfig.from_dict(custom_tag_config.to_dict()) == custom_tag_config

    def test_to_dict_qualifies_class_keys(self):
        config = CodecConfig(custom_tags={Dog: "dog"})
        tags = config.to_dict()["discriminator"]["tags"]
        assert tags == {f"{__name__}.Dog": "dog"}


class TestCodecConfigLoading:
    """Tests for dictionary and YAML loading."""

    def test_from_dict(self):
        config = CodecConfig.from_dict(
            {
                "none_handling": "IGNORE",
                "discriminator": {"field": "kind", "strategy": "FULLY_QUALIFIED_NAME"},
            }
        )
        assert config.none_handling is NoneHandling.IGNORE
        assert config.discriminator_field == "kind"
        assert config.discriminator_strategy is DiscriminatorStrategy.FULLY_QUALIFIED_NAME

    def test_from_dict_empty(self):
        assert CodecConfig.from_dict({}) == CodecConfig()

    def test_from_dict_rejects_non_mapping(self):
        with pytest.raises(ConfigurationError):
            CodecConfig.from_dict(["IGNORE"])

    def test_from_dict_rejects_bad_discriminator_section(self):
        with pytest.raises(ConfigurationError):
            CodecConfig.from_dict({"discriminator": "kind"})

    def test_from_yaml(self, config_yaml):
        config = CodecConfig.from_yaml(config_yaml)
        assert config.none_handling is NoneHandling.IGNORE
        assert config.discriminator_field == "kind"
        assert config.discriminator_strategy is DiscriminatorStrategy.CUSTOM_MAP
        assert dict(config.custom_tags) == {"Dog": "dog"}

    def test_from_yaml_logs_loaded_config(self, config_yaml, debug_logging):
        CodecConfig.from_yaml(config_yaml)
        records = [r for r in debug_logging.records if r.name == "bsonderive.config"]
        assert len(records) == 1
        assert config_yaml in records[0].getMessage()

    def test_enum_encoding_from_yaml_string(self):
        config = CodecConfig.from_yaml_string("bsonderive:\n  enum_encoding: value\n")
        assert config.enum_encoding is EnumEncoding.VALUE

    def test_from_yaml_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError) as exc_info:
            CodecConfig.from_yaml(str(tmp_path / "missing.yml"))
        assert "not found" in str(exc_info.value)

    def test_from_yaml_string_without_section(self):
        config = CodecConfig.from_yaml_string("none_handling: IGNORE\n")
        assert config.none_handling is NoneHandling.IGNORE

    def test_from_yaml_string_empty(self):
        assert CodecConfig.from_yaml_string("") == CodecConfig()

    def test_from_yaml_string_invalid(self):
        with pytest.raises(ConfigurationError) as exc_info:
            CodecConfig.from_yaml_string("bsonderive: [unclosed")
        assert exc_info.value.cause is not None
