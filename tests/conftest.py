"""Shared pytest fixtures for bsonderive tests."""

import logging

import pytest

from bsonderive.config import CodecConfig, DiscriminatorStrategy, NoneHandling
from bsonderive.logging import BsonDeriveLoggerFactory
from bsonderive.registry import CodecRegistry


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo logging configuration done by a test."""
    yield
    BsonDeriveLoggerFactory.reset()


@pytest.fixture
def default_config():
    """Create a default CodecConfig."""
    return CodecConfig()


@pytest.fixture
def ignore_none_config():
    """Create a CodecConfig that omits None fields."""
    return CodecConfig(none_handling=NoneHandling.IGNORE)


@pytest.fixture
def custom_tag_config():
    """Create a CodecConfig with a custom discriminator field and tags."""
    return CodecConfig(
        discriminator_field="kind",
        discriminator_strategy=DiscriminatorStrategy.CUSTOM_MAP,
        custom_tags={"Dog": "dog", "Cat": "cat"},
    )


@pytest.fixture
def registry():
    """Create an empty CodecRegistry over the builtin codecs."""
    return CodecRegistry()


@pytest.fixture
def debug_logging(caplog):
    """Capture bsonderive records at DEBUG level."""
    caplog.set_level(logging.DEBUG, logger="bsonderive")
    return caplog


@pytest.fixture
def config_yaml(tmp_path):
    """Write a YAML configuration file and return its path."""
    path = tmp_path / "codecs.yml"
    path.write_text(
        "bsonderive:\n"
        "  none_handling: IGNORE\n"
        "  discriminator:\n"
        "    field: kind\n"
        "    strategy: CUSTOM_MAP\n"
        "    tags:\n"
        "      Dog: dog\n",
        encoding="utf-8",
    )
    return str(path)
