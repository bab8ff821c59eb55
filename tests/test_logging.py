"""Unit tests for bsonderive.logging module."""

import logging
from dataclasses import dataclass

from bsonderive.logging import (
    BsonDeriveLoggerFactory,
    BSONDERIVE_ROOT_LOGGER,
    COMPONENTS,
    configure_logging,
    get_logger,
    set_level,
)
from bsonderive.registry import CodecRegistry


@dataclass
class Point:
    x: int
    y: int


class TestBsonDeriveLoggerFactory:
    """Tests for BsonDeriveLoggerFactory class."""

    def test_get_logger_root(self):
        assert BsonDeriveLoggerFactory.get_logger().name == BSONDERIVE_ROOT_LOGGER

    def test_get_logger_component(self):
        logger = BsonDeriveLoggerFactory.get_logger("registry")
        assert logger.name == f"{BSONDERIVE_ROOT_LOGGER}.registry"

    def test_not_configured_by_default(self):
        assert BsonDeriveLoggerFactory.is_configured() is False

    def test_configure(self):
        logger = BsonDeriveLoggerFactory.configure(level=logging.DEBUG)
        assert logger.level == logging.DEBUG
        assert BsonDeriveLoggerFactory.is_configured() is True

    def test_configure_twice_replaces_handler(self):
        first = logging.StreamHandler()
        second = logging.StreamHandler()
        BsonDeriveLoggerFactory.configure(handler=first)
        logger = BsonDeriveLoggerFactory.configure(handler=second)
        assert second in logger.handlers
        assert first not in logger.handlers

    def test_reset_removes_handler(self):
        handler = logging.StreamHandler()
        logger = BsonDeriveLoggerFactory.configure(handler=handler)
        BsonDeriveLoggerFactory.reset()
        assert handler not in logger.handlers
        assert BsonDeriveLoggerFactory.is_configured() is False

    def test_disable_silences_components(self):
        BsonDeriveLoggerFactory.disable()
        assert logging.getLogger(BSONDERIVE_ROOT_LOGGER).disabled is True
        for component in COMPONENTS:
            assert get_logger(component).disabled is True

    def test_enable(self):
        BsonDeriveLoggerFactory.disable()
        BsonDeriveLoggerFactory.enable()
        assert logging.getLogger(BSONDERIVE_ROOT_LOGGER).disabled is False
        assert get_logger("registry").disabled is False


class TestModuleFunctions:
    """Tests for module-level functions."""

    def test_get_logger(self):
        assert get_logger("derivation").name == f"{BSONDERIVE_ROOT_LOGGER}.derivation"

    def test_configure_logging(self):
        logger = configure_logging(level=logging.WARNING)
        assert logger.level == logging.WARNING

    def test_set_level_function(self):
        set_level(logging.ERROR, "discriminator")
        assert get_logger("discriminator").level == logging.ERROR

    def test_loggers_are_hierarchical(self):
        assert get_logger("registry").parent is get_logger()


class TestAssemblyLogging:
    """Registry assembly is logged at DEBUG."""

    def test_register_logs_binding(self, debug_logging):
        CodecRegistry().register(Point)
        messages = [r.getMessage() for r in debug_logging.records]
        assert "Bound derived codec for Point" in messages

    def test_with_config_logs_change(self, debug_logging, ignore_none_config):
        CodecRegistry().with_config(ignore_none_config)
        assert any(
            r.name == f"{BSONDERIVE_ROOT_LOGGER}.registry"
            and "configuration changed" in r.getMessage()
            for r in debug_logging.records
        )

    def test_nothing_logged_above_debug(self, caplog):
        caplog.set_level(logging.INFO, logger=BSONDERIVE_ROOT_LOGGER)
        CodecRegistry().register(Point)
        assert caplog.records == []
