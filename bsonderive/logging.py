"""Logging for bsonderive.

Every component logs through a child of the ``bsonderive`` logger:

- ``bsonderive.registry``: bindings added, merges and config changes
- ``bsonderive.derivation``: codecs derived for records and sum types
- ``bsonderive.discriminator``: tag collisions inside a sum type
- ``bsonderive.config``: configuration files loaded

Assembly events are logged at DEBUG; tag collisions at WARNING. Encoding
and decoding never log. The package only attaches a ``NullHandler``;
call :func:`configure_logging` to see output.

Example:
    >>> import logging
    >>> from bsonderive.logging import configure_logging, set_level
    >>> configure_logging(level=logging.WARNING)
    >>> set_level(logging.DEBUG, "registry")
"""

import logging
from typing import Optional


BSONDERIVE_ROOT_LOGGER = "bsonderive"

COMPONENTS = ("registry", "derivation", "discriminator", "config")

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logging.getLogger(BSONDERIVE_ROOT_LOGGER).addHandler(logging.NullHandler())


class BsonDeriveLoggerFactory:
    """Hands out component loggers and owns the optional package handler.

    The handler installed by :meth:`configure` is remembered so that a
    second call replaces it instead of stacking duplicates.
    """

    _handler: Optional[logging.Handler] = None

    @classmethod
    def get_logger(cls, component: str = "") -> logging.Logger:
        """Get the logger of a component, or the package logger.

        Args:
            component: Component name such as ``"registry"``. Nested names
                (``"registry.merge"``) are allowed.
        """
        if not component:
            return logging.getLogger(BSONDERIVE_ROOT_LOGGER)
        return logging.getLogger(f"{BSONDERIVE_ROOT_LOGGER}.{component}")

    @classmethod
    def configure(
        cls,
        level: int = logging.INFO,
        format_string: str = DEFAULT_FORMAT,
        handler: Optional[logging.Handler] = None,
    ) -> logging.Logger:
        """Attach a handler to the package logger.

        Args:
            level: Level for the package logger and the handler.
            format_string: Format applied to the handler.
            handler: Handler to attach. Defaults to a ``StreamHandler``.

        Returns:
            The package logger.
        """
        logger = logging.getLogger(BSONDERIVE_ROOT_LOGGER)
        if cls._handler is not None:
            logger.removeHandler(cls._handler)

        handler = handler or logging.StreamHandler()
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(format_string))
        logger.addHandler(handler)
        logger.setLevel(level)

        cls._handler = handler
        return logger

    @classmethod
    def reset(cls) -> None:
        """Remove the handler installed by :meth:`configure` and clear levels."""
        logger = logging.getLogger(BSONDERIVE_ROOT_LOGGER)
        if cls._handler is not None:
            logger.removeHandler(cls._handler)
            cls._handler = None
        logger.setLevel(logging.NOTSET)
        logger.disabled = False
        for component in COMPONENTS:
            cls.get_logger(component).setLevel(logging.NOTSET)

    @classmethod
    def set_level(cls, level: int, component: str = "") -> None:
        cls.get_logger(component).setLevel(level)

    @classmethod
    def disable(cls) -> None:
        """Silence every bsonderive logger."""
        logging.getLogger(BSONDERIVE_ROOT_LOGGER).disabled = True
        for component in COMPONENTS:
            cls.get_logger(component).disabled = True

    @classmethod
    def enable(cls) -> None:
        logging.getLogger(BSONDERIVE_ROOT_LOGGER).disabled = False
        for component in COMPONENTS:
            cls.get_logger(component).disabled = False

    @classmethod
    def is_configured(cls) -> bool:
        return cls._handler is not None


def get_logger(component: str = "") -> logging.Logger:
    """Get the logger of a bsonderive component."""
    return BsonDeriveLoggerFactory.get_logger(component)


def configure_logging(
    level: int = logging.INFO,
    format_string: str = DEFAULT_FORMAT,
    handler: Optional[logging.Handler] = None,
) -> logging.Logger:
    """Send bsonderive log records to ``handler`` (stderr by default).

    Args:
        level: Logging level (e.g., logging.DEBUG, logging.INFO).
        format_string: Format string for log messages.
        handler: Optional custom handler.

    Returns:
        The package logger.
    """
    return BsonDeriveLoggerFactory.configure(level, format_string, handler)


def set_level(level: int, component: str = "") -> None:
    """Set the level of one component, or of the package logger."""
    BsonDeriveLoggerFactory.set_level(level, component)
