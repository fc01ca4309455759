"""
Registry of log source factories.

Provides registration and discovery of the supported access log producers.
"""

import logging
from typing import Callable

from ..exceptions import UnknownLogSourceError
from .base import LogSource

logger = logging.getLogger(__name__)

LogSourceFactory = Callable[..., LogSource]


class LogSourceRegistry:
    """
    Registry for log source factories.

    Factories take keyword options (e.g. a cookie whitelist) and return a
    configured LogSource.

    Usage:
        # Register using decorator
        @LogSourceRegistry.register('cloudfront')
        def cloudfront_log_source(anonymize_client_ip: bool = True) -> LogSource:
            ...

        # Get a configured source
        source = LogSourceRegistry.get_log_source('cloudfront', cookie_whitelist=['session'])

        # List all sources
        names = LogSourceRegistry.list_log_sources()
    """

    _factories: dict[str, LogSourceFactory] = {}

    @classmethod
    def register(cls, source_name: str):
        """
        Decorator to register a log source factory.

        Args:
            source_name: Identifier for registry lookup
        """

        def decorator(factory: LogSourceFactory) -> LogSourceFactory:
            cls.register_factory(source_name, factory)
            return factory

        return decorator

    @classmethod
    def register_factory(cls, source_name: str, factory: LogSourceFactory) -> None:
        """
        Register a factory for a log source.

        Raises:
            TypeError: If factory is not callable
        """
        if not callable(factory):
            raise TypeError(f"Log source factory must be callable, got {factory!r}")

        source_name = source_name.lower()
        if source_name in cls._factories:
            logger.warning(f"Overwriting existing log source '{source_name}'")

        cls._factories[source_name] = factory
        logger.debug(f"Registered log source: {source_name}")

    @classmethod
    def get_log_source(cls, source_name: str, **options) -> LogSource:
        """
        Create a configured log source by name.

        Raises:
            UnknownLogSourceError: If the source is not registered
        """
        source_name = source_name.lower()
        if source_name not in cls._factories:
            raise UnknownLogSourceError(
                source_name=source_name,
                available_sources=list(cls._factories.keys()),
            )
        return cls._factories[source_name](**options)

    @classmethod
    def list_log_sources(cls) -> list[str]:
        return sorted(cls._factories.keys())

    @classmethod
    def is_registered(cls, source_name: str) -> bool:
        return source_name.lower() in cls._factories

    @classmethod
    def clear(cls) -> None:
        """
        Clear all registered factories.

        Primarily used for testing to reset registry state.
        """
        cls._factories.clear()


# =============================================================================
# Convenience Functions
# =============================================================================


def get_log_source(source_name: str, **options) -> LogSource:
    """Create a configured log source by name."""
    return LogSourceRegistry.get_log_source(source_name, **options)


def list_log_sources() -> list[str]:
    """List all registered log source names."""
    return LogSourceRegistry.list_log_sources()
