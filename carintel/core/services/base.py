"""Base class for singleton services with managed initialization state."""


class SingletonService:
    """Mixin for services that follow the singleton-via-classmethods pattern.

    Subclasses set ``cls._initialized = True`` at the end of their own
    ``init()`` class method and clear it in ``aclose()``.
    """

    _initialized: bool = False

    @classmethod
    def is_initialized(cls) -> bool:
        """Return whether the service has been initialised."""
        return cls._initialized

    @classmethod
    def _reset(cls) -> None:
        """Reset singleton state, for test teardown only."""
        cls._initialized = False
