"""Base class for singleton services with managed initialization state."""


class SingletonService:
    """Mixin for services that follow the singleton-via-classmethods pattern.

    Provides:
    - ``_initialized`` flag
    - ``is_initialized()`` class method
    - ``_reset()`` class method for test teardown

    Subclasses set ``cls._initialized = True`` at the end of their own
    ``init()`` class method. ``init()`` is sync or async depending on the
    service.
    """

    _initialized: bool = False

    @classmethod
    def is_initialized(cls) -> bool:
        """Return whether the service has been initialised."""
        return cls._initialized

    @classmethod
    def _reset(cls) -> None:
        """Reset singleton state. Test teardown only."""
        cls._initialized = False
