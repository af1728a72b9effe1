"""Exceptions raised by the navigation engine."""


class NavigationError(Exception):
    """Base class for navigation engine errors."""


class ConfigurationError(NavigationError):
    """Programmer mistake in how the engine is set up or called.

    Raised synchronously to the caller of the registration/binding API.
    """


class InvariantViolation(NavigationError):
    """Navigation state that should be unreachable under correct use.

    The engine halts navigation when one of these reaches its tick loop.
    """
