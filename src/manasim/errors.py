"""Exceptions raised by the mana simulator."""


class ManaSimError(Exception):
    """Base class for simulator errors."""


class ConfigurationError(ManaSimError, ValueError):
    """Invalid simulation options (rejected before any trial runs)."""


class UnclassifiableCardError(ManaSimError):
    """A raw card record could not be turned into a Card."""

    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"Cannot classify {name!r}: {reason}")


class EmptyDeckError(ManaSimError):
    """The deck has no cards left after applying category toggles."""
