"""Exception taxonomy shared by the learning-state engine.

Module-level error families (e.g. ``ReviewNotFoundError``) subclass these so
callers can catch either the narrow or the broad type.
"""


class StudyCoreError(Exception):
    pass


class NotFoundError(StudyCoreError, KeyError):
    """Raised when operating on an unknown review item or topic."""

    def __str__(self):
        # KeyError quotes its argument; keep plain messages
        return str(self.args[0]) if self.args else ''


class ValidationError(StudyCoreError, ValueError):
    """Raised for malformed input or persisted data."""


class ProviderError(StudyCoreError):
    """The generation provider rejected the request or failed."""


class ProviderTimeoutError(ProviderError):
    pass


class ProviderResponseError(ProviderError):
    """The provider answered, but the payload could not be parsed or validated."""


class SerializationError(StudyCoreError):
    """Import data failed shape validation; no state was applied."""
