"""Custom exceptions for tracemem."""


class TraceConfigError(ValueError):
    """Raised when trace or scoring configuration is invalid.

    Covers unreadable TOML files, values that fail validation and references
    to scoring profiles that do not exist. Instance creation is aborted.
    """

    pass


class SessionNotFoundError(KeyError):
    """Raised when a session id has no detector in the registry."""

    pass


class TraceNotFoundError(KeyError):
    """Raised when a trace id is not in the store."""

    pass
