"""Domain-specific errors for razerwatch."""


class RazerwatchError(Exception):
    """Base error for razerwatch."""


class SettingsError(RazerwatchError):
    """Raised when settings cannot be read or fetched."""


class SettingsValidationError(SettingsError):
    """Raised when a settings file or value does not conform to schema or semantics."""


class LogReadError(RazerwatchError):
    """Raised when the vendor log file cannot be read during a reparse cycle."""
