"""
Calculation error taxonomy.

ValidationError   bad input, reported as a list before anything is computed.
ConfigError       template/method configuration is inconsistent.
GridLookupError   a price grid (or band table) has no cell for the measurement.
PersistenceError  the write path failed; the computed result is not saved.

Every kind is recoverable at the call site. Routers map them to HTTP errors.
"""


class CalculationError(Exception):
    """Base class for all engine errors."""


class ValidationError(CalculationError):
    """Input is malformed or out of domain. Carries every message found."""

    def __init__(self, messages):
        if isinstance(messages, str):
            messages = [messages]
        self.messages = list(messages)
        super().__init__("; ".join(self.messages))


class ConfigError(CalculationError):
    """Configuration is internally inconsistent. Aborts the calculation."""


class GridLookupError(CalculationError, LookupError):
    """No matching band, or a null cell at the matched band."""


class PersistenceError(CalculationError):
    """The write failed. `result` holds the in-memory, unpersisted result."""

    def __init__(self, message: str, result=None):
        super().__init__(message)
        self.result = result
