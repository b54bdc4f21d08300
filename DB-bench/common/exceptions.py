"""
Exceptions raised by the benchmark engine.
"""


class ConfigurationError(ValueError):
    """Invalid counts, settings or datasource properties, detected before any work starts."""


class RunAbortedError(RuntimeError):
    """A run that did not complete; no report must be printed for it."""

    def __init__(self, message: str, completed: int = 0, total: int = 0):
        super().__init__(message)
        self.completed = completed
        self.total = total


class RunTimeoutError(RunAbortedError):
    """The run exceeded the timeout ceiling."""


class RunInterruptedError(RunAbortedError):
    """The run was cancelled while the driver was waiting for it."""
