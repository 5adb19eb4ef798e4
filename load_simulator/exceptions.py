"""Exceptions raised by the load simulator engine."""


class LoadSimulatorError(Exception):
    """Base load simulator error."""


class ConfigurationError(LoadSimulatorError, ValueError):
    """Invalid request template or load profile.

    Raised before any network activity takes place.
    """


class RunStateError(LoadSimulatorError, RuntimeError):
    """Operation not allowed in the current run state."""


class CancellationError(LoadSimulatorError):
    """Run stopped early by an external signal."""


class RunAbortedError(LoadSimulatorError):
    """Run aborted by a failed pre-flight check."""
