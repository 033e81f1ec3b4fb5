# errors.py


class SimulationError(Exception):
    """Base class for every error that ends a simulation run."""


class ConfigurationError(SimulationError):
    pass


class TraceFileError(SimulationError):
    """The trace file could not be opened or read."""


class AllocationError(SimulationError):
    pass


class MalformedTraceError(SimulationError):
    def __init__(self, message, line_number=None):
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class CacheInvariantError(SimulationError):
    """A cache set holds more lines than its capacity or a duplicate tag."""
