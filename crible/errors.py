"""Typed exceptions raised by crible."""


class CribleError(Exception):
    """Base class for all crible errors."""


class ConfigurationError(CribleError, ValueError):
    """Raised when the configuration of a run is invalid."""


class UnknownSieveError(ConfigurationError):
    """Raised when a sieve name is not registered."""


class InvalidMetricError(ConfigurationError):
    """Raised when a score metric or sub score is not recognized."""


class SieveOrderingError(ConfigurationError):
    """Raised for invalid or unsatisfiable sieve ordering constraints."""


class ConsistencyError(CribleError, RuntimeError):
    """Raised when document state violates an invariant (for example,
    a mention pointing to a cluster that does not exist)."""


class DistributedJobError(CribleError, OSError):
    """Raised when a distributed optimization job cannot be read back."""
