"""
Petition Engine - Exceptions

Validation outcomes are returned as values (RuleCheckResult, AssemblyReport).
These exceptions are reserved for contract violations at the boundaries.
"""


class PetitionEngineError(Exception):
    """Base class for petition engine errors."""
    pass


class ConfigurationError(PetitionEngineError):
    """Raised when a PipelineConfig is internally inconsistent."""
    pass


class GenerationError(PetitionEngineError):
    """Raised when the text generator returns a payload of the wrong shape."""
    pass
