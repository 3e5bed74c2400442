"""
Exception types raised by the exercise validation core

Learner input never raises: syntax and structure problems come back as a
low-scoring ValidationResult. These exceptions cover content-authoring
faults only.
"""


class SQLCoachError(Exception):
    """Base class for validation core errors"""
    pass


class ExerciseSpecError(SQLCoachError, ValueError):
    """Raised when an exercise definition is malformed (e.g. a bad regex)"""
    pass


class CatalogError(SQLCoachError):
    """Raised when a mistake catalog violates its invariants"""
    pass
