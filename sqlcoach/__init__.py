"""
SQL exercise validation core
"""

__version__ = "1.0.0"

from .exercise_validator import ExerciseValidator, validate_query
from .mistake_catalog import DEFAULT_CATALOG, CatalogRegistry, MistakeCatalog
from .schemas import ExerciseSpec, ValidationResult

__all__ = [
    "ExerciseValidator",
    "validate_query",
    "DEFAULT_CATALOG",
    "CatalogRegistry",
    "MistakeCatalog",
    "ExerciseSpec",
    "ValidationResult",
]
