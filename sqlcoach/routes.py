"""
Exercise Validation API Routes
==============================
Stateless endpoints around the validation pipeline. Learner progress is the
host application's concern; nothing here persists.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from .exercise_validator import ExerciseValidator, exercise_validator
from .exercises import get_exercise, list_exercises
from .schemas import (
    ExerciseSpec, ExerciseSummary, MistakeCategory, MistakeDefinition,
    SampleQueryRequest, Severity, ValidateQueryRequest, ValidationResult
)

logger = logging.getLogger(__name__)

# Create router
exercise_router = APIRouter(prefix="/api/exercises", tags=["exercises"])


def get_validator() -> ExerciseValidator:
    return exercise_validator


def _require_exercise(slug: str) -> ExerciseSpec:
    exercise = get_exercise(slug)
    if exercise is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Exercise '{slug}' not found"
        )
    return exercise


# ============================================================================
# VALIDATION ENDPOINTS
# ============================================================================

@exercise_router.post("/validate", response_model=ValidationResult)
def validate_submission(request: ValidateQueryRequest,
                        validator: ExerciseValidator = Depends(get_validator)):
    """Validate a query against an exercise supplied in the request body"""
    return validator.validate(request.query, request.exercise)


# ============================================================================
# MISTAKE CATALOG ENDPOINTS
# ============================================================================

@exercise_router.get("/mistakes", response_model=List[MistakeDefinition])
def list_mistakes(category: Optional[MistakeCategory] = Query(None),
                  severity: Optional[Severity] = Query(None),
                  validator: ExerciseValidator = Depends(get_validator)):
    """List catalog entries in catalog order, optionally filtered"""
    mistakes = list(validator.catalog)
    if category is not None:
        mistakes = [m for m in mistakes if m.category == category]
    if severity is not None:
        mistakes = [m for m in mistakes if m.severity == severity]
    return mistakes


@exercise_router.get("/mistakes/{mistake_id}", response_model=MistakeDefinition)
def get_mistake(mistake_id: str, validator: ExerciseValidator = Depends(get_validator)):
    mistake = validator.catalog.get(mistake_id)
    if mistake is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Mistake '{mistake_id}' not found"
        )
    return mistake


# ============================================================================
# SAMPLE EXERCISE ENDPOINTS
# ============================================================================

@exercise_router.get("", response_model=List[ExerciseSummary])
def get_sample_exercises():
    """Sample exercises, without their solutions"""
    return list_exercises()


@exercise_router.get("/{slug}", response_model=ExerciseSummary)
def get_sample_exercise(slug: str):
    exercise = _require_exercise(slug)
    return ExerciseSummary(
        slug=slug,
        title=exercise.title,
        description=exercise.description,
        starter_code=exercise.starter_code,
        language=exercise.language,
        table_schema=exercise.table_schema,
    )


@exercise_router.post("/{slug}/validate", response_model=ValidationResult)
def validate_sample_submission(slug: str, request: SampleQueryRequest,
                               validator: ExerciseValidator = Depends(get_validator)):
    """Validate a query against one of the sample exercises"""
    exercise = _require_exercise(slug)
    logger.debug(f"Validating submission for sample exercise {slug}")
    return validator.validate(request.query, exercise)
