"""
Pydantic schemas for exercises, mistakes and validation results
"""
import re
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Optional, List, Tuple
from enum import Enum

from .errors import ExerciseSpecError


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class MistakeCategory(str, Enum):
    PERFORMANCE = "performance"
    SECURITY = "security"
    CORRECTNESS = "correctness"
    STYLE = "style"
    DATA_INTEGRITY = "data-integrity"


class Complexity(str, Enum):
    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"


# Base model for camelCase aliasing
class CamelCaseModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True
    )


class FrozenCamelCaseModel(CamelCaseModel):
    model_config = ConfigDict(frozen=True)


# Mistake catalog schemas
class MistakeExample(FrozenCamelCaseModel):
    wrong: str
    right: str


class MistakeDefinition(FrozenCamelCaseModel):
    """A known SQL anti-pattern and how to explain it"""
    id: str
    name: str
    detection_patterns: Tuple[str, ...]  # Case-insensitive regexes, any match flags the query
    issue: str
    correction: str
    real_world_impact: str
    prevention: str
    example: MistakeExample
    severity: Severity
    category: MistakeCategory
    heuristic: bool = False  # Low-precision detector, only runs when opted in

    @field_validator("detection_patterns")
    @classmethod
    def patterns_must_compile(cls, patterns: Tuple[str, ...]) -> Tuple[str, ...]:
        if not patterns:
            raise ValueError("A mistake definition needs at least one detection pattern")
        for pattern in patterns:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"Invalid detection pattern {pattern!r}: {e}")
        return patterns


# Exercise schemas (supplied by the curriculum layer)
class TableColumnSpec(CamelCaseModel):
    name: str
    type: str
    nullable: Optional[bool] = None


class TableSpec(CamelCaseModel):
    name: str
    columns: List[TableColumnSpec] = []


class ExerciseSchema(CamelCaseModel):
    tables: List[TableSpec] = []


class TestCase(CamelCaseModel):
    """Structured assertion on the learner's query text"""
    name: str
    should_contain: Optional[List[str]] = None
    should_not_contain: Optional[List[str]] = None
    expected_columns: Optional[List[str]] = None
    weight: Optional[float] = None  # 0-1, defaults to an equal share


class ExerciseSpec(CamelCaseModel):
    title: str = ""
    description: str = ""
    starter_code: str = ""
    solution: str
    hints: List[str] = []
    language: str = "sql"  # Display only

    # Optional structured checks
    test_cases: Optional[List[TestCase]] = None
    table_schema: Optional[ExerciseSchema] = Field(default=None, alias="schema")
    required_clauses: Optional[List[str]] = None
    forbidden_patterns: Optional[List[str]] = None
    expected_tables: Optional[List[str]] = None
    expected_columns: Optional[List[str]] = None
    enabled_checks: Optional[List[str]] = None  # Heuristic mistake ids enabled for this exercise

    @field_validator("solution")
    @classmethod
    def solution_not_empty(cls, solution: str) -> str:
        if not solution.strip():
            raise ExerciseSpecError("Exercise solution must not be empty")
        return solution

    @field_validator("forbidden_patterns")
    @classmethod
    def forbidden_patterns_compile(cls, patterns: Optional[List[str]]) -> Optional[List[str]]:
        for pattern in patterns or []:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ExerciseSpecError(f"Forbidden pattern {pattern!r} does not compile: {e}")
        return patterns


# Derived analysis and validation output
class StructuralAnalysis(FrozenCamelCaseModel):
    has_select: bool = False
    has_from: bool = False
    has_where: bool = False
    has_join: bool = False
    has_group_by: bool = False
    has_order_by: bool = False
    has_limit: bool = False
    has_aggregate: bool = False
    tables: List[str] = []
    columns: List[str] = []
    estimated_complexity: Complexity = Complexity.SIMPLE


class SyntaxCheck(FrozenCamelCaseModel):
    valid: bool
    error: Optional[str] = None


class RequiredCheck(FrozenCamelCaseModel):
    passed: bool
    missing: List[str] = []


class ForbiddenCheck(FrozenCamelCaseModel):
    passed: bool
    violations: List[str] = []


class TestCaseResult(FrozenCamelCaseModel):
    name: str
    passed: bool
    message: str
    weight: float


class ExecutionStep(FrozenCamelCaseModel):
    step: int
    operation: str
    description: str
    clause: str


class ValidationResult(FrozenCamelCaseModel):
    is_valid: bool
    score: int
    issue: Optional[str] = None
    real_world_impact: Optional[str] = None
    common_mistake_detected: Optional[MistakeDefinition] = None
    detected_mistakes: List[MistakeDefinition] = []
    hints: List[str]
    next_steps: List[str]
    execution_steps: List[ExecutionStep] = []
    test_results: List[TestCaseResult] = []
    syntax_valid: bool
    structure_analysis: StructuralAnalysis
    required_check: Optional[RequiredCheck] = None
    forbidden_check: Optional[ForbiddenCheck] = None


# API request schemas
class ValidateQueryRequest(CamelCaseModel):
    query: str = ""
    exercise: ExerciseSpec


class SampleQueryRequest(CamelCaseModel):
    query: str = ""


class ExerciseSummary(CamelCaseModel):
    slug: str
    title: str
    description: str
    starter_code: str
    language: str
    table_schema: Optional[ExerciseSchema] = Field(default=None, alias="schema")
