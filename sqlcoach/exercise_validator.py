"""
Exercise Validator
==================
The validation pipeline behind `validate_query(user_query, exercise)`:

    normalize -> syntax pre-check -> structural analysis -> mistake detection
    -> constraint checks -> scoring -> explanation

Every call is a pure function of its inputs. The catalog is read once per
call, so a concurrent catalog swap never produces a mixed result. Learner
input never raises; only malformed exercise content can.
"""

import logging
from typing import Any, Dict, Optional, Union

from . import constraint_checker, explainer, scorer
from .config import Config
from .mistake_catalog import DEFAULT_CATALOG, CatalogRegistry, MistakeCatalog
from .query_normalizer import DEFAULT_MAX_QUERY_LENGTH, check_length, check_syntax, prepare
from .schemas import ExerciseSpec, StructuralAnalysis, ValidationResult
from .structure_analyzer import analyze

logger = logging.getLogger(__name__)

LOG_QUERY_PREVIEW = 100

INTERNAL_ERROR_MESSAGE = 'The query could not be analyzed. Try simplifying it and run it again.'
INTERNAL_ERROR_IMPACT = 'This error will cause your query to fail or return unexpected results.'


def _preview(query: str) -> str:
    return query[:LOG_QUERY_PREVIEW] + ('...' if len(query) > LOG_QUERY_PREVIEW else '')


class ExerciseValidator:
    """Validates learner queries against exercises using an injected mistake catalog"""

    def __init__(self,
                 catalog: Union[MistakeCatalog, CatalogRegistry] = DEFAULT_CATALOG,
                 heuristic_checks: bool = False,
                 passing_score: int = scorer.DEFAULT_PASSING_SCORE,
                 max_query_length: Optional[int] = DEFAULT_MAX_QUERY_LENGTH):
        if not isinstance(catalog, (MistakeCatalog, CatalogRegistry)):
            raise TypeError(f"Expected a MistakeCatalog or CatalogRegistry, got {type(catalog).__name__}")
        self._catalog = catalog
        self.heuristic_checks = heuristic_checks
        self.passing_score = passing_score
        self.max_query_length = max_query_length

    @property
    def catalog(self) -> MistakeCatalog:
        if isinstance(self._catalog, CatalogRegistry):
            return self._catalog.current
        return self._catalog

    def validate(self, user_query: str,
                 exercise: Union[ExerciseSpec, Dict[str, Any]]) -> ValidationResult:
        """
        Validate a learner query against an exercise

        Args:
            user_query: Raw learner text, may be empty or gibberish
            exercise: ExerciseSpec or its camelCase dict form

        Returns:
            A fully populated ValidationResult

        Raises:
            pydantic.ValidationError: The exercise dict is malformed
        """
        if not isinstance(exercise, ExerciseSpec):
            exercise = ExerciseSpec.model_validate(exercise)
        if not isinstance(user_query, str):
            user_query = ''

        try:
            result = self._run(user_query, exercise)
        except Exception as e:
            logger.exception(f"Validation crashed for exercise '{exercise.title}': {e}")
            return self._failure_result(INTERNAL_ERROR_MESSAGE, INTERNAL_ERROR_IMPACT)

        logger.info(
            f"Validated query for '{exercise.title}': score={result.score}, "
            f"valid={result.is_valid}, syntax_valid={result.syntax_valid}"
        )
        return result

    def _run(self, raw_query: str, exercise: ExerciseSpec) -> ValidationResult:
        catalog = self.catalog

        # Every later stage runs regexes over the raw text
        length = check_length(raw_query, self.max_query_length)
        if not length.valid:
            logger.debug(f"Rejected raw query of {len(raw_query)} characters")
            return self._failure_result(length.error)

        normalized = prepare(raw_query)
        logger.debug(f"Validating query: {_preview(normalized)}")

        syntax = check_syntax(normalized, self.max_query_length)
        if not syntax.valid:
            logger.debug(f"Syntax pre-check failed: {syntax.error}")
            return self._failure_result(syntax.error)

        analysis = analyze(normalized)
        mistakes = catalog.detect(
            raw_query,
            include_heuristic=self.heuristic_checks,
            enabled_checks=exercise.enabled_checks,
        )
        logger.debug(f"Detected {len(mistakes)} mistake(s): {[m.id for m in mistakes]}")

        test_results = constraint_checker.run_test_cases(exercise, normalized, analysis)
        required_check = constraint_checker.check_required(exercise, analysis, normalized)
        forbidden_check = constraint_checker.check_forbidden(exercise, raw_query)

        score = scorer.score(test_results, mistakes, required_check, forbidden_check)
        is_valid = scorer.is_passing(score, mistakes, self.passing_score)
        logger.debug(f"Score {score} (passing score {self.passing_score})")

        issue, impact = explainer.primary_issue(
            mistakes, required_check, forbidden_check, score, self.passing_score)

        return ValidationResult(
            is_valid=is_valid,
            score=score,
            issue=issue,
            real_world_impact=impact,
            common_mistake_detected=mistakes[0] if mistakes else None,
            detected_mistakes=mistakes,
            hints=explainer.build_hints(exercise, analysis, mistakes),
            next_steps=explainer.build_next_steps(
                exercise, analysis, mistakes, score, self.passing_score),
            execution_steps=explainer.build_execution_steps(raw_query, analysis),
            test_results=test_results,
            syntax_valid=True,
            structure_analysis=analysis,
            required_check=required_check,
            forbidden_check=forbidden_check,
        )

    @staticmethod
    def _failure_result(error: str, impact: str = explainer.SYNTAX_ERROR_IMPACT) -> ValidationResult:
        return ValidationResult(
            is_valid=False,
            score=0,
            issue=error,
            real_world_impact=impact,
            hints=explainer.syntax_failure_hints(error),
            next_steps=explainer.syntax_failure_next_steps(),
            syntax_valid=False,
            structure_analysis=StructuralAnalysis(),
        )


# Global validator instance
exercise_validator = ExerciseValidator(
    catalog=CatalogRegistry(DEFAULT_CATALOG),
    heuristic_checks=Config.HEURISTIC_CHECKS,
    passing_score=Config.PASSING_SCORE,
    max_query_length=Config.MAX_QUERY_LENGTH,
)


def validate_query(user_query: str, exercise: Union[ExerciseSpec, Dict[str, Any]]) -> ValidationResult:
    """Validate a learner query with the default, environment-configured validator"""
    return exercise_validator.validate(user_query, exercise)
