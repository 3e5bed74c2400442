"""
Sample exercise library, loaded from data/sample_exercises.json
"""
import os
import json
import logging
from functools import lru_cache
from types import MappingProxyType
from typing import List, Mapping, Optional

from .errors import ExerciseSpecError
from .schemas import ExerciseSpec, ExerciseSummary

logger = logging.getLogger(__name__)

DATA_FILE = os.path.join(os.path.dirname(__file__), 'data', 'sample_exercises.json')


@lru_cache(maxsize=1)
def load_exercises(file_path: str = DATA_FILE) -> Mapping[str, ExerciseSpec]:
    """Load exercises keyed by slug. Every entry must carry a unique slug."""
    with open(file_path, 'r', encoding='utf-8') as f:
        exercises_data = json.load(f)

    exercises = {}
    for entry in exercises_data:
        slug = entry.get('slug')
        if not slug:
            raise ExerciseSpecError(f"Exercise without a slug in {file_path}")
        if slug in exercises:
            raise ExerciseSpecError(f"Duplicate exercise slug '{slug}' in {file_path}")
        exercises[slug] = ExerciseSpec.model_validate(entry)

    logger.info(f"Loaded {len(exercises)} sample exercises from {file_path}")
    return MappingProxyType(exercises)


def get_exercise(slug: str) -> Optional[ExerciseSpec]:
    return load_exercises().get(slug)


def list_exercises() -> List[ExerciseSummary]:
    return [
        ExerciseSummary(
            slug=slug,
            title=exercise.title,
            description=exercise.description,
            starter_code=exercise.starter_code,
            language=exercise.language,
            table_schema=exercise.table_schema,
        )
        for slug, exercise in load_exercises().items()
    ]
