"""
Workout generation pipeline.

AI first, rule-based fallback, with the path that produced the workout
reported back to the caller:

    result = generate_workout("intermediate", user_id, params, ai_composer=composer)
    result.source   # "ai" or "rule-based"
    result.workout  # WorkoutDetails

Input is validated up front so a bad request is rejected before any AI call
is made.
"""
import logging
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

from services.ai_workout_composer import AIWorkoutComposer, InspirationWorkout
from services.workout_composer import (
    GenerationParams,
    WorkoutDetails,
    compose_workout,
    resolve_surprise,
    validate_fitness_level,
    validate_params,
)

logger = logging.getLogger(__name__)

SOURCE_AI = "ai"
SOURCE_RULE_BASED = "rule-based"


@dataclass
class GenerationResult:
    source: str
    workout: WorkoutDetails

    @property
    def used_fallback(self) -> bool:
        return self.source == SOURCE_RULE_BASED


def generate_workout(
    fitness_level,
    user_id: Optional[str],
    params: Optional[GenerationParams] = None,
    ai_composer: Optional[AIWorkoutComposer] = None,
    inspiration: Optional[List[InspirationWorkout]] = None,
    rng: Optional[random.Random] = None,
    now: Optional[Callable[[], datetime]] = None,
) -> GenerationResult:
    """
    Generate a workout document. Does not persist.

    Raises:
        InvalidWorkoutParameters: for invalid input only. AI problems never
            surface here - they fall through to rule-based composition.
    """
    rng = rng or random.Random()
    params = params or GenerationParams()

    level = validate_fitness_level(fitness_level)
    params = resolve_surprise(params, rng)
    validate_params(params)

    if ai_composer is not None:
        workout = ai_composer.compose(level, user_id, params, inspiration)
        if workout is not None:
            logger.info("Workout generated with AI")
            return GenerationResult(source=SOURCE_AI, workout=workout)

    logger.info("Using rule-based workout generation")
    workout = compose_workout(level, user_id, params, rng=rng, now=now)
    return GenerationResult(source=SOURCE_RULE_BASED, workout=workout)
