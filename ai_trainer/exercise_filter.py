"""
Narrow the exercise catalog to a set of target muscles.
"""

CARDIO_MUSCLE_ID = "cardio"
WARMUP_CATEGORIES = ("cardio", "warmup")


def is_cardio_exercise(exercise):
    """Cardio/warm-up entries are candidates for the warm-up slot only."""
    return (
        exercise.get("primaryMuscle") == CARDIO_MUSCLE_ID
        or exercise.get("category") in WARMUP_CATEGORIES
    )


def filter_exercises_by_muscles(exercises, muscle_ids):
    """
    Keep exercises whose primary muscle is in ``muscle_ids``.

    Cardio/warm-up entries always pass so a warm-up can still be chosen.
    When nothing matches the muscle set, the catalog is returned unfiltered:
    generation never starts from an empty candidate set.
    """
    exercises = list(exercises or [])
    wanted = set(muscle_ids or [])
    if not wanted:
        return exercises

    matched = [ex for ex in exercises if ex.get("primaryMuscle") in wanted]
    if not matched:
        return exercises

    return [
        ex
        for ex in exercises
        if ex.get("primaryMuscle") in wanted or is_cardio_exercise(ex)
    ]
