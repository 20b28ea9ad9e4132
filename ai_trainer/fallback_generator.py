"""
Deterministic, network-free workout generation.

Used whenever the LM bundle call fails, errors or returns the wrong number of
workouts. Produces the same CandidatePayload shape as the LM path so the
assembler cannot tell the two apart. All randomness goes through the injected
``random.Random`` instance.
"""

import math
import random

from ai_trainer.bundle_generation import get_exercise_count
from ai_trainer.exercise_filter import CARDIO_MUSCLE_ID, is_cardio_exercise


STRENGTH_SETS = 3
STRENGTH_REPS = "8-12"
WARMUP_SETS = 1
WARMUP_REPS = "5-10"


def _shuffled(rng, items):
    items = list(items)
    rng.shuffle(items)
    return items


def choose_target_muscles(request, workout_index, used_muscle_groups, rng):
    """
    Resolve the muscles a fallback workout should target.

    manual -> the set given for this workout index
    same   -> the shared target set
    otherwise -> 2-3 random muscles not used earlier in this bundle, or any
    muscle once fewer than two unused ones remain.
    """
    mode = request.muscle_selection_mode
    if mode == "manual" and workout_index < len(request.per_workout_muscles):
        return list(request.per_workout_muscles[workout_index])
    if mode == "same" and request.muscle_targets:
        return list(request.muscle_targets)

    all_muscles = [
        m.get("id") for m in request.muscles if m.get("id") and m.get("id") != CARDIO_MUSCLE_ID
    ]
    used = {muscle_id for group in used_muscle_groups for muscle_id in group}
    unused = [muscle_id for muscle_id in all_muscles if muscle_id not in used]

    pool = unused if len(unused) >= 2 else all_muscles
    if not pool:
        return []

    count = min(rng.randint(2, 3), len(pool))
    return rng.sample(pool, count)


def generate_fallback_workout(request, workout_index, used_muscle_groups, rng):
    """
    Build one workout payload without the LM.

    Args:
        request: GenerationRequest.
        workout_index: Zero-based position in the bundle.
        used_muscle_groups: ``muscleGroups`` of the workouts already built in
            this bundle, in order.
        rng: ``random.Random`` used for every random choice.

    Returns:
        CandidatePayload dict.
    """
    exercise_count = get_exercise_count(request.duration_minutes)

    available = [
        ex for ex in request.available_exercises if ex.get("id") not in request.yesterday_exercise_ids
    ]
    cardio = [ex for ex in available if is_cardio_exercise(ex)]
    strength = [ex for ex in available if not is_cardio_exercise(ex)]

    target_muscles = choose_target_muscles(request, workout_index, used_muscle_groups, rng)

    selected = []
    selected_ids = set()

    if target_muscles:
        per_muscle = math.ceil(exercise_count / len(target_muscles))
        for muscle_id in target_muscles:
            candidates = [
                ex
                for ex in strength
                if ex.get("primaryMuscle") == muscle_id and ex["id"] not in selected_ids
            ]
            for ex in _shuffled(rng, candidates)[:per_muscle]:
                selected.append(ex)
                selected_ids.add(ex["id"])

    if len(selected) < exercise_count:
        leftovers = [ex for ex in strength if ex["id"] not in selected_ids]
        for ex in _shuffled(rng, leftovers)[: exercise_count - len(selected)]:
            selected.append(ex)
            selected_ids.add(ex["id"])

    main_exercises = selected[:exercise_count]

    exercises = []
    if request.wants_warmup and cardio:
        warmup = rng.choice(cardio)
        exercises.append(
            {
                "exerciseId": warmup["id"],
                "isWarmup": True,
                "targetSets": WARMUP_SETS,
                "targetReps": WARMUP_REPS,
            }
        )

    muscle_groups = []
    for ex in main_exercises:
        exercises.append(
            {
                "exerciseId": ex["id"],
                "isWarmup": False,
                "targetSets": STRENGTH_SETS,
                "targetReps": STRENGTH_REPS,
            }
        )
        muscle_id = ex.get("primaryMuscle")
        if muscle_id and muscle_id not in muscle_groups:
            muscle_groups.append(muscle_id)

    return {"exercises": exercises, "muscleGroups": muscle_groups}


def generate_fallback_bundle(request, rng=None):
    """
    Build ``request.num_workouts`` fallback payloads in order.

    Each workout's actual muscle groups feed the rotation of the next one, so
    the iterations must run sequentially.
    """
    rng = rng or random.Random()
    print(f"  Using fallback generation for {request.num_workouts} workouts.")

    payloads = []
    used_muscle_groups = []
    for index in range(request.num_workouts):
        payload = generate_fallback_workout(request, index, used_muscle_groups, rng)
        payloads.append(payload)
        used_muscle_groups.append(payload["muscleGroups"])
    return payloads
