"""
First LM pass: choose the muscle groups for each workout in a bundle.
"""

from ai_trainer.exercise_filter import CARDIO_MUSCLE_ID
from ai_trainer.prompt_builder import (
    MUSCLE_SELECTION_SYSTEM_PROMPT,
    build_muscle_selection_prompt,
)
from ai_trainer.response_parser import parse_muscle_selection


def select_workout_muscles(client, request, max_output_tokens=512, recent_limit=5):
    """
    Ask the LM which muscles each workout should target.

    Only meaningful when the request leaves the muscle choice open
    (``request.needs_muscle_selection``). A failed call is not fatal: the
    caller simply proceeds without narrowing the catalog.

    Returns:
        List of muscle-id lists, one per workout, or None on failure.
    """
    if client is None or not request.needs_muscle_selection:
        return None

    result = client.generate(
        MUSCLE_SELECTION_SYSTEM_PROMPT,
        build_muscle_selection_prompt(request, recent_limit=recent_limit),
        max_output_tokens,
    )
    if not result.ok:
        print(f"  Muscle selection pass failed ({result.status}), continuing without filtering.")
        return None

    muscle_ids = [m.get("id") for m in request.muscles if m.get("id") != CARDIO_MUSCLE_ID]
    selections = parse_muscle_selection(result.text, request.num_workouts, muscle_ids)
    if selections is None:
        print("  Muscle selection response was invalid, continuing without filtering.")
        return None

    print(f"  Muscle selection: {selections}")
    return selections


def union_of(selections):
    """Ordered union of per-workout muscle selections."""
    seen = []
    for muscle_ids in selections or []:
        for muscle_id in muscle_ids:
            if muscle_id not in seen:
                seen.append(muscle_id)
    return seen
