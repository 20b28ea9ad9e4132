"""
Second LM pass: generate every requested workout in one call.
"""

from ai_trainer.prompt_builder import SYSTEM_PROMPT, build_bundle_prompt
from ai_trainer.response_parser import parse_bundle


EXERCISE_COUNTS = {30: 6, 45: 8, 60: 9}
DEFAULT_EXERCISE_COUNT = 11


def get_exercise_count(duration_minutes):
    """Strength exercises per workout for a given duration (warm-up excluded)."""
    return EXERCISE_COUNTS.get(duration_minutes, DEFAULT_EXERCISE_COUNT)


def generate_bundle(
    client,
    request,
    exercises,
    exercise_map,
    muscle_assignments=None,
    max_output_tokens=4096,
    recent_limit=5,
):
    """
    Request all workouts in a single LM round-trip.

    Args:
        client: LM client (``generate`` contract), or None when unavailable.
        request: GenerationRequest.
        exercises: Candidate catalog for the prompt (possibly filtered).
        exercise_map: Full catalog by id, used to drop unknown ids.
        muscle_assignments: Optional per-workout muscle ids from the
            selection pass.

    Returns:
        Bundle dict with exactly ``request.num_workouts`` workouts, or None.
    """
    if client is None:
        return None

    user_prompt = build_bundle_prompt(
        request,
        exercises,
        get_exercise_count(request.duration_minutes),
        muscle_assignments=muscle_assignments,
        recent_limit=recent_limit,
    )
    print(
        f"  Bundle generation: {request.num_workouts} workouts, "
        f"{len(exercises)}/{len(request.available_exercises)} exercises in prompt."
    )

    result = client.generate(SYSTEM_PROMPT, user_prompt, max_output_tokens)
    if not result.ok:
        print(f"  Bundle generation failed ({result.status}).")
        return None

    bundle = parse_bundle(result.text, request.num_workouts, exercise_map)
    if bundle is None:
        print("  Bundle response was invalid.")
        return None

    for note in bundle["diagnostics"]:
        print(f"  {note}")
    return bundle
