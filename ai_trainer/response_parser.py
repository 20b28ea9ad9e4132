"""
Extract and validate structured workout payloads from LM text output.

LM replies are not guaranteed to be bare JSON: they may be wrapped in prose
or markdown fences. Every public function here returns ``None`` for anything
it cannot use and never raises on bad input.
"""

import json
import re


DEFAULT_TARGET_SETS = 3
DEFAULT_TARGET_REPS = "8-12"

FENCE_OPEN_RE = re.compile(r"^```\w*\n?")
FENCE_CLOSE_RE = re.compile(r"\n?```$")


def extract_json_block(text):
    """
    Return the outermost ``{...}`` span of ``text``.

    Falls back to the stripped text itself when no braces are present, so the
    decode step reports the failure.
    """
    text = (text or "").strip()
    if text.startswith("```"):
        text = FENCE_OPEN_RE.sub("", text)
        text = FENCE_CLOSE_RE.sub("", text)
        text = text.strip()

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        return text
    return text[start : end + 1]


def decode_json_object(text):
    """Decode the outermost JSON object in ``text``; None on any failure."""
    block = extract_json_block(text)
    if not block:
        return None
    try:
        parsed = json.loads(block)
    except (json.JSONDecodeError, TypeError, ValueError):
        return None
    if not isinstance(parsed, dict):
        return None
    return parsed


def _as_positive_int(value, default):
    if isinstance(value, bool):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _as_number(value):
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _clean_recommendation(raw):
    if not isinstance(raw, dict):
        return None

    weight = _as_number(raw.get("weight"))
    if weight is None or weight < 0:
        return None

    recommendation = {
        "weight": weight,
        "repRange": str(raw.get("repRange") or DEFAULT_TARGET_REPS),
        "sets": _as_positive_int(raw.get("sets"), DEFAULT_TARGET_SETS),
    }
    if raw.get("reasoning"):
        recommendation["reasoning"] = str(raw["reasoning"])
    return recommendation


def _clean_exercise(raw):
    if not isinstance(raw, dict):
        return None

    exercise_id = raw.get("exerciseId")
    if exercise_id is None or exercise_id == "":
        return None

    exercise = {
        "exerciseId": str(exercise_id),
        "isWarmup": bool(raw.get("isWarmup", False)),
        "targetSets": _as_positive_int(raw.get("targetSets"), DEFAULT_TARGET_SETS),
        "targetReps": str(raw.get("targetReps") or DEFAULT_TARGET_REPS),
    }
    if raw.get("aiNotes"):
        exercise["aiNotes"] = str(raw["aiNotes"])

    recommendation = _clean_recommendation(raw.get("recommendation"))
    if recommendation:
        exercise["recommendation"] = recommendation
    return exercise


def validate_workout(workout, exercise_map=None, diagnostics=None, label="workout"):
    """
    Schema-check one workout object and resolve its exercise ids.

    Returns the cleaned CandidatePayload, or None when the structure itself is
    invalid (not an object, ``exercises`` missing or not a list). Individual
    entries that are malformed or reference ids missing from ``exercise_map``
    are dropped and noted in ``diagnostics``.
    """
    if diagnostics is None:
        diagnostics = []

    if not isinstance(workout, dict):
        return None

    raw_exercises = workout.get("exercises")
    if not isinstance(raw_exercises, list):
        return None

    exercises = []
    for position, raw in enumerate(raw_exercises):
        exercise = _clean_exercise(raw)
        if exercise is None:
            diagnostics.append(f"{label}: dropped malformed exercise entry #{position + 1}")
            continue
        if exercise_map is not None and exercise["exerciseId"] not in exercise_map:
            diagnostics.append(f"{label}: dropped unknown exerciseId {exercise['exerciseId']}")
            continue
        exercises.append(exercise)

    muscle_groups = workout.get("muscleGroups")
    if not isinstance(muscle_groups, list):
        muscle_groups = []

    payload = {
        "exercises": exercises,
        "muscleGroups": [str(group) for group in muscle_groups if group],
    }
    explanation = workout.get("explanation")
    if isinstance(explanation, str) and explanation.strip():
        payload["explanation"] = explanation.strip()
    return payload


def parse_workout(raw_text, exercise_map=None, diagnostics=None):
    """Parse a single-workout response into a CandidatePayload, or None."""
    parsed = decode_json_object(raw_text)
    if parsed is None:
        return None
    return validate_workout(parsed, exercise_map, diagnostics)


def parse_bundle(raw_text, expected_count, exercise_map=None):
    """
    Parse a multi-workout response.

    Returns ``{"workouts": [...], "diagnostics": [...]}`` only when every
    workout is structurally valid and there are exactly ``expected_count`` of
    them. Partial bundles are rejected.
    """
    parsed = decode_json_object(raw_text)
    if parsed is None:
        return None

    raw_workouts = parsed.get("workouts")
    if not isinstance(raw_workouts, list):
        return None

    if len(raw_workouts) != expected_count:
        print(
            f"  Bundle returned {len(raw_workouts)} workouts, expected {expected_count}."
        )
        return None

    diagnostics = []
    workouts = []
    for index, raw in enumerate(raw_workouts):
        workout = validate_workout(
            raw,
            exercise_map,
            diagnostics,
            label=f"workout {index + 1}",
        )
        if workout is None:
            print(f"  Bundle workout {index + 1} is malformed.")
            return None
        workouts.append(workout)

    return {"workouts": workouts, "diagnostics": diagnostics}


def parse_muscle_selection(raw_text, expected_count, muscle_ids=None):
    """
    Parse a muscle-selection response: ``{"workoutMuscles": [[id, ...], ...]}``.

    Unknown muscle ids are dropped. Returns one id list per workout, or None
    when the structure is wrong, the count differs, or a workout ends up with
    no usable muscle.
    """
    parsed = decode_json_object(raw_text)
    if parsed is None:
        return None

    workout_muscles = parsed.get("workoutMuscles")
    if not isinstance(workout_muscles, list) or len(workout_muscles) != expected_count:
        return None

    known = set(muscle_ids) if muscle_ids is not None else None
    selections = []
    for entry in workout_muscles:
        if not isinstance(entry, list):
            return None
        chosen = []
        for muscle_id in entry:
            if not isinstance(muscle_id, str) or not muscle_id:
                continue
            if known is not None and muscle_id not in known:
                continue
            if muscle_id not in chosen:
                chosen.append(muscle_id)
        if not chosen:
            return None
        selections.append(chosen)
    return selections
