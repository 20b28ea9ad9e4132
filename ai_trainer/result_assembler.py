"""
Turn CandidatePayloads (LM or fallback) into GeneratedWorkout dicts.
"""

import re


WORKOUT_SOURCE = "ai_trainer"
DEFAULT_TARGET_REPS = 10

REP_RANGE_RE = re.compile(r"(\d+)(?:\s*-\s*(\d+))?")


def parse_target_reps(rep_range):
    """Midpoint of a rep range string: "8-12" -> 10, "5" -> 5."""
    match = REP_RANGE_RE.search(str(rep_range or ""))
    if not match:
        return DEFAULT_TARGET_REPS
    low = int(match.group(1))
    high = int(match.group(2)) if match.group(2) else low
    return int(round((low + high) / 2))


def create_sets(is_warmup, target_sets, target_reps, target_weight=0):
    """Empty set log entries for a prescribed exercise."""
    reps = parse_target_reps(target_reps)
    return [
        {
            "type": "warmup" if is_warmup else "working",
            "targetReps": reps,
            "targetWeight": target_weight,
            "actualReps": 0,
            "actualWeight": 0,
            "completed": False,
        }
        for _ in range(target_sets)
    ]


def workout_name(workout_number, now):
    return f"AI Trainer #{workout_number} ({now.hour}:{now.minute:02d})"


def start_number(now):
    """Sequence base for a bundle: epoch seconds modulo 1000."""
    return int(now.timestamp()) % 1000


def _display_name(exercise):
    return exercise.get("name") or exercise.get("nameHe") or exercise.get("id")


def assemble_exercise(entry, catalog_entry):
    recommendation = entry.get("recommendation")
    is_warmup = bool(entry.get("isWarmup"))

    if recommendation:
        target_sets = recommendation["sets"]
        target_reps = recommendation["repRange"]
        target_weight = recommendation["weight"]
    else:
        target_sets = entry["targetSets"]
        target_reps = entry["targetReps"]
        target_weight = 0

    exercise = {
        "exerciseId": entry["exerciseId"],
        "exerciseName": _display_name(catalog_entry),
        "exerciseNameHe": catalog_entry.get("nameHe") or _display_name(catalog_entry),
        "imageUrl": catalog_entry.get("imageUrl"),
        "category": catalog_entry.get("category"),
        "primaryMuscle": catalog_entry.get("primaryMuscle"),
        "isWarmup": is_warmup,
        "targetSets": target_sets,
        "targetReps": target_reps,
        "sets": create_sets(is_warmup, target_sets, target_reps, target_weight),
    }
    if entry.get("aiNotes"):
        exercise["aiNotes"] = entry["aiNotes"]
    return exercise


def assemble_workout(payload, exercise_map, workout_number, duration_minutes, now):
    """
    Build one GeneratedWorkout from a validated payload.

    Exercise ids missing from ``exercise_map`` are dropped.
    """
    exercises = []
    recommendations = {}
    for entry in payload.get("exercises", []):
        catalog_entry = exercise_map.get(entry.get("exerciseId"))
        if catalog_entry is None:
            print(f"  Dropping unknown exercise {entry.get('exerciseId')} from workout #{workout_number}.")
            continue
        exercises.append(assemble_exercise(entry, catalog_entry))
        if entry.get("recommendation"):
            recommendations[entry["exerciseId"]] = dict(entry["recommendation"])

    workout = {
        "name": workout_name(workout_number, now),
        "exercises": exercises,
        "estimatedDuration": duration_minutes,
        "muscleGroups": list(payload.get("muscleGroups", [])),
        "source": WORKOUT_SOURCE,
        "aiWorkoutNumber": workout_number,
    }
    if payload.get("explanation"):
        workout["aiExplanation"] = payload["explanation"]
    if recommendations:
        workout["aiRecommendations"] = recommendations
    return workout


def assemble_workouts(payloads, exercise_map, duration_minutes, now):
    """Assemble a whole bundle, numbering workouts consecutively."""
    base = start_number(now)
    return [
        assemble_workout(payload, exercise_map, base + index, duration_minutes, now)
        for index, payload in enumerate(payloads)
    ]
