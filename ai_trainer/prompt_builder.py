"""
Prompt construction for the muscle selection and bundle generation calls.
"""

import json


SYSTEM_PROMPT = """You are a professional AI fitness coach who builds personalized workouts.

## RULES:
1. Only use exercises from the provided list - never invent new exercises.
2. Do not repeat exercises done yesterday (their IDs are provided).
3. Match the number of exercises to the requested workout duration.
4. If specific muscles were assigned to a workout, focus on them.
5. Balance compound (multi-joint) and isolation exercises.
6. Start with a warm-up (one cardio exercise) when a warm-up is requested.
7. Add a short explanation (2-3 sentences) for every workout.
8. Return JSON only.

## WEIGHT RECOMMENDATION RULES (critical):
- Base the recommendation on the user's last performance (given as exerciseHistory).
- With history for an exercise: stay close to what the user did (within 5%).
  - Did 64kg x 8 successfully -> recommend 64-67kg
  - Did 22.5kg x 10 successfully -> recommend 22.5-25kg
- Never recommend more than 10% below what the user did.
- Never recommend more than 5% above what the user did.
- Without history for an exercise: recommend a conservative weight for an average trainee.
- Bodyweight and warm-up exercises: weight = 0
- Add a short reasoning explaining the chosen weight.

## RESPONSE FORMAT (JSON only):
{
  "workouts": [
    {
      "exercises": [
        {
          "exerciseId": "string (ID from the exercise list)",
          "isWarmup": boolean,
          "targetSets": number (1 for warm-up, 3-4 for a regular exercise),
          "targetReps": "string (rep range, e.g. '8-12')",
          "aiNotes": "string (optional short tip)",
          "recommendation": {
            "weight": number (kg, based on the user's history),
            "repRange": "string (e.g. '8-10')",
            "sets": number,
            "reasoning": "string (why this weight)"
          }
        }
      ],
      "muscleGroups": ["string (muscle ids)"],
      "explanation": "string (2-3 sentences)"
    }
  ]
}

## EXERCISES PER DURATION:
- 30 minutes: 6 strength exercises + 1 warm-up = 7 total
- 45 minutes: 8 strength exercises + 1 warm-up = 9 total
- 60 minutes: 9 strength exercises + 1 warm-up = 10 total
- 90 minutes: 11 strength exercises + 1 warm-up = 12 total"""


MUSCLE_SELECTION_SYSTEM_PROMPT = """You are an AI fitness coach choosing muscle groups for upcoming workouts.
Based on the trainee's workout history, choose 2-3 muscle groups for each workout.
Rotate between different muscle groups to allow recovery.
Return JSON only."""


def _compact(value):
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def display_name(entry):
    return entry.get("name") or entry.get("nameHe") or entry.get("id")


def muscle_names(muscle_ids, muscles):
    lookup = {m.get("id"): display_name(m) for m in muscles}
    return ", ".join(lookup.get(muscle_id, muscle_id) for muscle_id in muscle_ids)


def format_muscle_list(muscles):
    return _compact([{"id": m.get("id"), "name": display_name(m)} for m in muscles])


def format_exercise_list(exercises):
    return _compact(
        [
            {"id": ex.get("id"), "name": display_name(ex), "muscle": ex.get("primaryMuscle")}
            for ex in exercises
        ]
    )


def format_exercise_history(exercise_history):
    """Per-exercise last performance, used to ground weight recommendations."""
    if not exercise_history:
        return (
            "**EXERCISE PERFORMANCE HISTORY:** none - this is a new user, "
            "recommend conservative weights\n"
        )

    history = [
        {
            "id": entry.get("exerciseId"),
            "lastWeight": entry.get("lastWeight"),
            "lastReps": entry.get("lastReps"),
            "date": entry.get("lastDate"),
        }
        for entry in exercise_history
        if isinstance(entry, dict)
    ]
    return f"""**EXERCISE PERFORMANCE HISTORY (base recommendations on this):**
{_compact(history)}

Every exercise listed above must get a recommendation based on its last weight X:
- recommend between X*0.9 and X*1.05
- never differ by more than 10% from what the user did
"""


def build_muscle_selection_prompt(request, recent_limit=5):
    return f"""Based on the workout history, which muscles should be trained?

**Number of workouts to plan:** {request.num_workouts}

**Available muscles:**
{format_muscle_list(request.muscles)}

**Workout history (last {recent_limit}):**
{_compact(list(request.recent_workouts[:recent_limit]))}

**Response format (JSON only):**
{{
  "workoutMuscles": [
    ["muscleId1", "muscleId2"],
    ["muscleId3", "muscleId4"]
  ]
}}

Choose 2-3 muscles per workout, one list per workout ({request.num_workouts} lists).
Avoid giving consecutive workouts the same muscles.
Return JSON only."""


def _muscle_description(request, muscle_assignments):
    if muscle_assignments:
        return "muscles chosen per workout (see below)"
    if request.muscle_selection_mode == "same" and request.muscle_targets:
        return f"same muscles for every workout: {muscle_names(request.muscle_targets, request.muscles)}"
    if request.muscle_selection_mode == "manual" and request.per_workout_muscles:
        return "manual muscles per workout (see below)"
    return "choose 2-3 varied muscle groups per workout"


def _per_workout_section(request, muscle_assignments):
    assignments = muscle_assignments
    if not assignments and request.muscle_selection_mode == "manual":
        assignments = request.per_workout_muscles
    if not assignments:
        return ""

    lines = [
        f"Workout {index + 1}: {muscle_names(muscle_ids, request.muscles)}"
        for index, muscle_ids in enumerate(assignments[: request.num_workouts])
    ]
    return "\n**Muscles per workout:**\n" + "\n".join(lines) + "\n"


def build_bundle_prompt(request, exercises, exercise_count, muscle_assignments=None, recent_limit=5):
    """
    Build the user prompt asking for all ``request.num_workouts`` workouts at once.
    """
    warmup_count = 1 if request.wants_warmup else 0
    warmup_line = (
        f"{request.warmup_minutes} minutes (one cardio exercise)"
        if request.wants_warmup
        else "none"
    )

    return f"""Create {request.num_workouts} workouts with the following details:

**User request:**
- Number of workouts: {request.num_workouts}
- Duration of each workout: {request.duration_minutes} minutes
- Warm-up: {warmup_line}
- Muscle groups: {_muscle_description(request, muscle_assignments)}
- Required exercises: {exercise_count} strength + {warmup_count} warm-up = {exercise_count + warmup_count} total
{_per_workout_section(request, muscle_assignments)}
**Available exercises:**
{format_exercise_list(exercises)}

**Available muscles:**
{format_muscle_list(request.muscles)}

**Exercises to exclude (done yesterday):**
{_compact(sorted(request.yesterday_exercise_ids))}

**Workout history (last {recent_limit}):**
{_compact(list(request.recent_workouts[:recent_limit]))}

{format_exercise_history(request.exercise_history)}
IMPORTANT:
- Return exactly {request.num_workouts} workouts in the "workouts" array.
- Add a recommendation (weight, repRange, sets, reasoning) to every exercise.
- Add a short explanation (2-3 sentences) to every workout.
- Return JSON only."""
