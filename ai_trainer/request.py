"""
Inbound generation request model and validation.
"""

from dataclasses import dataclass, field

from ai_trainer.exercise_filter import is_cardio_exercise


VALID_DURATIONS = (30, 45, 60, 90)
MIN_WORKOUTS = 1
MAX_WORKOUTS = 6
MUSCLE_SELECTION_MODES = ("same", "manual", "ai_rotate")
DEFAULT_MUSCLE_SELECTION_MODE = "ai_rotate"


class GenerationError(Exception):
    """Base error for a generation call that cannot produce workouts."""

    code = "internal"

    def __init__(self, message, code=None):
        super().__init__(message)
        if code:
            self.code = code


class AuthenticationError(GenerationError):
    code = "unauthenticated"


class PermissionDeniedError(GenerationError):
    code = "permission-denied"


class RequestValidationError(GenerationError):
    code = "invalid-argument"


@dataclass(frozen=True)
class GenerationRequest:
    """Immutable view of one generation call."""

    user_id: str
    num_workouts: int
    duration_minutes: int
    warmup_minutes: int = 0
    muscle_selection_mode: str = DEFAULT_MUSCLE_SELECTION_MODE
    muscle_targets: tuple = ()
    per_workout_muscles: tuple = ()
    available_exercises: tuple = ()
    muscles: tuple = ()
    recent_workouts: tuple = ()
    yesterday_exercise_ids: frozenset = field(default_factory=frozenset)
    exercise_history: tuple = ()

    @property
    def wants_warmup(self):
        return self.warmup_minutes > 0

    @property
    def needs_muscle_selection(self):
        """True when the LM is expected to pick the muscles for each workout."""
        if self.muscle_selection_mode == "ai_rotate":
            return True
        return self.muscle_selection_mode == "same" and not self.muscle_targets

    def requested_muscle_ids(self):
        """
        Muscle ids the user asked for, or an empty list when the choice is
        left to the LM (or to the fallback rotation).
        """
        if self.muscle_selection_mode == "manual":
            seen = []
            for muscle_ids in self.per_workout_muscles:
                for muscle_id in muscle_ids:
                    if muscle_id not in seen:
                        seen.append(muscle_id)
            return seen
        if self.muscle_selection_mode == "same":
            return list(self.muscle_targets)
        return []

    @classmethod
    def from_payload(cls, data, auth_user_id):
        """
        Validate an inbound wire payload and build a request.

        Args:
            data: Dict with a ``request`` block plus ``availableExercises``,
                ``muscles``, ``recentWorkouts``, ``yesterdayExerciseIds`` and
                optional ``exerciseHistory``.
            auth_user_id: Identity of the authenticated caller.

        Raises:
            AuthenticationError, PermissionDeniedError, RequestValidationError
        """
        if not auth_user_id:
            raise AuthenticationError("Sign in to generate a workout")

        if not isinstance(data, dict) or not isinstance(data.get("request"), dict):
            raise RequestValidationError("Missing request data")

        request = data["request"]

        user_id = request.get("userId")
        if not user_id:
            raise RequestValidationError("Missing userId")
        if user_id != auth_user_id:
            raise PermissionDeniedError("User ID mismatch")

        duration = _as_int(request.get("duration", request.get("durationMinutes")))
        if duration not in VALID_DURATIONS:
            raise RequestValidationError("Invalid duration")

        num_workouts = _as_int(request.get("numWorkouts"))
        if num_workouts is None or not MIN_WORKOUTS <= num_workouts <= MAX_WORKOUTS:
            raise RequestValidationError("Invalid numWorkouts")

        warmup = _as_int(request.get("warmupDuration", request.get("warmupMinutes", 0)))
        if warmup is None or warmup < 0:
            raise RequestValidationError("Invalid warmupDuration")

        mode = request.get("muscleSelectionMode") or DEFAULT_MUSCLE_SELECTION_MODE
        if mode not in MUSCLE_SELECTION_MODES:
            raise RequestValidationError(f"Invalid muscleSelectionMode: {mode}")

        muscle_targets = _as_id_tuple(request.get("muscleTargets"), "muscleTargets")

        per_workout = request.get("perWorkoutMuscles") or []
        if not isinstance(per_workout, list):
            raise RequestValidationError("perWorkoutMuscles must be a list")
        per_workout_muscles = tuple(
            _as_id_tuple(entry, "perWorkoutMuscles") for entry in per_workout
        )
        if mode == "manual":
            if len(per_workout_muscles) < num_workouts:
                raise RequestValidationError(
                    "perWorkoutMuscles needs an entry for every workout in manual mode"
                )
            if any(not entry for entry in per_workout_muscles[:num_workouts]):
                raise RequestValidationError("perWorkoutMuscles entries cannot be empty")

        exercises = data.get("availableExercises")
        if not isinstance(exercises, list) or not exercises:
            raise RequestValidationError("Missing exercises")
        for exercise in exercises:
            if not isinstance(exercise, dict) or not _is_id(exercise.get("id")):
                raise RequestValidationError("Every exercise needs a string id")

        yesterday_ids = frozenset(
            str(ex_id) for ex_id in _as_list(data.get("yesterdayExerciseIds"))
        )
        if not any(
            not is_cardio_exercise(ex) and ex["id"] not in yesterday_ids for ex in exercises
        ):
            raise RequestValidationError(
                "No strength exercises available outside yesterday's workout"
            )

        muscles = data.get("muscles")
        if not isinstance(muscles, list) or not muscles:
            raise RequestValidationError("Missing muscles")
        for muscle in muscles:
            if not isinstance(muscle, dict) or not _is_id(muscle.get("id")):
                raise RequestValidationError("Every muscle needs a string id")

        return cls(
            user_id=user_id,
            num_workouts=num_workouts,
            duration_minutes=duration,
            warmup_minutes=warmup,
            muscle_selection_mode=mode,
            muscle_targets=muscle_targets,
            per_workout_muscles=per_workout_muscles,
            available_exercises=tuple(exercises),
            muscles=tuple(muscles),
            recent_workouts=tuple(_as_list(data.get("recentWorkouts"))),
            yesterday_exercise_ids=yesterday_ids,
            exercise_history=tuple(_as_list(data.get("exerciseHistory"))),
        )


def _as_int(value):
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and not value.is_integer():
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _as_list(value):
    return value if isinstance(value, list) else []


def _as_id_tuple(value, field_name):
    if value is None:
        return ()
    if not isinstance(value, list):
        raise RequestValidationError(f"{field_name} must be a list of muscle ids")
    return tuple(str(item) for item in value if item)


def _is_id(value):
    return isinstance(value, str) and bool(value)
