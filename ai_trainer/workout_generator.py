"""
AI-powered workout generation with a deterministic fallback.
"""

import random
from datetime import datetime

from ai_trainer.bundle_generation import generate_bundle
from ai_trainer.config import DEFAULT_CONFIG, provider_settings
from ai_trainer.exercise_filter import filter_exercises_by_muscles
from ai_trainer.fallback_generator import generate_fallback_bundle
from ai_trainer.llm_client import get_llm_client
from ai_trainer.muscle_selection import select_workout_muscles, union_of
from ai_trainer.quota import QuotaGate, SQLiteQuotaStore
from ai_trainer.request import GenerationError, GenerationRequest
from ai_trainer.result_assembler import assemble_workouts


QUOTA_EXCEEDED_MESSAGE = "Daily AI workout limit reached. Try again tomorrow."


class WorkoutGenerator:
    """Runs the staged LM pipeline for one request at a time."""

    def __init__(self, config=None, quota_gate=None, client=None, provider=None, rng=None, clock=None):
        """
        Initialize the workout generator.

        Args:
            config: Configuration dictionary (see config.yaml)
            quota_gate: QuotaGate instance (defaults to a SQLite-backed gate)
            client: LM client; defaults to the process-wide client for the
                configured provider. Pass ``False`` to disable the LM.
            provider: Override for ``config['provider']``
            rng: random.Random for the fallback generator
            clock: Callable returning the current local datetime
        """
        self.config = config or DEFAULT_CONFIG
        self.provider, self.provider_settings = provider_settings(self.config, provider)
        self.clock = clock or datetime.now
        self.rng = rng or random.Random()
        self._client = client

        if quota_gate is None:
            quota_config = self.config.get("quota", {}) or {}
            quota_gate = QuotaGate(
                SQLiteQuotaStore(quota_config.get("db_path", ":memory:")),
                daily_limit=quota_config.get("daily_limit", 10),
                clock=self.clock,
            )
        self.quota_gate = quota_gate

        generation = self.config.get("generation", {}) or {}
        self.recent_limit = generation.get("recent_workouts_limit", 5)
        self.use_muscle_selection = generation.get("muscle_selection", True)

    def _llm_client(self):
        """The LM client, or None when it cannot be constructed."""
        if self._client is False:
            return None
        if self._client is not None:
            return self._client
        try:
            return get_llm_client(self.config, self.provider)
        except Exception as exc:
            print(f"  LM client unavailable ({exc}), using fallback generation.")
            return None

    def generate(self, payload, auth_user_id):
        """
        Generate a bundle of workouts for an authenticated user.

        Args:
            payload: Inbound wire dict (``request``, ``availableExercises``,
                ``muscles``, ``recentWorkouts``, ``yesterdayExerciseIds``,
                optional ``exerciseHistory``).
            auth_user_id: Identity of the authenticated caller.

        Returns:
            Response dict: ``success``, ``workouts``, ``usedFallback``,
            optional ``error`` and ``rateLimitInfo``.

        Raises:
            GenerationError: invalid or unauthorized request, or an
                unexpected failure before the usage counter was touched.
        """
        request = GenerationRequest.from_payload(payload, auth_user_id)
        print(f"\n🤖 Generating {request.num_workouts} AI workouts for {request.user_id}...")

        rate_limit = self.quota_gate.check(request.user_id)
        if not rate_limit.allowed:
            return {
                "success": False,
                "workouts": [],
                "usedFallback": False,
                "error": QUOTA_EXCEEDED_MESSAGE,
                "rateLimitInfo": {
                    "remaining": 0,
                    "resetAt": rate_limit.reset_at.isoformat(),
                },
            }

        try:
            workouts, used_fallback = self._run_pipeline(request)
        except GenerationError:
            raise
        except Exception as exc:
            print(f"Error generating workouts: {exc}")
            raise GenerationError("Workout generation failed. Please try again.") from exc

        self.quota_gate.increment(request.user_id)

        print(
            f"✓ Generated {len(workouts)} workouts "
            f"({'fallback' if used_fallback else self.provider}).\n"
        )
        return {
            "success": True,
            "workouts": workouts,
            "usedFallback": used_fallback,
            "rateLimitInfo": {
                "remaining": max(rate_limit.remaining - 1, 0),
                "resetAt": rate_limit.reset_at.isoformat(),
            },
        }

    def _run_pipeline(self, request):
        exercise_map = {ex["id"]: ex for ex in request.available_exercises}
        client = self._llm_client()

        muscle_assignments = None
        target_muscles = request.requested_muscle_ids()
        if client is not None and self.use_muscle_selection and request.needs_muscle_selection:
            muscle_assignments = select_workout_muscles(
                client,
                request,
                max_output_tokens=self.provider_settings.get("selection_max_tokens", 512),
                recent_limit=self.recent_limit,
            )
            if muscle_assignments:
                target_muscles = union_of(muscle_assignments)

        candidates = filter_exercises_by_muscles(request.available_exercises, target_muscles)

        bundle = generate_bundle(
            client,
            request,
            candidates,
            exercise_map,
            muscle_assignments=muscle_assignments,
            max_output_tokens=self.provider_settings.get("max_tokens", 4096),
            recent_limit=self.recent_limit,
        )

        now = self.clock()
        if bundle is not None:
            payloads = bundle["workouts"]
            used_fallback = False
        else:
            payloads = generate_fallback_bundle(request, self.rng)
            used_fallback = True

        workouts = assemble_workouts(payloads, exercise_map, request.duration_minutes, now)
        return workouts, used_fallback
