import logging
import os
import secrets
import time
from typing import List, Optional

from fastapi import (
    FastAPI,
    HTTPException,
    Response,
    Body,
    APIRouter,
    Request,
    Header,
    Depends,
)

from coach_tools import CoachToolExecutor
from config import APP_VERSION, YamlConfig
from db import (
    APIKeyRepository,
    AsyncWorkoutRepository,
    ExerciseCatalogRepository,
    GenerationLogRepository,
    UserRepository,
    WorkoutExerciseRepository,
    WorkoutRepository,
)
from errors import InsufficientExercisesError, ValidationError
from generator_service import ProgramGeneratorService
from models import CatalogFilter
from schemas import (
    RegenerateConstraints,
    WorkoutExerciseIn,
    WorkoutExerciseUpdate,
    WorkoutIn,
    WorkoutUpdate,
)

logger = logging.getLogger(__name__)


class RateLimiter:
    """Simple in-memory rate limiter."""

    def __init__(self, limit: int = 60, window: int = 60) -> None:
        self.limit = limit
        self.window = window
        self.requests: dict[str, list[float]] = {}

    async def __call__(self, request: Request, call_next):
        ip = request.client.host if request.client else "anon"
        now = time.time()
        history = [t for t in self.requests.get(ip, []) if now - t < self.window]
        if len(history) >= self.limit:
            return Response("rate limit exceeded", status_code=429)
        history.append(now)
        self.requests[ip] = history
        return await call_next(request)


def _generation_error(e: Exception) -> HTTPException:
    if isinstance(e, InsufficientExercisesError):
        return HTTPException(status_code=422, detail=e.to_dict())
    if isinstance(e, ValidationError):
        return HTTPException(status_code=400, detail=str(e))
    if "not found" in str(e):
        return HTTPException(status_code=404, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


class FitnessAPI:
    """Provides REST endpoints for program generation and editing."""

    def __init__(
        self,
        db_path: str = "workout.db",
        yaml_path: str = "settings.yaml",
        *,
        rate_limit: int | None = None,
        rate_window: int | None = None,
    ) -> None:
        self.db_path = db_path
        self.config = YamlConfig(yaml_path)
        self.settings = self.config.settings()
        self.users = UserRepository(db_path)
        self.api_keys = APIKeyRepository(db_path)
        self.exercise_catalog = ExerciseCatalogRepository(db_path)
        self.workouts = WorkoutRepository(db_path)
        self.async_workouts = AsyncWorkoutRepository(db_path)
        self.workout_exercises = WorkoutExerciseRepository(db_path)
        self.generation_logs = GenerationLogRepository(db_path)
        self.generator = ProgramGeneratorService(
            self.exercise_catalog,
            self.workouts,
            self.users,
            log_repo=self.generation_logs,
            settings=self.settings,
        )
        self.coach = CoachToolExecutor(
            self.generator,
            self.exercise_catalog,
            self.workouts,
            self.workout_exercises,
        )
        self.app = FastAPI(
            title="Workout Planner API",
            description="REST API for generating and editing training programs",
            version=APP_VERSION,
        )
        limit = rate_limit if rate_limit is not None else self.settings.rate_limit
        if limit is not None:
            window = rate_window if rate_window is not None else self.settings.rate_window
            limiter = RateLimiter(limit=limit, window=window)
            self.app.middleware("http")(limiter)
        self._setup_routes()

    def current_user(self, x_api_key: Optional[str] = Header(default=None)) -> int:
        if not x_api_key:
            raise HTTPException(status_code=401, detail="missing API key")
        user_id = self.api_keys.user_for_key(x_api_key)
        if user_id is None:
            raise HTTPException(status_code=401, detail="invalid API key")
        return user_id

    def _owned_workout(self, workout_id: int, user_id: int) -> dict:
        try:
            workout = self.workouts.fetch_detail(workout_id)
        except ValueError as e:
            raise HTTPException(status_code=404, detail=str(e))
        if workout["user_id"] != user_id:
            raise HTTPException(status_code=403, detail="not your workout")
        return workout

    def _owned_exercise(self, workout_id: int, exercise_id: int, user_id: int) -> dict:
        self._owned_workout(workout_id, user_id)
        try:
            entry = self.workout_exercises.fetch_detail(exercise_id)
        except ValueError as e:
            raise HTTPException(status_code=404, detail=str(e))
        if entry["workout_id"] != workout_id:
            raise HTTPException(status_code=404, detail="exercise not found")
        return entry

    def _setup_routes(self) -> None:
        users_router = APIRouter(prefix="/api/users", tags=["Users"])
        workouts_router = APIRouter(prefix="/api/workouts", tags=["Workouts"])
        exercises_router = APIRouter(prefix="/api/exercises", tags=["Exercises"])
        coach_router = APIRouter(prefix="/api/coach", tags=["Coach"])
        current_user = self.current_user

        @self.app.get(
            "/health",
            summary="Health check",
            description="Verify API and database connectivity.",
        )
        def health():
            """Return API and database connection status."""
            try:
                count = len(self.exercise_catalog.fetch_records())
                return {"status": "ok", "version": APP_VERSION, "exercises": count}
            except Exception as e:  # pragma: no cover - connectivity failure
                raise HTTPException(status_code=500, detail=str(e))

        @users_router.post("")
        def create_user(
            username: str, x_admin_key: Optional[str] = Header(default=None)
        ):
            admin_key = self.settings.admin_api_key
            if admin_key and x_admin_key != admin_key:
                raise HTTPException(status_code=403, detail="admin key required")
            try:
                uid = self.users.create(username)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            key = secrets.token_hex(16)
            self.api_keys.add(uid, key)
            return {"id": uid, "api_key": key}

        @users_router.get("/me")
        def get_me(user_id: int = Depends(current_user)):
            detail = self.users.fetch_detail(user_id)
            prefs = detail["preferences"]
            detail["preferences"] = prefs.model_dump() if prefs else None
            return detail

        @users_router.put("/me/preferences")
        def set_preferences(
            data: dict = Body(...), user_id: int = Depends(current_user)
        ):
            try:
                prefs = self.generator.preferences_from(data)
                workouts = self.generator.generate_for_user(
                    user_id, prefs, store_preferences=True
                )
            except (ValidationError, InsufficientExercisesError, ValueError) as e:
                raise _generation_error(e)
            return {"message": f"Created {len(workouts)} workouts", "workouts": workouts}

        @workouts_router.post("/generate", status_code=201)
        def generate_program(user_id: int = Depends(current_user)):
            try:
                workouts = self.generator.generate_for_user(user_id)
            except (ValidationError, InsufficientExercisesError, ValueError) as e:
                raise _generation_error(e)
            return {"message": f"Created {len(workouts)} workouts", "workouts": workouts}

        @workouts_router.post("/regenerate", status_code=201)
        def regenerate_program(
            constraints: RegenerateConstraints,
            user_id: int = Depends(current_user),
        ):
            try:
                return self.generator.regenerate_with_constraints(user_id, constraints)
            except (ValidationError, InsufficientExercisesError, ValueError) as e:
                raise _generation_error(e)

        @workouts_router.post("/restore")
        def restore_program(user_id: int = Depends(current_user)):
            try:
                workouts = self.generator.restore_program(user_id)
            except ValueError as e:
                status = 404 if "no archived" in str(e) else 409
                raise HTTPException(status_code=status, detail=str(e))
            return {"message": f"Restored {len(workouts)} workouts", "workouts": workouts}

        @workouts_router.get("")
        async def list_workouts(
            include_inactive: bool = False, user_id: int = Depends(current_user)
        ):
            return await self.async_workouts.fetch_program(user_id, include_inactive)

        @workouts_router.post("")
        def create_workout(workout: WorkoutIn, user_id: int = Depends(current_user)):
            try:
                wid = self.workouts.create(
                    user_id,
                    workout.name,
                    workout.type,
                    workout.day_of_week,
                    workout.estimated_duration_min,
                    workout.target_muscles,
                    workout.is_active,
                )
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"id": wid}

        @workouts_router.delete("/all")
        def reset_program(user_id: int = Depends(current_user)):
            deleted = self.workouts.delete_for_user(user_id)
            self.users.set_onboarding_completed(user_id, False)
            return {"status": "deleted", "deleted": deleted}

        @workouts_router.get("/{workout_id}")
        def get_workout(workout_id: int, user_id: int = Depends(current_user)):
            workout = self._owned_workout(workout_id, user_id)
            workout["exercises"] = self.workout_exercises.fetch_for_workout(workout_id)
            return workout

        @workouts_router.put("/{workout_id}")
        def update_workout(
            workout_id: int,
            update: WorkoutUpdate,
            user_id: int = Depends(current_user),
        ):
            self._owned_workout(workout_id, user_id)
            try:
                self.workouts.update(workout_id, **update.model_dump(exclude_none=True))
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"status": "updated"}

        @workouts_router.delete("/{workout_id}")
        def delete_workout(workout_id: int, user_id: int = Depends(current_user)):
            self._owned_workout(workout_id, user_id)
            self.workouts.delete(workout_id)
            return {"status": "deleted"}

        @workouts_router.post("/{workout_id}/exercises")
        def add_workout_exercise(
            workout_id: int,
            entry: WorkoutExerciseIn,
            user_id: int = Depends(current_user),
        ):
            self._owned_workout(workout_id, user_id)
            try:
                record = self.exercise_catalog.fetch_detail(entry.exercise_id)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            eid = self.workout_exercises.add(
                workout_id,
                record.id,
                entry.exercise_name or record.name,
                entry.target_sets,
                entry.target_reps,
                entry.target_rpe,
                entry.rest_seconds,
                entry.notes,
            )
            return {"id": eid}

        @workouts_router.put("/{workout_id}/exercises/order")
        def reorder_workout_exercises(
            workout_id: int,
            order: List[int] = Body(..., embed=True),
            user_id: int = Depends(current_user),
        ):
            self._owned_workout(workout_id, user_id)
            try:
                self.workout_exercises.reorder(workout_id, order)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"status": "reordered"}

        @workouts_router.put("/{workout_id}/exercises/{exercise_id}")
        def update_workout_exercise(
            workout_id: int,
            exercise_id: int,
            update: WorkoutExerciseUpdate,
            user_id: int = Depends(current_user),
        ):
            self._owned_exercise(workout_id, exercise_id, user_id)
            fields = update.model_dump(exclude_none=True)
            if "exercise_id" in fields and "exercise_name" not in fields:
                try:
                    fields["exercise_name"] = self.exercise_catalog.fetch_detail(
                        fields["exercise_id"]
                    ).name
                except ValueError as e:
                    raise HTTPException(status_code=404, detail=str(e))
            self.workout_exercises.update(exercise_id, **fields)
            return {"status": "updated"}

        @workouts_router.delete("/{workout_id}/exercises/{exercise_id}")
        def delete_workout_exercise(
            workout_id: int,
            exercise_id: int,
            user_id: int = Depends(current_user),
        ):
            self._owned_exercise(workout_id, exercise_id, user_id)
            self.workout_exercises.remove(exercise_id)
            return {"status": "deleted"}

        @exercises_router.get("")
        def list_exercises(
            equipment: str = None,
            max_difficulty: str = None,
            body_part: str = None,
            target: str = None,
            query: str = None,
            limit: int = 50,
        ):
            catalog_filter = CatalogFilter(
                equipment=equipment,
                max_difficulty=max_difficulty,
                body_part=body_part,
                target=target,
                query=query,
            )
            try:
                records = self.exercise_catalog.get_eligible_exercises(catalog_filter)
            except KeyError:
                raise HTTPException(status_code=400, detail="invalid difficulty")
            return [r.to_dict() for r in records[:limit]]

        @exercises_router.get("/{exercise_id}")
        def get_exercise(exercise_id: str):
            try:
                return self.exercise_catalog.fetch_detail(exercise_id).to_dict()
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))

        @coach_router.get("/tools")
        def list_coach_tools():
            return {"tools": self.coach.tool_names}

        @coach_router.post("/tools/{tool_name}")
        def run_coach_tool(
            tool_name: str,
            args: dict = Body(default={}),
            user_id: int = Depends(current_user),
        ):
            return self.coach.execute(tool_name, args, user_id)

        self.app.include_router(users_router)
        self.app.include_router(workouts_router)
        self.app.include_router(exercises_router)
        self.app.include_router(coach_router)


api = FitnessAPI(os.environ.get("DB_PATH", "workout.db"))
app = api.app

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app)
