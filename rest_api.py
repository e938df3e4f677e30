from dataclasses import asdict
from typing import List, Optional

from fastapi import FastAPI, HTTPException, APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from config import APP_VERSION
from db import (
    AsyncRecordRepository,
    WorkoutRepository,
    ExerciseCatalogRepository,
    RecordRepository,
    BodyWeightRepository,
)
from logging_setup import configure_logging
from models import ExerciseEntry
from records_service import AggregationReport, RecordAggregator
from settings_schema import load_settings
from stats_service import StatisticsService
from workout_service import WorkoutService


class SetPayload(BaseModel):
    weight: float = Field(0.0, ge=0)
    reps: int = Field(0, ge=0)
    unit: str = "kg"
    distance: Optional[float] = None
    time: Optional[str] = None
    rpe: Optional[float] = None


class ExercisePayload(BaseModel):
    name: str
    sets: List[SetPayload] = []
    unilateral: bool = False
    type: Optional[str] = None
    category: Optional[str] = None

    def to_entry(self) -> ExerciseEntry:
        return ExerciseEntry.from_dict(self.model_dump())


class WorkoutPayload(BaseModel):
    date: str
    exercises: List[ExercisePayload]
    notes: Optional[str] = None
    user_weight: Optional[float] = Field(None, gt=0)
    source: str = "web"


class BodyWeightPayload(BaseModel):
    weight: float = Field(..., gt=0)
    date: Optional[str] = None


class AliasPayload(BaseModel):
    alias: str
    exercise_id: str


class ArenaPayload(BaseModel):
    users: List[str] = Field(..., min_length=1)


def _report_response(report: AggregationReport) -> JSONResponse:
    status = 200 if report.ok else 500
    return JSONResponse(status_code=status, content=report.to_dict())


class RecordsAPI:
    """Provides REST endpoints for workout logging and personal records."""

    def __init__(
        self,
        db_path: Optional[str] = None,
        yaml_path: Optional[str] = None,
        *,
        setup_logging: bool = False,
    ) -> None:
        self.settings = load_settings(yaml_path)
        if setup_logging:
            configure_logging(self.settings.log_format, self.settings.log_level)
        self.db_path = db_path or self.settings.db_path
        self.workouts = WorkoutRepository(self.db_path)
        self.catalog = ExerciseCatalogRepository(self.db_path)
        self.records = RecordRepository(self.db_path)
        self.async_records = AsyncRecordRepository(self.db_path)
        self.body_weights = BodyWeightRepository(self.db_path)
        self.aggregator = RecordAggregator(
            self.records,
            self.catalog,
            self.workouts,
            settings=self.settings,
        )
        self.workout_service = WorkoutService(
            self.workouts,
            self.aggregator,
            self.body_weights,
            settings=self.settings,
        )
        self.statistics = StatisticsService(self.records, self.catalog)
        self.app = FastAPI(
            title="Personal Records API",
            description="REST API for workout logging and personal records",
            version=APP_VERSION,
        )
        self._setup_routes()

    def _setup_routes(self) -> None:
        users_router = APIRouter(prefix="/users/{user_id}", tags=["Users"])
        workouts_router = APIRouter(prefix="/workouts", tags=["Workouts"])
        catalog_router = APIRouter(prefix="/catalog", tags=["Catalog"])

        @self.app.get(
            "/health",
            summary="Health check",
            description="Verify API and database connectivity.",
        )
        def health():
            """Return API and database connection status."""
            try:
                self.workouts.list_users()
                return {"status": "ok", "version": APP_VERSION}
            except Exception as e:  # pragma: no cover - connectivity failure
                raise HTTPException(status_code=500, detail=str(e))

        @users_router.post("/workouts")
        def log_workout(user_id: str, payload: WorkoutPayload):
            try:
                report = self.workout_service.log_workout(
                    user_id,
                    payload.date,
                    [e.to_entry() for e in payload.exercises],
                    notes=payload.notes,
                    user_weight=payload.user_weight,
                    source=payload.source,
                )
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return _report_response(report)

        @users_router.get("/workouts")
        def list_workouts(user_id: str):
            return [w.to_dict() for w in self.workout_service.list_workouts(user_id)]

        @users_router.get("/records")
        async def list_records(user_id: str):
            records = await self.async_records.fetch_for_user(user_id)
            return [r.to_dict() for r in records]

        @users_router.get("/records/{exercise_id}")
        async def get_record(user_id: str, exercise_id: str):
            record = await self.async_records.find_one(user_id, exercise_id.strip())
            if record is None:
                raise HTTPException(status_code=404, detail="record not found")
            return record.to_dict()

        @users_router.post("/records/recalculate")
        def recalculate(user_id: str):
            return _report_response(self.aggregator.recalculate_user_records(user_id))

        @users_router.get("/volume")
        async def total_volume(user_id: str):
            volume = await self.async_records.total_volume(user_id)
            return {"user_id": user_id, "total_volume": volume}

        @users_router.get("/max_comparison")
        def max_comparison(user_id: str, month: str):
            return self.statistics.max_comparison(user_id, month)

        @users_router.post("/body_weight")
        def log_body_weight(user_id: str, payload: BodyWeightPayload):
            try:
                entry_id = self.workout_service.log_body_weight(
                    user_id, payload.weight, payload.date
                )
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"id": entry_id}

        @users_router.get("/body_weight")
        def body_weight_history(user_id: str):
            return [
                {"id": rid, "date": d, "weight": w}
                for rid, d, w in self.body_weights.fetch_history(user_id)
            ]

        @workouts_router.put("/{workout_id}/exercises/{index}")
        def update_exercise(workout_id: int, index: int, payload: ExercisePayload):
            if not payload.name.strip():
                raise HTTPException(status_code=400, detail="exercise name required")
            try:
                report = self.workout_service.update_exercise(
                    workout_id, index, payload.to_entry()
                )
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            return _report_response(report)

        @workouts_router.delete("/{workout_id}/exercises/{index}")
        def delete_exercise(workout_id: int, index: int):
            try:
                report = self.workout_service.delete_exercise(workout_id, index)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            return _report_response(report)

        @workouts_router.delete("/{workout_id}")
        def delete_workout(workout_id: int):
            try:
                report = self.workout_service.delete_workout(workout_id)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            return _report_response(report)

        @catalog_router.get("")
        def list_catalog():
            return [asdict(e) for e in self.catalog.list_entries()]

        @catalog_router.get("/resolve")
        def resolve(name: str):
            canonical = self.catalog.resolve_canonical_id(
                name, self.settings.catalog_match_cutoff
            )
            entry = self.catalog.lookup(canonical)
            return {
                "name": name,
                "canonical_id": canonical,
                "known": entry is not None,
            }

        @catalog_router.get("/search")
        def search(query: str, limit: int = 5):
            return self.catalog.search(query, limit)

        @catalog_router.post("/aliases")
        def add_alias(payload: AliasPayload):
            try:
                self.catalog.add_alias(payload.alias, payload.exercise_id)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"status": "added"}

        @self.app.post("/arena", tags=["Arena"])
        def arena(payload: ArenaPayload):
            return self.statistics.arena(payload.users)

        self.app.include_router(users_router)
        self.app.include_router(workouts_router)
        self.app.include_router(catalog_router)


def create_app(db_path: Optional[str] = None, yaml_path: Optional[str] = None) -> FastAPI:
    return RecordsAPI(db_path, yaml_path, setup_logging=True).app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app())
