from __future__ import annotations

import datetime
import logging
from dataclasses import replace
from typing import Iterable

from db import BodyWeightRepository, WorkoutRepository
from models import ExerciseEntry, WorkoutEntry
from records_service import AggregationReport, RecordAggregator
from settings_schema import SettingsSchema


class WorkoutService:
    """Log and edit workouts, keeping personal records in step."""

    def __init__(
        self,
        workout_repo: WorkoutRepository,
        aggregator: RecordAggregator,
        body_weight_repo: BodyWeightRepository | None = None,
        settings: SettingsSchema | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.workouts = workout_repo
        self.aggregator = aggregator
        self.body_weights = body_weight_repo
        self.settings = settings or SettingsSchema()
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def _day(date: str) -> str:
        day = (date or "")[:10]
        datetime.date.fromisoformat(day)
        return day

    def _sanitize(self, exercises: Iterable[ExerciseEntry | dict]) -> tuple[ExerciseEntry, ...]:
        """Coerce dicts to entries, trim names and drop nameless exercises."""
        result = []
        for ex in exercises:
            entry = ex if isinstance(ex, ExerciseEntry) else ExerciseEntry.from_dict(ex)
            name = (entry.name or "").strip()
            if not name:
                self.logger.warning("dropping exercise without a name")
                continue
            result.append(replace(entry, name=name))
        return tuple(result)

    def resolve_body_weight(self, user_id: str, user_weight: float | None = None) -> float:
        """Explicit weight, else the latest logged weight, else the default."""
        if user_weight is not None and user_weight > 0:
            return float(user_weight)
        if self.body_weights is not None:
            latest = self.body_weights.fetch_latest_weight(user_id)
            if latest is not None:
                return latest
        return self.settings.default_body_weight

    def log_workout(
        self,
        user_id: str,
        date: str,
        exercises: Iterable[ExerciseEntry | dict],
        notes: str | None = None,
        user_weight: float | None = None,
        source: str = "web",
    ) -> AggregationReport:
        """Store a workout and update the user's records.

        A second workout on the same day is merged into the first: its
        exercises are appended and only they are folded into the records.
        """
        if not user_id:
            raise ValueError("user_id required")
        day = self._day(date)
        entries = self._sanitize(exercises)
        if not entries:
            raise ValueError("workout has no exercises")
        existing = self.workouts.fetch_for_date(user_id, day)
        if existing is not None:
            merged_notes = "\n".join(n for n in (existing.notes, notes) if n) or None
            weight = existing.user_weight
            if weight is None:
                weight = self.resolve_body_weight(user_id, user_weight)
            merged = replace(
                existing,
                exercises=existing.exercises + entries,
                notes=merged_notes,
                user_weight=weight,
            )
            self.workouts.update(merged)
            self.logger.info(
                "merged %d exercises into workout %s",
                len(entries),
                existing.id,
                extra={"prt_user_id": user_id, "prt_workout_id": existing.id},
            )
            return self.aggregator.update_user_records(replace(merged, exercises=entries))

        workout = WorkoutEntry(
            user_id=user_id,
            date=day,
            exercises=entries,
            created_at=datetime.datetime.now(datetime.timezone.utc).isoformat(),
            notes=notes,
            user_weight=self.resolve_body_weight(user_id, user_weight),
            source=source,
        )
        workout_id = self.workouts.insert(workout)
        self.logger.info(
            "logged workout %s",
            workout_id,
            extra={"prt_user_id": user_id, "prt_workout_id": workout_id},
        )
        return self.aggregator.update_user_records(replace(workout, id=workout_id))

    def _fetch(self, workout_id: int) -> WorkoutEntry:
        workout = self.workouts.fetch(workout_id)
        if workout is None:
            raise ValueError("workout not found")
        return workout

    @staticmethod
    def _check_index(workout: WorkoutEntry, index: int) -> None:
        if not 0 <= index < len(workout.exercises):
            raise ValueError("exercise index out of range")

    def update_exercise(
        self, workout_id: int, index: int, exercise: ExerciseEntry | dict
    ) -> AggregationReport:
        workout = self._fetch(workout_id)
        self._check_index(workout, index)
        entries = self._sanitize([exercise])
        if not entries:
            raise ValueError("exercise name required")
        exercises = list(workout.exercises)
        exercises[index] = entries[0]
        self.workouts.update(replace(workout, exercises=tuple(exercises)))
        return self.aggregator.recalculate_user_records(workout.user_id)

    def delete_exercise(self, workout_id: int, index: int) -> AggregationReport:
        """Remove one exercise; the workout goes too when it was the last."""
        workout = self._fetch(workout_id)
        self._check_index(workout, index)
        remaining = workout.exercises[:index] + workout.exercises[index + 1 :]
        if remaining:
            self.workouts.update(replace(workout, exercises=remaining))
        else:
            self.workouts.delete(workout_id)
        return self.aggregator.recalculate_user_records(workout.user_id)

    def delete_workout(self, workout_id: int) -> AggregationReport:
        workout = self._fetch(workout_id)
        self.workouts.delete(workout_id)
        return self.aggregator.recalculate_user_records(workout.user_id)

    def list_workouts(self, user_id: str) -> list[WorkoutEntry]:
        return self.workouts.list_by_user(user_id)

    def log_body_weight(
        self, user_id: str, weight: float, date: str | None = None
    ) -> int:
        if self.body_weights is None:
            raise ValueError("body weight logging unavailable")
        day = self._day(date or datetime.date.today().isoformat())
        return self.body_weights.log(user_id, day, weight)
