"""Keep per-exercise personal records in step with the workout log.

``RecordAggregator.update_user_records`` folds one workout into the stored
records; ``recalculate_user_records`` deletes a user's records and rebuilds
them from the whole history. Store failures never escape as exceptions:
they are logged and returned as failed outcomes in an ``AggregationReport``.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
import weakref
from dataclasses import asdict, dataclass, field
from typing import Iterable, Optional

from algorithms import WorkoutContribution, build_samples, rebuild_record, reduce_record
from algorithms.record_reducer import empty_record, maxima_changed
from db import ExerciseCatalogRepository, RecordRepository, WorkoutRepository
from models import (
    DEFAULT_CATEGORY,
    STRENGTH,
    ExerciseEntry,
    ExerciseProfile,
    ExerciseRecord,
    SetSample,
    WorkoutEntry,
)
from settings_schema import SettingsSchema

CREATED = "created"
UPDATED = "updated"
UNCHANGED = "unchanged"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass(frozen=True)
class RecordOutcome:
    """Result of writing one exercise record."""

    exercise_id: str
    status: str
    record_id: Optional[int] = None
    attempts: int = 1
    error: Optional[str] = None


class RecordUpdateError(RuntimeError):
    """Raised by ``AggregationReport.raise_for_failures``."""

    def __init__(self, failures: list[RecordOutcome]) -> None:
        self.failures = failures
        names = ", ".join(f.exercise_id or "?" for f in failures)
        super().__init__(f"{len(failures)} record write(s) failed: {names}")


@dataclass
class AggregationReport:
    user_id: str
    mode: str
    workout_id: Optional[int] = None
    outcomes: list[RecordOutcome] = field(default_factory=list)

    @property
    def failed(self) -> list[RecordOutcome]:
        return [o for o in self.outcomes if o.status == FAILED]

    @property
    def ok(self) -> bool:
        return not self.failed

    def raise_for_failures(self) -> None:
        failures = self.failed
        if failures:
            raise RecordUpdateError(failures)

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "user_id": self.user_id,
            "mode": self.mode,
            "workout_id": self.workout_id,
            "outcomes": [asdict(o) for o in self.outcomes],
        }


class RecordAggregator:
    """Derive and store personal records from logged workouts."""

    _registry_lock = threading.Lock()
    # entries vanish once no caller holds the lock
    _user_locks: weakref.WeakValueDictionary[str, threading.RLock] = (
        weakref.WeakValueDictionary()
    )

    def __init__(
        self,
        record_repo: RecordRepository,
        catalog_repo: ExerciseCatalogRepository,
        workout_repo: WorkoutRepository | None = None,
        settings: SettingsSchema | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.records = record_repo
        self.catalog = catalog_repo
        self.workouts = workout_repo
        self.settings = settings or SettingsSchema()
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def _user_lock(cls, user_id: str) -> threading.RLock:
        with cls._registry_lock:
            lock = cls._user_locks.get(user_id)
            if lock is None:
                lock = threading.RLock()
                cls._user_locks[user_id] = lock
            return lock

    def classify(self, exercise: ExerciseEntry) -> Optional[ExerciseProfile]:
        """Resolve catalog metadata for ``exercise``; ``None`` if it has no name."""
        exercise_id = (exercise.name or "").strip()
        if not exercise_id:
            return None
        canonical = self.catalog.resolve_canonical_id(
            exercise_id, self.settings.catalog_match_cutoff
        )
        entry = self.catalog.lookup(canonical)
        return ExerciseProfile(
            exercise_id=exercise_id,
            canonical_id=canonical,
            category=(entry.category if entry else None)
            or exercise.category
            or DEFAULT_CATEGORY,
            exercise_type=(entry.type if entry else None) or exercise.type or STRENGTH,
            is_bodyweight=bool(entry and entry.is_bodyweight)
            or self.catalog.guess_bodyweight(canonical),
        )

    def body_weight(self, workout: WorkoutEntry) -> float:
        if workout.user_weight and workout.user_weight > 0:
            return float(workout.user_weight)
        return self.settings.default_body_weight

    def _collect(
        self, workouts: Iterable[WorkoutEntry], report: AggregationReport | None = None
    ) -> dict[str, tuple[ExerciseProfile, list[SetSample]]]:
        """Group qualifying samples by exact exercise name, in input order."""
        profiles: dict[str, Optional[ExerciseProfile]] = {}
        grouped: dict[str, tuple[ExerciseProfile, list[SetSample]]] = {}
        for workout in workouts:
            body_weight = self.body_weight(workout)
            for exercise in workout.exercises:
                name = (exercise.name or "").strip()
                if not name:
                    self.logger.warning(
                        "skipping exercise without a name",
                        extra={
                            "prt_user_id": workout.user_id,
                            "prt_workout_id": workout.id,
                        },
                    )
                    if report is not None:
                        report.outcomes.append(
                            RecordOutcome("", SKIPPED, error="missing exercise name")
                        )
                    continue
                if name not in profiles:
                    profiles[name] = self.classify(exercise)
                profile = profiles[name]
                if profile.exercise_type != STRENGTH:
                    self.logger.debug(
                        "ignoring %s exercise %s", profile.exercise_type, name
                    )
                    continue
                samples = build_samples(
                    exercise, workout, profile.is_bodyweight, body_weight
                )
                grouped.setdefault(name, (profile, []))[1].extend(samples)
        return grouped

    def _history(self, workout: WorkoutEntry, profile: ExerciseProfile) -> list[SetSample]:
        stored = self.workouts.list_by_user(workout.user_id)
        if workout.id is None or all(w.id != workout.id for w in stored):
            stored.append(workout)
        ordered = sorted(stored, key=lambda w: w.sort_key())
        grouped = self._collect(ordered)
        return grouped.get(profile.exercise_id, (profile, []))[1]

    def _read_failed(
        self, report: AggregationReport, exc: sqlite3.Error
    ) -> AggregationReport:
        self.logger.error(
            "reading workouts or catalog failed: %s",
            exc,
            extra={"prt_user_id": report.user_id, "prt_workout_id": report.workout_id},
        )
        report.outcomes.append(RecordOutcome("", FAILED, error=str(exc)))
        return report

    def update_user_records(self, workout: WorkoutEntry) -> AggregationReport:
        """Fold one workout into the user's stored records."""
        report = AggregationReport(workout.user_id, "incremental", workout.id)
        try:
            grouped = self._collect([workout], report)
        except sqlite3.Error as exc:
            return self._read_failed(report, exc)
        with self._user_lock(workout.user_id):
            for profile, samples in grouped.values():
                report.outcomes.append(self._upsert(workout, profile, samples))
        return report

    def _upsert(
        self, workout: WorkoutEntry, profile: ExerciseProfile, samples: list[SetSample]
    ) -> RecordOutcome:
        user_id = workout.user_id
        exercise_id = profile.exercise_id
        contribution = WorkoutContribution(workout.id, workout.date, tuple(samples))
        extra = {
            "prt_user_id": user_id,
            "prt_exercise_id": exercise_id,
            "prt_workout_id": workout.id,
        }
        attempts = 0
        while True:
            attempts += 1
            payload: dict = {}
            try:
                existing = self.records.find_one(user_id, exercise_id)
                if existing is None:
                    if not samples:
                        return RecordOutcome(exercise_id, SKIPPED, attempts=attempts)
                    created = reduce_record(empty_record(user_id, profile), contribution)
                    payload = created.values()
                    record_id = self.records.insert(created)
                    self.logger.info("created record", extra=extra)
                    return RecordOutcome(exercise_id, CREATED, record_id, attempts)
                if not samples:
                    return RecordOutcome(exercise_id, UNCHANGED, existing.id, attempts)
                updated = self._reduce(existing, contribution, workout, profile)
                payload = updated.values()
                if self.records.update(
                    existing.id, payload, expected_version=existing.version
                ):
                    self.logger.info("updated record", extra=extra)
                    return RecordOutcome(exercise_id, UPDATED, existing.id, attempts)
                conflict = f"version {existing.version} changed"
            except sqlite3.IntegrityError as exc:
                conflict = str(exc)
            except sqlite3.Error as exc:
                self.logger.error(
                    "record write failed: %s",
                    exc,
                    extra={**extra, "prt_payload": payload},
                )
                return RecordOutcome(exercise_id, FAILED, attempts=attempts, error=str(exc))
            if attempts > self.settings.max_write_retries:
                self.logger.error(
                    "record write conflict after %d attempts",
                    attempts,
                    extra={**extra, "prt_payload": payload},
                )
                return RecordOutcome(
                    exercise_id, FAILED, attempts=attempts, error=f"conflict: {conflict}"
                )
            self.logger.warning("record write conflict, retrying", extra=extra)

    def _reduce(
        self,
        existing: ExerciseRecord,
        contribution: WorkoutContribution,
        workout: WorkoutEntry,
        profile: ExerciseProfile,
    ) -> ExerciseRecord:
        updated = reduce_record(existing, contribution)
        if (
            self.settings.rescan_near_max_on_max_change
            and self.workouts is not None
            and maxima_changed(existing, updated)
        ):
            history = self._history(workout, profile)
            updated = reduce_record(existing, contribution, history=history)
        return updated

    def recalculate_user_records(
        self, user_id: str, workouts: Iterable[WorkoutEntry] | None = None
    ) -> AggregationReport:
        """Delete the user's records and rebuild them from ``workouts``.

        Without ``workouts`` the history is read from the workout store.
        """
        report = AggregationReport(user_id, "recompute")
        with self._user_lock(user_id):
            if workouts is None and self.workouts is None:
                raise ValueError("workouts required without a workout store")
            try:
                if workouts is None:
                    workouts = self.workouts.list_by_user(user_id)
                ordered = sorted(
                    (w for w in workouts if w.user_id == user_id),
                    key=lambda w: w.sort_key(),
                )
                grouped = self._collect(ordered, report)
            except sqlite3.Error as exc:
                return self._read_failed(report, exc)
            try:
                self.records.delete_all_for_user(user_id)
            except sqlite3.Error as exc:
                self.logger.error(
                    "deleting records failed: %s", exc, extra={"prt_user_id": user_id}
                )
                report.outcomes.append(RecordOutcome("", FAILED, error=str(exc)))
                return report
            for profile, samples in grouped.values():
                if not samples:
                    continue
                record = rebuild_record(user_id, profile, samples)
                try:
                    record_id = self.records.insert(record)
                except sqlite3.Error as exc:
                    self.logger.error(
                        "record insert failed: %s",
                        exc,
                        extra={
                            "prt_user_id": user_id,
                            "prt_exercise_id": profile.exercise_id,
                            "prt_payload": record.values(),
                        },
                    )
                    report.outcomes.append(
                        RecordOutcome(profile.exercise_id, FAILED, error=str(exc))
                    )
                    continue
                report.outcomes.append(
                    RecordOutcome(profile.exercise_id, CREATED, record_id)
                )
        self.logger.info(
            "recalculated %d records", len(report.outcomes), extra={"prt_user_id": user_id}
        )
        return report
