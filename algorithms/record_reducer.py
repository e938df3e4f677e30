"""Pure reduction of logged sets into per-exercise personal records.

Every function here returns new frozen ``ExerciseRecord`` instances; nothing
reads or writes a store. ``reduce_record`` folds one workout's contribution
into an existing record and ``rebuild_record`` folds a whole history into an
empty one. Both walk the same per-set rules in chronological order, so
applying workouts one by one and rebuilding from scratch agree on every
field except ``best_near_max`` when the near-max pool is not rescanned.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from functools import reduce
from typing import Iterable, Optional, Sequence

from models import (
    DailyMax,
    ExerciseEntry,
    ExerciseProfile,
    ExerciseRecord,
    NearMax,
    SetSample,
    WorkoutEntry,
)
from .math_tools import MathTools
from .weight_converter import WeightConverter


@dataclass(frozen=True)
class WorkoutContribution:
    """The qualifying sets one workout adds to one exercise record."""

    workout_id: Optional[int]
    date: str
    samples: tuple[SetSample, ...]


def build_samples(
    exercise: ExerciseEntry,
    workout: WorkoutEntry,
    is_bodyweight: bool,
    body_weight: float,
) -> list[SetSample]:
    """Normalize the sets of ``exercise``; sets without reps are dropped."""
    samples: list[SetSample] = []
    for s in exercise.sets:
        reps = int(s.reps or 0)
        if reps <= 0:
            continue
        real = WeightConverter.real_weight(s.weight, s.unit, exercise.unilateral)
        samples.append(
            SetSample(
                real_weight=real,
                effective_load=WeightConverter.effective_load(
                    real, is_bodyweight, body_weight
                ),
                reps=reps,
                date=workout.date,
                workout_id=workout.id,
            )
        )
    return samples


def empty_record(user_id: str, profile: ExerciseProfile) -> ExerciseRecord:
    return ExerciseRecord(
        user_id=user_id,
        exercise_id=profile.exercise_id,
        exercise_name=profile.exercise_id,
        is_bodyweight=profile.is_bodyweight,
        category=profile.category,
        exercise_type=profile.exercise_type,
    )


def _holds_true_single(record: ExerciseRecord) -> bool:
    return record.max_weight_reps == 1 and record.max_weight_kg > 0


def _beats_max_weight(record: ExerciseRecord, sample: SetSample) -> bool:
    if sample.real_weight <= record.max_weight_kg:
        return False
    return sample.reps == 1 or not _holds_true_single(record)


def _merge_daily(
    entries: tuple[DailyMax, ...], candidate: DailyMax
) -> tuple[DailyMax, ...]:
    for i, entry in enumerate(entries):
        if entry.date == candidate.date:
            if candidate.beats(entry):
                return entries[:i] + (candidate,) + entries[i + 1 :]
            return entries
    return entries + (candidate,)


def apply_sample(record: ExerciseRecord, sample: SetSample) -> ExerciseRecord:
    """Fold one qualifying set into ``record``."""
    changes: dict = {}
    volume = MathTools.set_volume(sample.effective_load, sample.reps)
    changes["total_volume_kg"] = record.total_volume_kg + volume

    if volume > (record.best_single_set_volume_kg or 0.0):
        changes.update(
            best_single_set_weight_kg=sample.effective_load,
            best_single_set_reps=sample.reps,
            best_single_set_volume_kg=volume,
            best_single_set_date=sample.date,
            best_single_set_workout_id=sample.workout_id,
        )

    est = MathTools.epley_1rm(sample.effective_load, sample.reps)
    if est > record.max_1rm_kg:
        changes.update(
            max_1rm_kg=est,
            max_1rm_date=sample.date,
            max_1rm_workout_id=sample.workout_id,
        )

    if _beats_max_weight(record, sample):
        changes.update(
            max_weight_kg=sample.real_weight,
            max_weight_reps=sample.reps,
            max_weight_date=sample.date,
            max_weight_workout_id=sample.workout_id,
        )

    tracks_reps = not record.is_bodyweight or sample.real_weight == 0
    if tracks_reps and sample.reps > record.max_reps:
        changes.update(
            max_reps=sample.reps,
            max_reps_date=sample.date,
            max_reps_workout_id=sample.workout_id,
        )

    day = DailyMax(
        date=sample.date.split("T")[0],
        max_weight_kg=sample.effective_load,
        max_reps=sample.reps,
    )
    changes["daily_max"] = _merge_daily(record.daily_max, day)
    return replace(record, **changes)


def accumulate(
    record: ExerciseRecord, samples: Iterable[SetSample]
) -> ExerciseRecord:
    return reduce(apply_sample, samples, record)


def is_pure_bodyweight(record: ExerciseRecord) -> bool:
    """True when no set of the record ever carried added weight."""
    return record.is_bodyweight and record.max_weight_kg == 0


def best_near_max(
    record: ExerciseRecord,
    pool: Sequence[SetSample],
    seed: Optional[NearMax] = None,
) -> Optional[NearMax]:
    """Pick the most impressive set below the max.

    ``seed`` is the previously stored winner; it is rescored against the
    current maxima and kept unless a set in ``pool`` beats it.
    """
    best = seed
    if is_pure_bodyweight(record):
        max_reps = record.max_reps
        if max_reps <= 0:
            return seed
        best_score = -1.0
        if seed is not None and seed.reps:
            best_score = MathTools.near_max_reps_score(seed.reps, max_reps)
        for s in pool:
            if s.real_weight != 0:
                continue
            if not MathTools.NEAR_MAX_MIN_REPS <= s.reps <= max_reps:
                continue
            score = MathTools.near_max_reps_score(s.reps, max_reps)
            if score > best_score or (
                score == best_score and s.reps > (best.reps if best else 0)
            ):
                best_score = score
                best = NearMax(s.effective_load, s.reps, s.date, s.workout_id)
        return best

    max_weight = record.max_weight_kg
    if max_weight <= 0:
        return seed
    best_score = -1.0
    if seed is not None and seed.weight:
        best_score = MathTools.near_max_weight_score(seed.weight, max_weight, seed.reps)
    for s in pool:
        if not MathTools.NEAR_MAX_MIN_REPS <= s.reps <= MathTools.NEAR_MAX_MAX_REPS:
            continue
        score = MathTools.near_max_weight_score(s.effective_load, max_weight, s.reps)
        if score > best_score or (
            score == best_score and s.effective_load > (best.weight if best else 0)
        ):
            best_score = score
            best = NearMax(s.effective_load, s.reps, s.date, s.workout_id)
    return best


def with_near_max(record: ExerciseRecord, near: Optional[NearMax]) -> ExerciseRecord:
    if near is None:
        return replace(
            record,
            best_near_max_weight_kg=None,
            best_near_max_reps=None,
            best_near_max_date=None,
            best_near_max_workout_id=None,
        )
    return replace(
        record,
        best_near_max_weight_kg=near.weight,
        best_near_max_reps=near.reps,
        best_near_max_date=near.date,
        best_near_max_workout_id=near.workout_id,
    )


def finalize(record: ExerciseRecord) -> ExerciseRecord:
    """Apply derived-field rules and order ``daily_max`` newest first."""
    changes: dict = {
        "daily_max": tuple(sorted(record.daily_max, key=lambda d: d.date, reverse=True))
    }
    if is_pure_bodyweight(record):
        # bodyweight reps all move the same load, so the rep max is the max set
        changes["max_weight_reps"] = record.max_reps
    return replace(record, **changes)


def maxima_changed(before: ExerciseRecord, after: ExerciseRecord) -> bool:
    """True when the denominators of near-max scoring moved."""
    return (
        after.max_weight_kg != before.max_weight_kg
        or after.max_reps != before.max_reps
    )


def reduce_record(
    existing: ExerciseRecord,
    contribution: WorkoutContribution,
    history: Optional[Sequence[SetSample]] = None,
) -> ExerciseRecord:
    """Return ``existing`` updated with one workout's sets.

    When ``history`` is given, the near-max winner is rescanned over it
    without a seed; otherwise only the new sets compete against the stored
    winner.
    """
    record = accumulate(existing, contribution.samples)
    if history is not None:
        near = best_near_max(record, history)
    else:
        near = best_near_max(record, contribution.samples, seed=existing.near_max)
    return finalize(with_near_max(record, near))


def rebuild_record(
    user_id: str, profile: ExerciseProfile, samples: Sequence[SetSample]
) -> ExerciseRecord:
    """Build a record from the full chronological list of samples."""
    record = accumulate(empty_record(user_id, profile), samples)
    return finalize(with_near_max(record, best_near_max(record, samples)))
