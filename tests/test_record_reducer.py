import os
import sys
import itertools
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from algorithms import WorkoutContribution, build_samples, rebuild_record, reduce_record
from algorithms.record_reducer import empty_record, maxima_changed
from models import (
    ExerciseEntry,
    ExerciseProfile,
    SetEntry,
    SetSample,
    WorkoutEntry,
)

BENCH = ExerciseProfile("Bench Press", "bench_press", "Chest", "strength", False)
PULL_UP = ExerciseProfile("Pull Up", "pull_up", "Back", "strength", True)


def weighted(weight, reps, date="2024-01-01", wid=1):
    return SetSample(float(weight), float(weight), reps, date, wid)


def bodyweight(added, reps, date="2024-01-01", wid=1, body=80.0):
    return SetSample(float(added), float(added) + body, reps, date, wid)


class BuildSamplesTestCase(unittest.TestCase):
    def test_skips_sets_without_reps(self) -> None:
        workout = WorkoutEntry("u1", "2024-01-01", id=3)
        exercise = ExerciseEntry(
            "Bench Press", (SetEntry(100, 0), SetEntry(100, 5), SetEntry(0, 0))
        )
        samples = build_samples(exercise, workout, False, 80.0)
        self.assertEqual(len(samples), 1)
        self.assertEqual(samples[0].reps, 5)
        self.assertEqual(samples[0].workout_id, 3)

    def test_unilateral_pounds(self) -> None:
        workout = WorkoutEntry("u1", "2024-01-01")
        exercise = ExerciseEntry(
            "Dumbbell Curl", (SetEntry(20, 10, "lb"),), unilateral=True
        )
        sample = build_samples(exercise, workout, False, 80.0)[0]
        self.assertAlmostEqual(sample.real_weight, 20 * 0.453592 * 2)
        self.assertEqual(sample.real_weight, sample.effective_load)

    def test_bodyweight_effective_load(self) -> None:
        workout = WorkoutEntry("u1", "2024-01-01")
        exercise = ExerciseEntry("Dips", (SetEntry(10, 6),))
        sample = build_samples(exercise, workout, True, 75.0)[0]
        self.assertEqual(sample.real_weight, 10.0)
        self.assertEqual(sample.effective_load, 85.0)


class MaxWeightTestCase(unittest.TestCase):
    def test_single_rep_precedence_any_order(self) -> None:
        sets = [weighted(5, 1), weighted(100, 1), weighted(50, 5)]
        for order in itertools.permutations(sets):
            rec = rebuild_record("u1", BENCH, list(order))
            self.assertEqual(rec.max_weight_kg, 100.0)
            self.assertEqual(rec.max_weight_reps, 1)

    def test_heavier_multi_rep_does_not_replace_single(self) -> None:
        rec = rebuild_record("u1", BENCH, [weighted(100, 1), weighted(120, 3)])
        self.assertEqual(rec.max_weight_kg, 100.0)
        self.assertEqual(rec.max_weight_reps, 1)
        self.assertEqual(rec.max_1rm_kg, 127)

    def test_multi_rep_stands_in_without_single(self) -> None:
        rec = rebuild_record("u1", BENCH, [weighted(60, 5), weighted(80, 3)])
        self.assertEqual(rec.max_weight_kg, 80.0)
        self.assertEqual(rec.max_weight_reps, 3)

    def test_max_weight_ignores_body_weight(self) -> None:
        rec = rebuild_record("u1", PULL_UP, [bodyweight(10, 5)])
        self.assertEqual(rec.max_weight_kg, 10.0)
        self.assertEqual(rec.max_1rm_kg, 101)


class MaxRepsTestCase(unittest.TestCase):
    def test_weighted_movement_tracks_all_sets(self) -> None:
        rec = rebuild_record("u1", BENCH, [weighted(100, 1), weighted(40, 15)])
        self.assertEqual(rec.max_reps, 15)
        self.assertEqual(rec.max_weight_reps, 1)

    def test_pure_bodyweight_mirrors_reps(self) -> None:
        rec = rebuild_record("u1", PULL_UP, [bodyweight(0, 8), bodyweight(0, 12)])
        self.assertEqual(rec.max_reps, 12)
        self.assertEqual(rec.max_weight_kg, 0.0)
        self.assertEqual(rec.max_weight_reps, 12)

    def test_added_load_does_not_feed_reps(self) -> None:
        rec = rebuild_record("u1", PULL_UP, [bodyweight(0, 6), bodyweight(20, 9)])
        self.assertEqual(rec.max_reps, 6)
        self.assertEqual(rec.max_weight_kg, 20.0)
        self.assertEqual(rec.max_weight_reps, 9)


class SetMetricsTestCase(unittest.TestCase):
    def test_volume_and_best_single_set(self) -> None:
        rec = rebuild_record(
            "u1", BENCH, [weighted(100, 5), weighted(125, 4), weighted(60, 2)]
        )
        self.assertEqual(rec.total_volume_kg, 1120.0)
        self.assertEqual(rec.best_single_set_volume_kg, 500.0)
        self.assertEqual(rec.best_single_set_weight_kg, 100.0)
        self.assertEqual(rec.best_single_set_reps, 5)

    def test_bodyweight_volume_uses_effective_load(self) -> None:
        rec = rebuild_record("u1", PULL_UP, [bodyweight(0, 10)])
        self.assertEqual(rec.total_volume_kg, 800.0)
        self.assertEqual(rec.best_single_set_weight_kg, 80.0)

    def test_daily_max_dedup(self) -> None:
        rec = rebuild_record("u1", BENCH, [weighted(80, 5), weighted(70, 8)])
        self.assertEqual(len(rec.daily_max), 1)
        self.assertEqual(rec.daily_max[0].max_weight_kg, 80.0)
        self.assertEqual(rec.daily_max[0].max_reps, 5)

    def test_daily_max_reps_break_ties(self) -> None:
        rec = rebuild_record("u1", BENCH, [weighted(80, 5), weighted(80, 6)])
        self.assertEqual(rec.daily_max[0].max_reps, 6)

    def test_daily_max_newest_first(self) -> None:
        samples = [
            weighted(80, 5, "2024-01-01", 1),
            weighted(85, 5, "2024-01-03T10:00:00", 2),
            weighted(82, 5, "2024-01-02", 3),
        ]
        rec = rebuild_record("u1", BENCH, samples)
        self.assertEqual(
            [d.date for d in rec.daily_max], ["2024-01-03", "2024-01-02", "2024-01-01"]
        )


class NearMaxTestCase(unittest.TestCase):
    def test_weighted_regime(self) -> None:
        rec = rebuild_record(
            "u1",
            BENCH,
            [weighted(100, 1), weighted(90, 3), weighted(85, 8), weighted(60, 12)],
        )
        self.assertEqual(rec.best_near_max_weight_kg, 90.0)
        self.assertEqual(rec.best_near_max_reps, 3)

    def test_weighted_equal_scores_keep_first(self) -> None:
        rec = rebuild_record(
            "u1", BENCH, [weighted(100, 1), weighted(80, 6), weighted(80, 5)]
        )
        self.assertEqual(rec.best_near_max_weight_kg, 80.0)
        self.assertEqual(rec.best_near_max_reps, 6)

    def test_pure_bodyweight_regime(self) -> None:
        rec = rebuild_record(
            "u1", PULL_UP, [bodyweight(0, 5), bodyweight(0, 12), bodyweight(0, 10)]
        )
        self.assertEqual(rec.best_near_max_reps, 12)
        self.assertEqual(rec.best_near_max_weight_kg, 80.0)

    def test_regime_switch_with_added_load(self) -> None:
        rec = rebuild_record(
            "u1", PULL_UP, [bodyweight(0, 12), bodyweight(0, 8), bodyweight(10, 5)]
        )
        self.assertEqual(rec.best_near_max_weight_kg, 90.0)
        self.assertEqual(rec.best_near_max_reps, 5)

    def test_no_candidates(self) -> None:
        rec = rebuild_record("u1", BENCH, [weighted(100, 1)])
        self.assertIsNone(rec.near_max)


class ReduceRecordTestCase(unittest.TestCase):
    def _incremental(self, workouts, rescan):
        rec = empty_record("u1", PULL_UP)
        seen = []
        for wid, samples in workouts:
            seen.extend(samples)
            contribution = WorkoutContribution(wid, samples[0].date, tuple(samples))
            updated = reduce_record(rec, contribution)
            if rescan and maxima_changed(rec, updated):
                updated = reduce_record(rec, contribution, history=list(seen))
            rec = updated
        return rec

    def setUp(self) -> None:
        self.workouts = [
            (1, [bodyweight(0, 12, "2024-01-01", 1), bodyweight(0, 8, "2024-01-01", 1)]),
            (2, [bodyweight(10, 1, "2024-01-02", 2)]),
        ]
        self.samples = [s for _, samples in self.workouts for s in samples]

    def test_converges_with_rescan(self) -> None:
        incremental = self._incremental(self.workouts, rescan=True)
        rebuilt = rebuild_record("u1", PULL_UP, self.samples)
        self.assertEqual(incremental.values(), rebuilt.values())
        self.assertEqual(rebuilt.best_near_max_reps, 8)

    def test_stale_near_max_without_rescan(self) -> None:
        incremental = self._incremental(self.workouts, rescan=False)
        rebuilt = rebuild_record("u1", PULL_UP, self.samples)
        # the 12-rep winner from the bodyweight regime survives the switch
        self.assertEqual(incremental.best_near_max_reps, 12)
        self.assertEqual(rebuilt.best_near_max_reps, 8)
        inc = incremental.values()
        reb = rebuilt.values()
        for key in inc:
            if not key.startswith("best_near_max"):
                self.assertEqual(inc[key], reb[key], key)

    def test_monotonic(self) -> None:
        rec = empty_record("u1", BENCH)
        history = [
            [weighted(100, 5, "2024-01-01", 1)],
            [weighted(60, 10, "2024-01-02", 2)],
            [weighted(110, 1, "2024-01-03", 3)],
            [weighted(50, 3, "2024-01-04", 4)],
        ]
        for idx, samples in enumerate(history, start=1):
            updated = reduce_record(
                rec, WorkoutContribution(idx, samples[0].date, tuple(samples))
            )
            self.assertGreaterEqual(updated.max_weight_kg, rec.max_weight_kg)
            self.assertGreaterEqual(updated.max_1rm_kg, rec.max_1rm_kg)
            self.assertGreaterEqual(updated.max_reps, rec.max_reps)
            self.assertGreaterEqual(updated.total_volume_kg, rec.total_volume_kg)
            rec = updated
        self.assertEqual(rec.max_weight_kg, 110.0)

    def test_input_record_is_not_mutated(self) -> None:
        rec = empty_record("u1", BENCH)
        reduce_record(rec, WorkoutContribution(1, "2024-01-01", (weighted(100, 5),)))
        self.assertEqual(rec.total_volume_kg, 0.0)
        self.assertEqual(rec.daily_max, ())


if __name__ == "__main__":
    unittest.main()
