import os
import sys

import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from db import ExerciseCatalogRepository, RecordRepository
from models import DailyMax, ExerciseRecord
from stats_service import DRAW, StatisticsService


def _record(user, name, weight, reps, volume, bodyweight=False, **extra):
    return ExerciseRecord(
        user,
        name,
        name,
        total_volume_kg=volume,
        best_single_set_weight_kg=weight,
        best_single_set_reps=reps,
        best_single_set_volume_kg=weight * reps,
        is_bodyweight=bodyweight,
        **extra,
    )


@pytest.fixture
def stats(tmp_path):
    db_file = str(tmp_path / "stats.db")
    records = RecordRepository(db_file)
    records.insert(_record("u1", "Bench Press", 100.0, 5, 1000.0))
    records.insert(_record("u1", "Pull Up", 80.0, 12, 960.0, bodyweight=True))
    records.insert(_record("u1", "Deadlift", 180.0, 3, 40.0))
    records.insert(_record("u2", "Bench Press", 110.0, 3, 330.0))
    records.insert(_record("u2", "Dominadas", 70.0, 12, 670.0, bodyweight=True))
    return StatisticsService(records, ExerciseCatalogRepository(db_file))


def test_user_records_and_volume(stats):
    names = [r.exercise_id for r in stats.user_records("u1")]
    assert names == ["Bench Press", "Deadlift", "Pull Up"]
    assert stats.total_volume("u1") == 2000.0


def test_volume_rankings(stats):
    rankings = stats.volume_rankings(["u2", "u1", "u3"])
    assert [r["user_id"] for r in rankings] == ["u1", "u2", "u3"]
    assert [r["rank"] for r in rankings] == [1, 2, 3]
    assert rankings[0]["score"] == 100.0
    assert rankings[1]["score"] == 50.0
    assert rankings[2]["score"] == 0.0


def test_head_to_head(stats):
    duels = {d["exercise"]: d for d in stats.head_to_head(["u1", "u2"])}
    assert set(duels) == {"bench_press", "pull_up"}
    assert duels["bench_press"]["winner"] == "u2"
    assert duels["bench_press"]["entries"][0]["score"] == pytest.approx(121.0)
    assert duels["pull_up"]["winner"] == DRAW
    assert stats.head_to_head([]) == []


def test_best_set_matrix(stats):
    rows = {r["exercise"]: r for r in stats.best_set_matrix(["u1", "u2"])}
    assert rows["bench_press"] == {"exercise": "bench_press", "u1": "100kg x 5", "u2": "110kg x 3"}
    assert rows["pull_up"]["u2"] == "12 reps"
    assert rows["deadlift"]["u2"] == "---"


def test_arena(stats):
    arena = stats.arena(["u1", "u2"])
    assert arena["winner"] == "u1"
    assert len(arena["head_to_head"]) == 2


def test_max_comparison(tmp_path):
    records = RecordRepository(str(tmp_path / "cmp.db"))
    records.insert(
        ExerciseRecord(
            "u1",
            "Squat",
            "Squat",
            max_weight_kg=150.0,
            max_weight_reps=1,
            max_weight_date="2024-02-10",
            daily_max=(
                DailyMax("2024-03-12", 140.0, 3),
                DailyMax("2024-03-05", 140.0, 2),
                DailyMax("2024-02-10", 150.0, 1),
            ),
        )
    )
    service = StatisticsService(records)
    [row] = service.max_comparison("u1", "2024-03")
    assert row["month_best_kg"] == 140.0
    assert row["month_best_reps"] == 3
    assert row["month_best_date"] == "2024-03-12"
    assert row["all_time_max_kg"] == 150.0
    assert row["is_all_time_max"] is False
    assert service.max_comparison("u1", "2024-02")[0]["is_all_time_max"] is True
    assert service.max_comparison("u1", "2023-12") == []
