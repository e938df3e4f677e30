from __future__ import annotations

from typing import Dict, List

from algorithms import MathTools
from db import ExerciseCatalogRepository, RecordRepository
from models import ExerciseRecord

DRAW = "DRAW"


class StatisticsService:
    """Read-side queries over stored personal records."""

    def __init__(
        self,
        record_repo: RecordRepository,
        catalog_repo: ExerciseCatalogRepository | None = None,
    ) -> None:
        self.records = record_repo
        self.catalog = catalog_repo

    def user_records(self, user_id: str) -> List[ExerciseRecord]:
        return self.records.fetch_for_user(user_id)

    def total_volume(self, user_id: str) -> float:
        return self.records.total_volume(user_id)

    def volume_rankings(self, users: List[str]) -> List[Dict[str, object]]:
        """Rank ``users`` by total volume; score is the percentage of the top."""
        volumes = [(u, self.total_volume(u)) for u in users]
        top = max((v for _, v in volumes), default=0.0)
        ranked = sorted(volumes, key=lambda item: item[1], reverse=True)
        return [
            {
                "user_id": user,
                "total_volume": volume,
                "score": round(volume / top * 100, 1) if top > 0 else 0.0,
                "rank": idx + 1,
            }
            for idx, (user, volume) in enumerate(ranked)
        ]

    def _best_lifts(self, user_id: str) -> Dict[str, dict]:
        lifts: Dict[str, dict] = {}
        for rec in self.user_records(user_id):
            weight = rec.best_single_set_weight_kg
            if weight is None:
                weight = rec.max_weight_kg
            reps = rec.best_single_set_reps
            if reps is None:
                reps = rec.max_reps if rec.is_bodyweight else rec.max_weight_reps
            if weight <= 0 and reps <= 0:
                continue
            key = rec.exercise_id
            if self.catalog is not None:
                key = self.catalog.resolve_canonical_id(rec.exercise_id) or key
            current = lifts.get(key)
            score = MathTools.power_score(weight, reps, rec.is_bodyweight)
            if current is None or score > current["score"]:
                lifts[key] = {
                    "weight": weight,
                    "reps": reps,
                    "is_bodyweight": rec.is_bodyweight,
                    "score": score,
                }
        return lifts

    def head_to_head(self, users: List[str]) -> List[Dict[str, object]]:
        """Compare best sets on the exercises every user has a record for."""
        if not users:
            return []
        lifts = {u: self._best_lifts(u) for u in users}
        common = set.intersection(*(set(l) for l in lifts.values()))
        result = []
        for exercise in sorted(common):
            entries = sorted(
                ({"user_id": u, **lifts[u][exercise]} for u in users),
                key=lambda e: e["score"],
                reverse=True,
            )
            winner = entries[0]["user_id"]
            if len(entries) > 1 and abs(entries[0]["score"] - entries[1]["score"]) < 0.1:
                winner = DRAW
            result.append({"exercise": exercise, "entries": entries, "winner": winner})
        return result

    def best_set_matrix(self, users: List[str]) -> List[Dict[str, str]]:
        """Tabulate each user's best set per exercise as display strings."""
        lifts = {u: self._best_lifts(u) for u in users}
        exercises = sorted(set().union(*(set(l) for l in lifts.values())))
        rows = []
        for exercise in exercises:
            row = {"exercise": exercise}
            for user in users:
                lift = lifts[user].get(exercise)
                if lift is None:
                    row[user] = "---"
                elif lift["is_bodyweight"]:
                    row[user] = f"{lift['reps']} reps" if lift["reps"] > 0 else "---"
                else:
                    row[user] = f"{lift['weight']:g}kg x {lift['reps']}"
            rows.append(row)
        return rows

    def arena(self, users: List[str]) -> Dict[str, object]:
        rankings = self.volume_rankings(users)
        return {
            "winner": rankings[0]["user_id"] if rankings else DRAW,
            "rankings": rankings,
            "head_to_head": self.head_to_head(users),
            "matrix": self.best_set_matrix(users),
        }

    def max_comparison(self, user_id: str, month: str) -> List[Dict[str, object]]:
        """Best daily max of ``month`` (``YYYY-MM``) against the all-time max."""
        result = []
        for rec in self.user_records(user_id):
            days = [d for d in rec.daily_max if d.date.startswith(month)]
            if not days:
                continue
            best = max(days, key=lambda d: (d.max_weight_kg, d.max_reps))
            result.append(
                {
                    "exercise_id": rec.exercise_id,
                    "month_best_kg": best.max_weight_kg,
                    "month_best_reps": best.max_reps,
                    "month_best_date": best.date,
                    "all_time_max_kg": rec.max_weight_kg,
                    "all_time_max_date": rec.max_weight_date,
                    "is_all_time_max": bool(
                        rec.max_weight_date and rec.max_weight_date.startswith(month)
                    ),
                }
            )
        return result
