import argparse
import csv
import datetime
import json
import shutil
import sys
import time
from typing import Optional

import requests

from algorithms import WeightConverter
from logging_setup import configure_logging
from models import RECORD_VALUE_FIELDS
from rest_api import RecordsAPI
from settings_schema import load_settings


def recalculate(db_path: str, yaml_path: Optional[str], user_id: Optional[str]) -> bool:
    """Rebuild records for one user, or for every user when ``user_id`` is None."""
    api = RecordsAPI(db_path=db_path, yaml_path=yaml_path)
    users = [user_id] if user_id else api.workouts.list_users()
    ok = True
    for uid in users:
        report = api.aggregator.recalculate_user_records(uid)
        created = sum(1 for o in report.outcomes if o.status == "created")
        print(f"{uid}: {created} records rebuilt")
        for failure in report.failed:
            print(f"  failed {failure.exercise_id}: {failure.error}", file=sys.stderr)
        ok = ok and report.ok
    return ok


def export_records(
    db_path: str, yaml_path: Optional[str], user_id: str, out_path: str, fmt: str = "json"
) -> None:
    api = RecordsAPI(db_path=db_path, yaml_path=yaml_path)
    records = api.statistics.user_records(user_id)
    with open(out_path, "w", encoding="utf-8", newline="") as f:
        if fmt == "json":
            json.dump([r.to_dict() for r in records], f, indent=2)
            return
        writer = csv.writer(f)
        writer.writerow(["exercise_id", *RECORD_VALUE_FIELDS])
        for rec in records:
            values = rec.values()
            writer.writerow([rec.exercise_id, *(values[k] for k in RECORD_VALUE_FIELDS)])


def backup_db(db_path: str, backup_path: str) -> None:
    shutil.copy(db_path, backup_path)


def restore_db(backup_path: str, db_path: str) -> None:
    shutil.copy(backup_path, db_path)


def benchmark(url: str, runs: int = 10) -> None:
    times: list[float] = []
    for _ in range(runs):
        t0 = time.time()
        requests.get(f"{url}/health", timeout=5)
        times.append(time.time() - t0)
    avg = sum(times) / len(times)
    print(f"Average /health response time over {runs} runs: {avg:.4f}s")


def demo_data(db_path: str, yaml_path: Optional[str], user_id: str = "demo") -> None:
    """Populate the database with demo workouts if the user has none."""
    api = RecordsAPI(db_path=db_path, yaml_path=yaml_path)
    if api.workouts.list_by_user(user_id):
        print("Database already contains workouts")
        return
    today = datetime.date.today()
    sessions = [
        (
            today - datetime.timedelta(days=7),
            [
                {"name": "Bench Press", "sets": [{"weight": 80, "reps": 5}, {"weight": 85, "reps": 3}]},
                {"name": "Pull Up", "sets": [{"weight": 0, "reps": 10}, {"weight": 0, "reps": 8}]},
            ],
        ),
        (
            today,
            [
                {"name": "Bench Press", "sets": [{"weight": 90, "reps": 1}, {"weight": 80, "reps": 6}]},
                {"name": "Dumbbell Curl", "unilateral": True, "sets": [{"weight": 30, "reps": 10, "unit": "lb"}]},
            ],
        ),
    ]
    for day, exercises in sessions:
        api.workout_service.log_workout(user_id, day.isoformat(), exercises)
    print("Demo data inserted")


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Personal record utilities")
    parser.add_argument("--yaml", default=None, help="settings file")
    sub = parser.add_subparsers(dest="cmd", required=True)

    rec = sub.add_parser("recalculate")
    rec.add_argument("--db", default="workout.db")
    rec.add_argument("--user", default=None)

    exp = sub.add_parser("export-records")
    exp.add_argument("--db", default="workout.db")
    exp.add_argument("--user", required=True)
    exp.add_argument("--out", required=True)
    exp.add_argument("--fmt", choices=["json", "csv"], default="json")

    bkp = sub.add_parser("backup")
    bkp.add_argument("--db", default="workout.db")
    bkp.add_argument("--out", default="backup.db")

    rst = sub.add_parser("restore")
    rst.add_argument("--in", dest="src", default="backup.db")
    rst.add_argument("--db", default="workout.db")

    demo = sub.add_parser("demo")
    demo.add_argument("--db", default="workout.db")
    demo.add_argument("--user", default="demo")

    bench = sub.add_parser("benchmark")
    bench.add_argument("--url", default="http://localhost:8000")
    bench.add_argument("--runs", type=int, default=10)

    conv = sub.add_parser("convert")
    conv.add_argument("--weight", type=float, required=True)
    conv.add_argument("--unit", choices=["kg", "lb"], required=True)

    args = parser.parse_args(argv)
    settings = load_settings(args.yaml)
    configure_logging(settings.log_format, settings.log_level)

    if args.cmd == "recalculate":
        return 0 if recalculate(args.db, args.yaml, args.user) else 1
    if args.cmd == "export-records":
        export_records(args.db, args.yaml, args.user, args.out, args.fmt)
    elif args.cmd == "backup":
        backup_db(args.db, args.out)
    elif args.cmd == "restore":
        restore_db(args.src, args.db)
    elif args.cmd == "demo":
        demo_data(args.db, args.yaml, args.user)
    elif args.cmd == "benchmark":
        benchmark(args.url, args.runs)
    elif args.cmd == "convert":
        if args.unit == "kg":
            print(f"{args.weight} kg = {WeightConverter.kg_to_lb(args.weight)} lb")
        else:
            print(f"{args.weight} lb = {WeightConverter.lb_to_kg(args.weight)} kg")
    return 0


if __name__ == "__main__":
    sys.exit(main())
