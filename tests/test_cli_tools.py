import csv
import json
import logging
import os
import sqlite3
import sys
import unittest
from unittest import mock

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from cli import backup_db, demo_data, main, restore_db
from config import LOG_FORMAT_ENV
from logging_setup import JSONFormatter
from rest_api import RecordsAPI


class CLIToolsTest(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_cli.db"
        self.yaml_path = "test_cli.yaml"
        self.cleanup = [self.db_path, self.yaml_path, "backup.db", "records.json", "records.csv"]
        for path in self.cleanup:
            if os.path.exists(path):
                os.remove(path)

    def tearDown(self) -> None:
        for path in self.cleanup:
            if os.path.exists(path):
                os.remove(path)

    def test_demo_data(self) -> None:
        demo_data(self.db_path, self.yaml_path)
        api = RecordsAPI(db_path=self.db_path, yaml_path=self.yaml_path)
        self.assertEqual(len(api.workouts.list_by_user("demo")), 2)
        bench = api.records.find_one("demo", "Bench Press")
        self.assertEqual(bench.max_weight_kg, 90.0)
        self.assertEqual(bench.max_weight_reps, 1)
        demo_data(self.db_path, self.yaml_path)
        self.assertEqual(len(api.workouts.list_by_user("demo")), 2)

    def test_recalculate_all_users(self) -> None:
        demo_data(self.db_path, self.yaml_path)
        api = RecordsAPI(db_path=self.db_path, yaml_path=self.yaml_path)
        before = api.records.find_one("demo", "Bench Press")
        api.records.delete_all_for_user("demo")
        code = main(["--yaml", self.yaml_path, "recalculate", "--db", self.db_path])
        self.assertEqual(code, 0)
        after = api.records.find_one("demo", "Bench Press")
        self.assertEqual(after.values(), before.values())

    def test_recalculate_reports_failures(self) -> None:
        demo_data(self.db_path, self.yaml_path)
        with mock.patch("db.RecordRepository.insert", side_effect=sqlite3.OperationalError("locked")):
            code = main(["recalculate", "--db", self.db_path, "--user", "demo"])
        self.assertEqual(code, 1)

    def test_export_records(self) -> None:
        demo_data(self.db_path, self.yaml_path)
        main(["export-records", "--db", self.db_path, "--user", "demo", "--out", "records.json"])
        with open("records.json", encoding="utf-8") as f:
            data = json.load(f)
        self.assertEqual(
            [r["exercise_id"] for r in data], ["Bench Press", "Dumbbell Curl", "Pull Up"]
        )
        main(
            [
                "export-records",
                "--db",
                self.db_path,
                "--user",
                "demo",
                "--out",
                "records.csv",
                "--fmt",
                "csv",
            ]
        )
        with open("records.csv", encoding="utf-8", newline="") as f:
            rows = list(csv.reader(f))
        self.assertEqual(rows[0][:2], ["exercise_id", "max_weight_kg"])
        self.assertEqual(len(rows), 4)

    def test_backup_restore(self) -> None:
        demo_data(self.db_path, self.yaml_path)
        backup_db(self.db_path, "backup.db")
        self.assertTrue(os.path.exists("backup.db"))
        os.remove(self.db_path)
        restore_db("backup.db", self.db_path)
        api = RecordsAPI(db_path=self.db_path, yaml_path=self.yaml_path)
        self.assertIsNotNone(api.records.find_one("demo", "Pull Up"))

    def test_convert(self) -> None:
        with mock.patch("builtins.print") as printed:
            self.assertEqual(main(["convert", "--weight", "100", "--unit", "kg"]), 0)
        printed.assert_called_once_with("100.0 kg = 220.46 lb")

    def test_log_format_from_settings(self) -> None:
        root = logging.getLogger()
        saved = root.handlers[:], root.level
        try:
            with mock.patch.dict(os.environ, {LOG_FORMAT_ENV: "json"}):
                main(["convert", "--weight", "1", "--unit", "lb"])
            self.assertIsInstance(root.handlers[0].formatter, JSONFormatter)
        finally:
            for handler in root.handlers[:]:
                root.removeHandler(handler)
            for handler in saved[0]:
                root.addHandler(handler)
            root.setLevel(saved[1])


if __name__ == "__main__":
    unittest.main()
