import os
import sys
import tempfile
import unittest
from unittest import mock

from fastapi.testclient import TestClient

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from client import RecordsClient
from rest_api import RecordsAPI


class ClientTest(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        api = RecordsAPI(
            db_path=os.path.join(self.tmp.name, "client.db"),
            yaml_path=os.path.join(self.tmp.name, "settings.yaml"),
        )
        # route the client's HTTP calls into the app in-process
        patcher = mock.patch("client.requests", TestClient(api.app))
        patcher.start()
        self.addCleanup(patcher.stop)
        self.client = RecordsClient(base_url="http://testserver/")

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def test_workout_and_records(self) -> None:
        report = self.client.log_workout(
            "u1",
            "2024-05-01",
            [{"name": "Squat", "sets": [{"weight": 140, "reps": 3}]}],
            notes="legs",
            user_weight=82.0,
        )
        self.assertTrue(report["ok"])
        workouts = self.client.list_workouts("u1")
        self.assertEqual(workouts[0]["user_weight"], 82.0)
        self.assertEqual(self.client.record("u1", "Squat")["max_weight_kg"], 140.0)
        self.assertIsNone(self.client.record("u1", "Deadlift"))
        self.assertEqual(len(self.client.records("u1")), 1)
        self.assertEqual(self.client.total_volume("u1"), 420.0)
        self.assertEqual(self.client.recalculate("u1")["mode"], "recompute")
        self.client.delete_workout(report["workout_id"])
        self.assertEqual(self.client.records("u1"), [])

    def test_arena(self) -> None:
        self.client.log_workout("a", "2024-05-01", [{"name": "Squat", "sets": [{"weight": 100, "reps": 5}]}])
        self.client.log_workout("b", "2024-05-01", [{"name": "Squat", "sets": [{"weight": 120, "reps": 5}]}])
        self.assertEqual(self.client.arena(["a", "b"])["winner"], "b")

    def test_errors_raise(self) -> None:
        with self.assertRaises(Exception):
            self.client.log_workout("u1", "nope", [{"name": "Squat", "sets": []}])


if __name__ == "__main__":
    unittest.main()
