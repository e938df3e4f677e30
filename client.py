import requests
from typing import Optional


class RecordsClient:
    """Simple REST client for the personal records API."""

    def __init__(self, base_url: str = "http://localhost:8000", timeout: float = 10) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def log_workout(
        self,
        user_id: str,
        date: str,
        exercises: list[dict],
        notes: Optional[str] = None,
        user_weight: Optional[float] = None,
    ) -> dict:
        payload: dict = {"date": date, "exercises": exercises}
        if notes is not None:
            payload["notes"] = notes
        if user_weight is not None:
            payload["user_weight"] = user_weight
        resp = requests.post(
            f"{self.base_url}/users/{user_id}/workouts", json=payload, timeout=self.timeout
        )
        resp.raise_for_status()
        return resp.json()

    def list_workouts(self, user_id: str) -> list[dict]:
        resp = requests.get(f"{self.base_url}/users/{user_id}/workouts", timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    def records(self, user_id: str) -> list[dict]:
        resp = requests.get(f"{self.base_url}/users/{user_id}/records", timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    def record(self, user_id: str, exercise_id: str) -> Optional[dict]:
        resp = requests.get(
            f"{self.base_url}/users/{user_id}/records/{exercise_id}", timeout=self.timeout
        )
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        return resp.json()

    def total_volume(self, user_id: str) -> float:
        resp = requests.get(f"{self.base_url}/users/{user_id}/volume", timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()["total_volume"]

    def recalculate(self, user_id: str) -> dict:
        resp = requests.post(
            f"{self.base_url}/users/{user_id}/records/recalculate", timeout=self.timeout
        )
        resp.raise_for_status()
        return resp.json()

    def delete_workout(self, workout_id: int) -> dict:
        resp = requests.delete(f"{self.base_url}/workouts/{workout_id}", timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    def arena(self, users: list[str]) -> dict:
        resp = requests.post(
            f"{self.base_url}/arena", json={"users": users}, timeout=self.timeout
        )
        resp.raise_for_status()
        return resp.json()
