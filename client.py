import requests
from typing import List, Optional


class FitnessClient:
    """Simple REST client for the workout planner API."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        api_key: Optional[str] = None,
        timeout: float = 10,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    def _headers(self) -> dict:
        return {"X-API-Key": self.api_key} if self.api_key else {}

    def create_user(self, username: str, admin_key: Optional[str] = None) -> dict:
        headers = {"X-Admin-Key": admin_key} if admin_key else {}
        resp = requests.post(
            f"{self.base_url}/api/users",
            params={"username": username},
            headers=headers,
            timeout=self.timeout,
        )
        resp.raise_for_status()
        data = resp.json()
        self.api_key = data["api_key"]
        return data

    def set_preferences(self, **preferences) -> dict:
        resp = requests.put(
            f"{self.base_url}/api/users/me/preferences",
            json=preferences,
            headers=self._headers(),
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()

    def generate_program(self) -> list:
        resp = requests.post(
            f"{self.base_url}/api/workouts/generate",
            headers=self._headers(),
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()["workouts"]

    def regenerate_program(self, **constraints) -> dict:
        resp = requests.post(
            f"{self.base_url}/api/workouts/regenerate",
            json=constraints,
            headers=self._headers(),
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()

    def restore_program(self) -> list:
        resp = requests.post(
            f"{self.base_url}/api/workouts/restore",
            headers=self._headers(),
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()["workouts"]

    def list_workouts(self, include_inactive: bool = False) -> list:
        resp = requests.get(
            f"{self.base_url}/api/workouts",
            params={"include_inactive": include_inactive},
            headers=self._headers(),
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()

    def reorder_exercises(self, workout_id: int, order: List[int]) -> None:
        resp = requests.put(
            f"{self.base_url}/api/workouts/{workout_id}/exercises/order",
            json={"order": order},
            headers=self._headers(),
            timeout=self.timeout,
        )
        resp.raise_for_status()

    def search_exercises(self, **filters: str) -> list:
        resp = requests.get(
            f"{self.base_url}/api/exercises",
            params=filters,
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()

    def run_tool(self, tool_name: str, **args) -> dict:
        resp = requests.post(
            f"{self.base_url}/api/coach/tools/{tool_name}",
            json=args,
            headers=self._headers(),
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()
