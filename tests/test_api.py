import os
import sys
import unittest

import yaml
from fastapi.testclient import TestClient

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from rest_api import FitnessAPI


UPPER_LOWER = {
    "goal": "hypertrophy",
    "experience": "intermediate",
    "equipment": "full_gym",
    "injuries": "none",
    "frequency": 4,
    "workout_days": [1, 2, 4, 5],
}


class APITestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_workout.db"
        self.yaml_path = "test_settings.yaml"
        if os.path.exists(self.db_path):
            os.remove(self.db_path)
        if os.path.exists(self.yaml_path):
            os.remove(self.yaml_path)
        self.api = FitnessAPI(db_path=self.db_path, yaml_path=self.yaml_path)
        self.client = TestClient(self.api.app)
        resp = self.client.post("/api/users", params={"username": "alice"})
        self.assertEqual(resp.status_code, 200)
        self.user_id = resp.json()["id"]
        self.headers = {"X-API-Key": resp.json()["api_key"]}

    def tearDown(self) -> None:
        if os.path.exists(self.db_path):
            os.remove(self.db_path)
        if os.path.exists(self.yaml_path):
            os.remove(self.yaml_path)

    def _onboard(self, prefs: dict = UPPER_LOWER) -> list:
        resp = self.client.put(
            "/api/users/me/preferences", json=prefs, headers=self.headers
        )
        self.assertEqual(resp.status_code, 200, resp.text)
        return resp.json()["workouts"]

    def test_health(self) -> None:
        resp = self.client.get("/health")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["status"], "ok")
        self.assertGreater(resp.json()["exercises"], 0)

    def test_authentication(self) -> None:
        self.assertEqual(self.client.get("/api/workouts").status_code, 401)
        resp = self.client.get("/api/workouts", headers={"X-API-Key": "nope"})
        self.assertEqual(resp.status_code, 401)

    def test_duplicate_username(self) -> None:
        resp = self.client.post("/api/users", params={"username": "alice"})
        self.assertEqual(resp.status_code, 400)

    def test_onboarding_flow(self) -> None:
        workouts = self._onboard()
        self.assertEqual([w["day_of_week"] for w in workouts], [1, 2, 4, 5])
        self.assertEqual([w["type"] for w in workouts], ["upper", "lower", "upper", "lower"])

        me = self.client.get("/api/users/me", headers=self.headers).json()
        self.assertTrue(me["onboarding_completed"])
        self.assertEqual(me["preferences"]["workout_days"], [1, 2, 4, 5])
        self.assertEqual(me["preferences"]["session_length_min"], 60)

    def test_generate(self) -> None:
        first = self._onboard()
        resp = self.client.post("/api/workouts/generate", headers=self.headers)
        self.assertEqual(resp.status_code, 201)
        body = resp.json()
        self.assertEqual(body["message"], "Created 4 workouts")
        self.assertEqual(
            [[e["exercise_id"] for e in w["exercises"]] for w in body["workouts"]],
            [[e["exercise_id"] for e in w["exercises"]] for w in first],
        )
        listed = self.client.get("/api/workouts", headers=self.headers).json()
        self.assertEqual(len(listed), 4)
        for workout in listed:
            self.assertEqual(
                [e["order_index"] for e in workout["exercises"]],
                list(range(len(workout["exercises"]))),
            )

    def test_generate_without_preferences(self) -> None:
        resp = self.client.post("/api/workouts/generate", headers=self.headers)
        self.assertEqual(resp.status_code, 400)

    def test_invalid_preferences(self) -> None:
        prefs = dict(UPPER_LOWER, frequency=7)
        resp = self.client.put("/api/users/me/preferences", json=prefs, headers=self.headers)
        self.assertEqual(resp.status_code, 400)
        prefs = dict(UPPER_LOWER, goal="bulk")
        resp = self.client.put("/api/users/me/preferences", json=prefs, headers=self.headers)
        self.assertEqual(resp.status_code, 400)
        me = self.client.get("/api/users/me", headers=self.headers).json()
        self.assertIsNone(me["preferences"])

    def test_insufficient_exercises(self) -> None:
        prefs = {"equipment": "bodyweight", "injuries": "shoulder", "frequency": 3}
        resp = self.client.put("/api/users/me/preferences", json=prefs, headers=self.headers)
        self.assertEqual(resp.status_code, 422)
        detail = resp.json()["detail"]
        self.assertEqual(detail["muscle"], "chest")
        self.assertEqual(detail["split"], "push")
        self.assertIn("error", detail)
        self.assertFalse(
            self.client.get("/api/users/me", headers=self.headers).json()["onboarding_completed"]
        )

    def test_regenerate_and_restore(self) -> None:
        original = self._onboard()
        resp = self.client.post(
            "/api/workouts/regenerate",
            json={"temporary_equipment": ["dumbbell"], "is_temporary": True},
            headers=self.headers,
        )
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()["workouts_created"], 4)
        everything = self.client.get(
            "/api/workouts", params={"include_inactive": True}, headers=self.headers
        ).json()
        self.assertEqual(len(everything), 8)

        resp = self.client.post("/api/workouts/restore", headers=self.headers)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(
            [w["id"] for w in resp.json()["workouts"]], [w["id"] for w in original]
        )
        resp = self.client.post("/api/workouts/restore", headers=self.headers)
        self.assertEqual(resp.status_code, 404)

    def test_regenerate_rejects_unknown_muscle(self) -> None:
        self._onboard()
        resp = self.client.post(
            "/api/workouts/regenerate",
            json={"exclude_muscles": ["banana"]},
            headers=self.headers,
        )
        self.assertEqual(resp.status_code, 400)
        self.assertIn("banana", resp.json()["detail"])

    def test_workout_crud(self) -> None:
        resp = self.client.post(
            "/api/workouts",
            json={"name": "Arms", "type": "custom", "day_of_week": 3},
            headers=self.headers,
        )
        self.assertEqual(resp.status_code, 200)
        wid = resp.json()["id"]

        resp = self.client.post(
            "/api/workouts",
            json={"name": "Clash", "type": "custom", "day_of_week": 3},
            headers=self.headers,
        )
        self.assertEqual(resp.status_code, 400)

        resp = self.client.put(
            f"/api/workouts/{wid}", json={"name": "Big Arms"}, headers=self.headers
        )
        self.assertEqual(resp.status_code, 200)
        detail = self.client.get(f"/api/workouts/{wid}", headers=self.headers).json()
        self.assertEqual(detail["name"], "Big Arms")
        self.assertEqual(detail["exercises"], [])

        resp = self.client.delete(f"/api/workouts/{wid}", headers=self.headers)
        self.assertEqual(resp.json(), {"status": "deleted"})
        resp = self.client.get(f"/api/workouts/{wid}", headers=self.headers)
        self.assertEqual(resp.status_code, 404)

    def test_workout_exercises(self) -> None:
        wid = self.client.post(
            "/api/workouts",
            json={"name": "Arms", "type": "custom", "day_of_week": 3},
            headers=self.headers,
        ).json()["id"]
        ids = []
        for exercise_id in ("barbell-curl", "cable-triceps-pushdown", "dumbbell-hammer-curl"):
            resp = self.client.post(
                f"/api/workouts/{wid}/exercises",
                json={"exercise_id": exercise_id, "target_reps": "10-12"},
                headers=self.headers,
            )
            self.assertEqual(resp.status_code, 200)
            ids.append(resp.json()["id"])

        resp = self.client.post(
            f"/api/workouts/{wid}/exercises",
            json={"exercise_id": "no-such-exercise"},
            headers=self.headers,
        )
        self.assertEqual(resp.status_code, 404)

        resp = self.client.put(
            f"/api/workouts/{wid}/exercises/order",
            json={"order": list(reversed(ids))},
            headers=self.headers,
        )
        self.assertEqual(resp.status_code, 200)
        exercises = self.client.get(f"/api/workouts/{wid}", headers=self.headers).json()["exercises"]
        self.assertEqual([e["id"] for e in exercises], list(reversed(ids)))

        resp = self.client.put(
            f"/api/workouts/{wid}/exercises/order",
            json={"order": ids[:2]},
            headers=self.headers,
        )
        self.assertEqual(resp.status_code, 400)

        resp = self.client.put(
            f"/api/workouts/{wid}/exercises/{ids[0]}",
            json={"exercise_id": "cable-curl", "target_sets": 4},
            headers=self.headers,
        )
        self.assertEqual(resp.status_code, 200)
        resp = self.client.delete(f"/api/workouts/{wid}/exercises/{ids[1]}", headers=self.headers)
        self.assertEqual(resp.status_code, 200)
        exercises = self.client.get(f"/api/workouts/{wid}", headers=self.headers).json()["exercises"]
        self.assertEqual([e["order_index"] for e in exercises], [0, 1])
        self.assertEqual(exercises[1]["exercise_name"], "Cable Curl")
        self.assertEqual(exercises[1]["target_sets"], 4)

    def test_other_users_workout_forbidden(self) -> None:
        self._onboard()
        wid = self.client.get("/api/workouts", headers=self.headers).json()[0]["id"]
        other = self.client.post("/api/users", params={"username": "bob"}).json()
        headers = {"X-API-Key": other["api_key"]}
        self.assertEqual(self.client.get(f"/api/workouts/{wid}", headers=headers).status_code, 403)
        self.assertEqual(self.client.delete(f"/api/workouts/{wid}", headers=headers).status_code, 403)

    def test_reset_program(self) -> None:
        self._onboard()
        resp = self.client.delete("/api/workouts/all", headers=self.headers)
        self.assertEqual(resp.json(), {"status": "deleted", "deleted": 4})
        self.assertEqual(self.client.get("/api/workouts", headers=self.headers).json(), [])
        me = self.client.get("/api/users/me", headers=self.headers).json()
        self.assertFalse(me["onboarding_completed"])

    def test_exercise_catalog(self) -> None:
        resp = self.client.get("/api/exercises", params={"equipment": "bodyweight", "limit": 100})
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.json())
        self.assertTrue(all(e["equipment"] == "body weight" for e in resp.json()))

        resp = self.client.get("/api/exercises", params={"target": "quadriceps"})
        self.assertTrue(all(e["target"] == "quads" for e in resp.json()))

        resp = self.client.get("/api/exercises", params={"max_difficulty": "legendary"})
        self.assertEqual(resp.status_code, 400)

        resp = self.client.get("/api/exercises/push-up")
        self.assertEqual(resp.json()["name"], "Push-Up")
        self.assertEqual(self.client.get("/api/exercises/nope").status_code, 404)

    def test_coach_tool(self) -> None:
        self._onboard()
        resp = self.client.get("/api/coach/tools")
        self.assertIn("swap_exercise", resp.json()["tools"])
        self.assertEqual(len(resp.json()["tools"]), 6)
        resp = self.client.post(
            "/api/coach/tools/explain_exercise",
            json={"exercise_name": "plank"},
            headers=self.headers,
        )
        self.assertTrue(resp.json()["success"])
        resp = self.client.post("/api/coach/tools/dance", json={}, headers=self.headers)
        self.assertEqual(resp.json(), {"success": False, "message": "Unknown tool: dance"})


class AdminKeyTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_admin.db"
        self.yaml_path = "test_admin.yaml"
        if os.path.exists(self.db_path):
            os.remove(self.db_path)
        with open(self.yaml_path, "w", encoding="utf-8") as f:
            yaml.safe_dump({"admin_api_key": "secret", "rate_limit": 3}, f)
        self.api = FitnessAPI(db_path=self.db_path, yaml_path=self.yaml_path)
        self.client = TestClient(self.api.app)

    def tearDown(self) -> None:
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)

    def test_admin_key_and_rate_limit(self) -> None:
        resp = self.client.post("/api/users", params={"username": "carol"})
        self.assertEqual(resp.status_code, 403)
        resp = self.client.post(
            "/api/users",
            params={"username": "carol"},
            headers={"X-Admin-Key": "secret"},
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.client.get("/health").status_code, 200)
        self.assertEqual(self.client.get("/health").status_code, 429)


if __name__ == "__main__":
    unittest.main()
