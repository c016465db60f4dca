import json
import os
import sys

import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
import catalog_import
from db import ExerciseCatalogRepository


def _entry(name, muscle="chest", equipment="barbell", **kw):
    entry = {
        "name": name,
        "primaryMuscles": [muscle],
        "secondaryMuscles": kw.pop("secondary", []),
        "equipment": equipment,
        "level": kw.pop("level", "beginner"),
        "mechanic": kw.pop("mechanic", "compound"),
        "instructions": ["Do the movement."],
    }
    entry.update(kw)
    return entry


class TestTransform:
    def test_ids_and_names(self):
        assert catalog_import.generate_exercise_id("Barbell Bench Press - Medium Grip") == (
            "barbell-bench-press-medium-grip"
        )
        assert catalog_import.generate_exercise_id("Alternate_Hammer_Curl") == "alternate-hammer-curl"
        assert catalog_import.normalize_exercise_name("bent OVER row") == "Bent Over Row"

    def test_transform_entry_maps_vocabulary(self):
        record = catalog_import.transform_entry(
            _entry("Pushups", equipment="body only", level="expert", secondary=["triceps"])
        )
        assert record.id == "pushups"
        assert record.equipment == "body weight"
        assert record.difficulty == "expert"
        assert record.body_part == "chest"
        assert record.secondary_muscles == ("triceps",)

        quad = catalog_import.transform_entry(_entry("Leg Extensions", "quadriceps", "machine", level="pro"))
        assert quad.target == "quads"
        assert quad.equipment == "leverage machine"
        assert quad.difficulty == "intermediate"

    def test_invalid_and_duplicate_entries_skipped(self, caplog):
        entries = [
            _entry("Plank", "abdominals", "body only"),
            _entry("plank", "abdominals", "body only"),
            {"name": "No Muscles", "instructions": ["x"]},
            _entry("No Steps", instructions=[]),
        ]
        with caplog.at_level("INFO"):
            records = catalog_import.transform_entries(entries)
        assert [r.id for r in records] == ["plank"]
        assert "Skipped 3" in caplog.text

    def test_pilot_subset(self):
        entries = [_entry("Barbell Deadlift", "hamstrings"), _entry("Zercher Squat", "quadriceps")]
        records = catalog_import.transform_entries(entries, catalog_import.PILOT_EXERCISES)
        assert [r.name for r in records] == ["Barbell Deadlift"]


class TestImportFile:
    def test_import_upserts(self, tmp_path):
        path = tmp_path / "exercises.json"
        path.write_text(
            json.dumps(
                [
                    _entry("Landmine Press", "shoulders"),
                    _entry("Push-Up", "chest", "body only", id="push-up"),
                ]
            )
        )
        repo = ExerciseCatalogRepository(str(tmp_path / "catalog.db"))
        before = len(repo.fetch_records())

        assert catalog_import.import_file(repo, str(path), dry_run=True) == 2
        assert len(repo.fetch_records()) == before

        assert catalog_import.import_file(repo, str(path)) == 2
        assert len(repo.fetch_records()) == before + 1
        assert repo.fetch_detail("landmine-press").target == "shoulders"
        assert repo.fetch_records()[-1].id == "landmine-press"

    def test_rejects_non_list(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"exercises": []}))
        with pytest.raises(ValueError):
            catalog_import.load_file(str(path))
