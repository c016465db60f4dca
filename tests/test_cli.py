import csv
import json
import os
import sys

import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
import cli
from db import WorkoutRepository


@pytest.fixture
def paths(tmp_path):
    return str(tmp_path / "cli.db"), str(tmp_path / "settings.yaml")


def test_parse_days():
    assert cli.parse_days("mon,wed,5") == [1, 3, 5]
    assert cli.parse_days("") == []
    with pytest.raises(Exception):
        cli.parse_days("mon,someday")


def test_generate_prints_program(paths, capsys):
    db, yaml_path = paths
    cli.main(
        [
            "generate",
            "--db",
            db,
            "--yaml",
            yaml_path,
            "--goal",
            "hypertrophy",
            "--frequency",
            "4",
            "--days",
            "mon,tue,thu,fri",
        ]
    )
    program = json.loads(capsys.readouterr().out)
    assert [w["name"] for w in program] == ["UPPER A", "LOWER A", "UPPER B", "LOWER B"]
    assert all(w["exercises"] for w in program)


def test_generate_invalid_frequency_exits(paths, capsys):
    db, yaml_path = paths
    with pytest.raises(SystemExit) as exc:
        cli.main(["generate", "--db", db, "--yaml", yaml_path, "--frequency", "7"])
    assert exc.value.code == 1
    assert "error:" in capsys.readouterr().err


def test_generate_for_user_persists(paths):
    db, yaml_path = paths
    info = cli.demo_data(db, yaml_path)
    program = cli.generate_program(
        db, yaml_path, {"equipment": "bodyweight", "frequency": 3}, user_id=info["id"]
    )
    assert len(program) == 3
    assert WorkoutRepository(db).fetch_program(info["id"]) == program


def test_demo_and_export(paths, tmp_path, capsys):
    db, yaml_path = paths
    info = cli.demo_data(db, yaml_path)
    assert info["workouts"] == 4
    assert cli.demo_data(db, yaml_path) is None
    assert "already exists" in capsys.readouterr().out

    csv_path = cli.export_program(db, info["id"], "csv", str(tmp_path))
    with open(csv_path, newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert rows
    assert {r["day"] for r in rows} == {"Monday", "Tuesday", "Thursday", "Friday"}
    assert rows[0]["order_index"] == "0"

    json_path = cli.export_program(db, info["id"], "json", str(tmp_path))
    with open(json_path, encoding="utf-8") as f:
        assert len(json.load(f)) == 4


def test_backup_and_restore(paths, tmp_path):
    db, yaml_path = paths
    info = cli.demo_data(db, yaml_path)
    backup = str(tmp_path / "backup.db")
    cli.main(["backup", "--db", db, "--out", backup])
    WorkoutRepository(db).delete_for_user(info["id"])
    assert WorkoutRepository(db).fetch_program(info["id"]) == []
    cli.main(["restore", "--in", backup, "--db", db])
    assert len(WorkoutRepository(db).fetch_program(info["id"])) == 4


def test_import_catalog_command(paths, tmp_path, capsys):
    db, _ = paths
    dump = tmp_path / "exercises.json"
    dump.write_text(
        json.dumps(
            [
                {
                    "name": "Landmine Press",
                    "primaryMuscles": ["shoulders"],
                    "equipment": "barbell",
                    "level": "beginner",
                    "instructions": ["Press the bar up and forward."],
                }
            ]
        )
    )
    cli.main(["import_catalog", "--json", str(dump), "--db", db])
    assert "1 exercises imported" in capsys.readouterr().out


def test_vacuum_keeps_data(paths):
    db, yaml_path = paths
    info = cli.demo_data(db, yaml_path)
    WorkoutRepository(db).delete_for_user(info["id"])
    cli.main(["vacuum", "--db", db])
    assert WorkoutRepository(db).fetch_program(info["id"]) == []
    assert WorkoutRepository(db).fetch_all("SELECT COUNT(*) FROM users;") == [(1,)]
