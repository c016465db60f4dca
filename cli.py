import argparse
import csv
import json
import logging
import os
import shutil
from typing import Optional

import catalog_import
from config import YamlConfig
from errors import GeneratorError
from rest_api import FitnessAPI
from schemas import parse_preferences
from tools import DayTools

logger = logging.getLogger(__name__)


def default_db() -> str:
    return os.environ.get("DB_PATH", "workout.db")


def configure_logging(yaml_path: str) -> None:
    settings = YamlConfig(yaml_path).settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def parse_days(value: Optional[str]) -> list[int]:
    if not value:
        return []
    days = []
    for part in value.split(","):
        day = DayTools.parse(part)
        if day is None:
            raise argparse.ArgumentTypeError(f"invalid day: {part}")
        days.append(day)
    return days


def generate_program(
    db_path: str,
    yaml_path: str,
    preferences: dict,
    user_id: Optional[int] = None,
) -> list[dict]:
    """Generate a program and either persist it for ``user_id`` or return it."""
    api = FitnessAPI(db_path=db_path, yaml_path=yaml_path)
    prefs = api.generator.preferences_from(preferences)
    if user_id is not None:
        return api.generator.generate_for_user(user_id, prefs, store_preferences=True)
    snapshot = api.exercise_catalog.snapshot()
    return [w.to_dict() for w in api.generator.generate(prefs, snapshot)]


def export_program(db_path: str, user_id: int, fmt: str, output_dir: str = ".") -> str:
    api = FitnessAPI(db_path=db_path)
    program = api.workouts.fetch_program(user_id)
    if fmt == "json":
        out_path = os.path.join(output_dir, f"program_{user_id}.json")
        with open(out_path, "w", encoding="utf-8") as f:
            json.dump(program, f, indent=2)
        return out_path
    out_path = os.path.join(output_dir, f"program_{user_id}.csv")
    with open(out_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(
            [
                "workout",
                "day",
                "order_index",
                "exercise",
                "sets",
                "reps",
                "rpe",
                "rest_seconds",
                "notes",
            ]
        )
        for workout in program:
            day = workout["day_of_week"]
            for ex in workout["exercises"]:
                writer.writerow(
                    [
                        workout["name"],
                        DayTools.name(day) if day is not None else "",
                        ex["order_index"],
                        ex["exercise_name"],
                        ex["target_sets"],
                        ex["target_reps"],
                        ex["target_rpe"],
                        ex["rest_seconds"],
                        ex["notes"] or "",
                    ]
                )
    return out_path


def backup_db(db_path: str, backup_path: str) -> None:
    shutil.copy(db_path, backup_path)


def restore_db(backup_path: str, db_path: str) -> None:
    shutil.copy(backup_path, db_path)


def demo_data(db_path: str, yaml_path: str) -> Optional[dict]:
    """Create a demo user with a generated four day program."""
    api = FitnessAPI(db_path=db_path, yaml_path=yaml_path)
    try:
        uid = api.users.create("demo")
    except ValueError:
        print("Demo user already exists")
        return None
    key = "demo-key"
    api.api_keys.add(uid, key)
    prefs = parse_preferences(
        {
            "goal": "hypertrophy",
            "experience": "intermediate",
            "equipment": "full_gym",
            "frequency": 4,
            "workout_days": [1, 2, 4, 5],
        }
    )
    workouts = api.generator.generate_for_user(uid, prefs, store_preferences=True)
    print(f"Demo user {uid} created with {len(workouts)} workouts (API key: {key})")
    return {"id": uid, "api_key": key, "workouts": len(workouts)}


def serve(db_path: str, yaml_path: str, host: str, port: int) -> None:
    import uvicorn

    api = FitnessAPI(db_path=db_path, yaml_path=yaml_path)
    uvicorn.run(api.app, host=host, port=port)


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Workout planner commands")
    sub = parser.add_subparsers(dest="cmd", required=True)

    gen = sub.add_parser("generate")
    gen.add_argument("--db", default=default_db())
    gen.add_argument("--yaml", default="settings.yaml")
    gen.add_argument("--user", type=int)
    gen.add_argument(
        "--goal",
        choices=["hypertrophy", "strength", "fat_loss", "general", "endurance"],
        default="general",
    )
    gen.add_argument(
        "--experience",
        choices=["beginner", "intermediate", "advanced"],
        default="intermediate",
    )
    gen.add_argument(
        "--equipment", choices=["full_gym", "home_gym", "bodyweight"], default="full_gym"
    )
    gen.add_argument("--injuries", default="none")
    gen.add_argument("--frequency", type=int, default=3)
    gen.add_argument("--days", type=parse_days, default=[])
    gen.add_argument("--session", type=int)

    exp = sub.add_parser("export")
    exp.add_argument("--db", default=default_db())
    exp.add_argument("--user", type=int, required=True)
    exp.add_argument("--fmt", choices=["csv", "json"], default="csv")
    exp.add_argument("--out", default=".")

    demo = sub.add_parser("demo")
    demo.add_argument("--db", default=default_db())
    demo.add_argument("--yaml", default="settings.yaml")

    imp = sub.add_parser("import_catalog")
    imp.add_argument("--json", required=True)
    imp.add_argument("--db", default=default_db())
    imp.add_argument("--pilot", action="store_true")
    imp.add_argument("--dry-run", action="store_true")

    bkp = sub.add_parser("backup")
    bkp.add_argument("--db", default=default_db())
    bkp.add_argument("--out", default="backup.db")

    rst = sub.add_parser("restore")
    rst.add_argument("--in", dest="src", default="backup.db")
    rst.add_argument("--db", default=default_db())

    vac = sub.add_parser("vacuum")
    vac.add_argument("--db", default=default_db())

    srv = sub.add_parser("serve")
    srv.add_argument("--db", default=default_db())
    srv.add_argument("--yaml", default="settings.yaml")
    srv.add_argument("--host", default="127.0.0.1")
    srv.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)
    configure_logging(getattr(args, "yaml", "settings.yaml"))

    if args.cmd == "generate":
        preferences = {
            "goal": args.goal,
            "experience": args.experience,
            "equipment": args.equipment,
            "injuries": args.injuries,
            "frequency": args.frequency,
            "workout_days": args.days,
        }
        if args.session is not None:
            preferences["session_length_min"] = args.session
        try:
            program = generate_program(args.db, args.yaml, preferences, args.user)
        except GeneratorError as e:
            parser.exit(1, f"error: {e}\n")
        print(json.dumps(program, indent=2))
    elif args.cmd == "export":
        print(export_program(args.db, args.user, args.fmt, args.out))
    elif args.cmd == "demo":
        demo_data(args.db, args.yaml)
    elif args.cmd == "import_catalog":
        api = FitnessAPI(db_path=args.db)
        count = catalog_import.import_file(
            api.exercise_catalog, args.json, args.pilot, args.dry_run
        )
        print(f"{count} exercises imported")
    elif args.cmd == "backup":
        backup_db(args.db, args.out)
    elif args.cmd == "restore":
        restore_db(args.src, args.db)
    elif args.cmd == "vacuum":
        FitnessAPI(db_path=args.db).workouts.vacuum()
    elif args.cmd == "serve":
        serve(args.db, args.yaml, args.host, args.port)


if __name__ == "__main__":
    main()
