from __future__ import annotations

import argparse

# (name, muscle_group, equipment)
STARTER_CATALOG = [
    ("Push-ups", "chest", "bodyweight"),
    ("Bench Press", "chest", "barbell"),
    ("Dumbbell Bench Press", "chest", "dumbbells"),
    ("Overhead Press", "shoulders", "barbell"),
    ("Dumbbell Shoulder Press", "shoulders", "dumbbells"),
    ("Pike Push-ups", "shoulders", "bodyweight"),
    ("Bench Dips", "triceps", "bodyweight"),
    ("Band Triceps Pushdown", "triceps", "resistance-band"),
    ("Pull-ups", "back", "pull-up-bar"),
    ("Bent-over Row", "back", "barbell"),
    ("One-arm Dumbbell Row", "back", "dumbbells"),
    ("Inverted Row", "back", "bodyweight"),
    ("Dumbbell Curl", "biceps", "dumbbells"),
    ("Band Curl", "biceps", "resistance-band"),
    ("Squats", "legs", "bodyweight"),
    ("Back Squat", "legs", "barbell"),
    ("Goblet Squat", "legs", "kettlebell"),
    ("Walking Lunges", "legs", "bodyweight"),
    ("Glute Bridge", "glutes", "bodyweight"),
    ("Kettlebell Swing", "glutes", "kettlebell"),
    ("Deadlift", "hamstrings", "barbell"),
    ("Romanian Deadlift", "hamstrings", "dumbbells"),
    ("Box Jumps", "legs", "plyo-box"),
    ("Running", "cardio", "bodyweight"),
    ("Jump Rope", "cardio", "bodyweight"),
    ("Burpees", "full body", "bodyweight"),
    ("Plank", "core", "bodyweight"),
    ("Crunches", "core", "bodyweight"),
    ("Mountain Climbers", "core", "bodyweight"),
]


def main() -> int:
    parser = argparse.ArgumentParser(description="Load the starter exercise catalog (skips names already present).")
    parser.add_argument("--dry-run", action="store_true", help="Print what would be inserted, without inserting")
    args = parser.parse_args()

    # NOTE: run from the repository root so `core` and `models` are importable.
    from core.database import SessionLocal
    from models import Exercise

    db = SessionLocal()
    try:
        existing = {name for (name,) in db.query(Exercise.name).all()}
        missing = [row for row in STARTER_CATALOG if row[0] not in existing]

        print("Exercise catalog seed")
        print(f"- present: {len(existing)}")
        print(f"- to insert: {len(missing)}")
        for name, muscle_group, equipment in missing:
            print(f"  - {name} ({muscle_group}, {equipment})")

        if args.dry_run:
            print("Dry run: no rows inserted.")
            return 0

        # One at a time so created_at follows catalog order.
        for name, muscle_group, equipment in missing:
            db.add(Exercise(name=name, muscle_group=muscle_group, equipment=equipment))
            db.flush()
        db.commit()
        print(f"Inserted {len(missing)} exercise(s).")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    raise SystemExit(main())
