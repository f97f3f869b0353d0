"""CLI script to refresh the exercises table from the external catalog.
Usage: python scripts/refresh_exercises.py [--dry-run]
"""
import sys
import argparse
import pathlib
# Ensure `backend/` is on sys.path so `exercise_api` imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session
from exercise_api.database import engine, create_db_and_tables
from exercise_api import services
from exercise_api.errors import ApiError


def main(dry_run: bool = False):
    """Fetch the catalog and replace the exercises table.

    With `dry_run` the catalog is only fetched and counted. Results are
    printed to stdout for a quick CLI feedback loop.
    """
    if dry_run:
        rows = services.fetch_catalog()
        print(f'Catalog returned {len(rows)} exercises (dry run, nothing written)')
        return 0
    create_db_and_tables()
    with Session(engine) as session:
        try:
            exercises = services.ExerciseService(session).refresh_data()
        except ApiError as e:
            print(e.message)
            return 1
    print(f'Exercise table refreshed: {len(exercises)} rows')
    return 0

if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('--dry-run', action='store_true', help='Fetch the catalog without touching the database')
    args = parser.parse_args()
    sys.exit(main(dry_run=args.dry_run))
