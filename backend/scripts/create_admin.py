"""CLI script to create an admin user directly in the database.
Usage: python scripts/create_admin.py
"""
import sys
import pathlib
from getpass import getpass
# Ensure `backend/` is on sys.path so `exercise_api` imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from pydantic import ValidationError
from sqlmodel import Session
from exercise_api.database import engine, create_db_and_tables
from exercise_api import services
from exercise_api.errors import ApiError
from exercise_api.schemas import UserNewIn


def main():
    username = input("Username: ").strip()
    first_name = input("First name: ").strip()
    last_name = input("Last name: ").strip()
    email = input("Email: ").strip()
    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords do not match")
    try:
        profile = UserNewIn(username=username, password=pw1, first_name=first_name,
                            last_name=last_name, email=email, is_admin=True)
    except ValidationError as e:
        raise SystemExit(str(e))
    create_db_and_tables()
    with Session(engine) as session:
        try:
            user = services.UserService(session).register(profile)
        except ApiError as e:
            raise SystemExit(e.message)
    print(f"OK -> admin {user.username} (id {user.id})")


if __name__ == "__main__":
    main()
