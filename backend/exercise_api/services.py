"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate repositories
and auxiliary logic. Services own the unit of work: each mutating call
commits once, and any failure rolls the session back (see
`errors.storage_errors`).
"""

import logging
from typing import List, Optional

import requests
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from . import models, repositories
from .config import settings
from .errors import BadRequestError, NotFoundError, UnauthorizedError, storage_errors
from .schemas import ExerciseOut, UserNewIn, UserOut
from .utils.sql import USER_UPDATE_FIELDS, sql_for_partial_update

logger = logging.getLogger("exercise_api.services")

PWD_CTX = CryptContext(
    schemes=["pbkdf2_sha256"],
    deprecated="auto",
    pbkdf2_sha256__default_rounds=settings.PASSWORD_HASH_ROUNDS,
)


class UserService:
    """Credential store: registration, login and user row maintenance."""
    def __init__(self, session: Session, pwd_ctx: CryptContext = PWD_CTX):
        self.session = session
        self.pwd_ctx = pwd_ctx
        self.user_repo = repositories.UserRepository(session)

    @storage_errors
    def authenticate(self, username: str, password: str) -> UserOut:
        """Verify credentials and return the public user.

        Unknown usernames and wrong passwords raise the same
        `UnauthorizedError`.
        """
        user = self.user_repo.get_by_username(username)
        if user is None:
            # keep response time close to the wrong-password path
            self.pwd_ctx.dummy_verify()
        elif self.pwd_ctx.verify(password, user.password_hash):
            return UserOut.model_validate(user)
        logger.info("login failed for username=%r", username)
        raise UnauthorizedError("Invalid username/password")

    @storage_errors
    def register(self, profile: UserNewIn) -> UserOut:
        """Create a user with a hashed password.

        `profile` may be a `UserRegisterIn` (never admin) or a `UserNewIn`.
        Raises `BadRequestError` on duplicate usernames, whether caught
        by the pre-check or by the unique constraint.
        """
        if self.user_repo.get_by_username(profile.username) is not None:
            raise BadRequestError(f"Duplicate username: {profile.username}")
        user = models.User(
            username=profile.username,
            password_hash=self.pwd_ctx.hash(profile.password),
            first_name=profile.first_name,
            last_name=profile.last_name,
            email=profile.email,
            is_admin=getattr(profile, "is_admin", False),
        )
        try:
            self.user_repo.create(user)
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            if self.user_repo.get_by_username(profile.username) is not None:
                raise BadRequestError(f"Duplicate username: {profile.username}")
            raise
        self.session.refresh(user)
        logger.info("registered user %s (admin=%s)", user.username, user.is_admin)
        return UserOut.model_validate(user)

    @storage_errors
    def get(self, username: str) -> UserOut:
        user = self.user_repo.get_by_username(username)
        if user is None:
            raise NotFoundError(f"No user: {username}")
        return UserOut.model_validate(user)

    @storage_errors
    def get_id(self, username: str) -> Optional[int]:
        """Return the id for `username`, or `None` if there is no such user."""
        user = self.user_repo.get_by_username(username)
        return user.id if user is not None else None

    @storage_errors
    def get_all(self) -> List[UserOut]:
        return [UserOut.model_validate(u) for u in self.user_repo.list_all()]

    @storage_errors
    def update(self, username: str, data: dict) -> UserOut:
        """Partially update a user; only the fields present in `data` change.

        A replacement `password` is hashed before it is stored. Keys outside
        the update allow-list are ignored.
        """
        data = dict(data)
        if "password" in data:
            password = data["password"]
            if not isinstance(password, str) or not password:
                raise BadRequestError("Password must be a non-empty string")
            data["password"] = self.pwd_ctx.hash(password)
        changes = sql_for_partial_update(data, USER_UPDATE_FIELDS)
        if not self.user_repo.update(username, changes):
            raise NotFoundError(f"No user: {username}")
        self.session.commit()
        return self.get(username)

    @storage_errors
    def remove(self, username: str) -> None:
        user = self.user_repo.get_by_username(username)
        if user is None:
            raise NotFoundError(f"No user: {username}")
        self.user_repo.delete(user)
        self.session.commit()
        logger.info("removed user %s", username)


class FavoriteService:
    """Favorites registrar: toggles membership in `user_favorites`."""
    def __init__(self, session: Session, strict_empty: Optional[bool] = None):
        self.session = session
        self.strict_empty = settings.STRICT_EMPTY_FAVORITES if strict_empty is None else strict_empty
        self.user_repo = repositories.UserRepository(session)
        self.exercise_repo = repositories.ExerciseRepository(session)
        self.favorite_repo = repositories.FavoriteRepository(session)

    @storage_errors
    def toggle(self, user_id: int, exercise_id: int) -> ExerciseOut:
        """Add the exercise to the user's favorites, or remove it if present.

        Both ids are checked before anything is written. Returns the
        (unchanged) exercise as confirmation.
        """
        if self.user_repo.get(user_id) is None:
            raise NotFoundError(f"No user with ID: {user_id}")
        exercise = self.exercise_repo.get(exercise_id)
        if exercise is None:
            raise NotFoundError(f"No exercise with ID: {exercise_id}")

        if self.favorite_repo.exists(user_id, exercise_id):
            self.favorite_repo.remove(user_id, exercise_id)
            self.session.commit()
            logger.info("user %s unfavorited exercise %s", user_id, exercise_id)
        else:
            try:
                self.favorite_repo.add(user_id, exercise_id)
                self.session.commit()
                logger.info("user %s favorited exercise %s", user_id, exercise_id)
            except IntegrityError:
                self.session.rollback()
                exercise = self.exercise_repo.get(exercise_id)
                if exercise is None:
                    raise NotFoundError(f"No exercise with ID: {exercise_id}")
                if not self.favorite_repo.exists(user_id, exercise_id):
                    raise
                # a concurrent identical toggle inserted the pair first
                logger.info("favorite %s/%s already present", user_id, exercise_id)
        return ExerciseOut.model_validate(exercise)

    @storage_errors
    def list_favorites(self, user_id: int) -> List[ExerciseOut]:
        """Return the exercises `user_id` has favorited, ordered by id.

        An empty result is returned as `[]` unless strict mode is enabled,
        which restores the legacy `BadRequestError`.
        """
        exercises = self.favorite_repo.list_exercises_for_user(user_id)
        if not exercises and self.strict_empty:
            raise BadRequestError("No favorited exercises for user")
        return [ExerciseOut.model_validate(e) for e in exercises]


class ExerciseService:
    """Read access to the exercise catalog and its bulk refresh."""
    def __init__(self, session: Session):
        self.session = session
        self.exercise_repo = repositories.ExerciseRepository(session)

    @storage_errors
    def get(self, exercise_id: int) -> ExerciseOut:
        exercise = self.exercise_repo.get(exercise_id)
        if exercise is None:
            raise NotFoundError(f"No exercise with id: {exercise_id}")
        return ExerciseOut.model_validate(exercise)

    @storage_errors
    def get_all(self) -> List[ExerciseOut]:
        return [ExerciseOut.model_validate(e) for e in self.exercise_repo.list_all()]

    @storage_errors
    def get_targets(self) -> List[str]:
        return self.exercise_repo.list_targets()

    @storage_errors
    def get_target_exercises(self, target: str) -> List[ExerciseOut]:
        return [ExerciseOut.model_validate(e) for e in self.exercise_repo.list_by_target(target)]

    def refresh_data(self) -> List[ExerciseOut]:
        """Replace the whole exercise table with the external catalog.

        The fetch, delete and inserts form one transaction; any failure
        rolls it back and is reported as a single `BadRequestError`.
        Existing favorites are cleared since exercise ids are reassigned.
        """
        try:
            rows = fetch_catalog()
            exercises = [
                models.Exercise(
                    name=row["name"],
                    target=row["target"],
                    secondary=list(row.get("secondaryMuscles") or []),
                    gif=row.get("gifUrl"),
                    instructions=list(row.get("instructions") or []),
                )
                for row in rows
            ]
            count = self.exercise_repo.replace_all(exercises)
            self.session.commit()
        except Exception as exc:
            self.session.rollback()
            logger.exception("exercise refresh failed")
            raise BadRequestError(f"Can't refresh exercise table: {exc}") from exc
        logger.info("exercise table refreshed with %d rows", count)
        return self.get_all()


def fetch_catalog() -> list:
    """Download the raw exercise list from the external catalog API."""
    response = requests.get(
        settings.EXERCISE_API_URL,
        params={"limit": "2000"},
        headers={
            "X-RapidAPI-Key": settings.EXERCISE_API_KEY,
            "X-RapidAPI-Host": settings.EXERCISE_API_HOST,
        },
        timeout=settings.EXERCISE_API_TIMEOUT,
    )
    response.raise_for_status()
    data = response.json()
    if not isinstance(data, list):
        raise ValueError("unexpected catalog payload")
    return data
