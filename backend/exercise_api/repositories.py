"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (users,
exercises, favorites). Repositories return SQLModel objects and only
flush; services own the transaction and decide when to commit.
"""

from typing import Iterable, List, Optional
from sqlalchemy import delete, insert, update
from sqlmodel import Session, select
from . import models
from .utils.sql import PartialUpdate


class UserRepository:
    """CRUD operations for `User` objects."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, user: models.User) -> models.User:
        """Insert a new user and return the managed instance.

        Raises `IntegrityError` when the username is already taken.
        """
        self.session.add(user)
        self.session.flush()
        self.session.refresh(user)
        return user

    def get_by_username(self, username: str) -> Optional[models.User]:
        """Return a `User` by username or `None` if not found."""
        stmt = select(models.User).where(models.User.username == username)
        return self.session.exec(stmt).first()

    def get(self, user_id: int) -> Optional[models.User]:
        """Get a `User` by primary key."""
        return self.session.get(models.User, user_id)

    def list_all(self) -> List[models.User]:
        stmt = select(models.User).order_by(models.User.username)
        return self.session.exec(stmt).all()

    def update(self, username: str, changes: PartialUpdate) -> bool:
        """Apply `changes` to the row for `username`.

        Returns False when no row matched.
        """
        stmt = (
            update(models.User)
            .where(models.User.username == username)
            .values(**changes.as_dict())
        )
        result = self.session.exec(stmt)
        return result.rowcount > 0

    def delete(self, user: models.User) -> None:
        """Delete `user` together with their favorite rows."""
        self.session.exec(delete(models.UserFavorite).where(models.UserFavorite.user_id == user.id))
        self.session.delete(user)
        self.session.flush()


class ExerciseRepository:
    """Query and bulk-replace helpers for `Exercise` records."""
    def __init__(self, session: Session):
        self.session = session

    def get(self, exercise_id: int) -> Optional[models.Exercise]:
        """Fetch an exercise by id."""
        return self.session.get(models.Exercise, exercise_id)

    def list_all(self) -> List[models.Exercise]:
        return self.session.exec(select(models.Exercise).order_by(models.Exercise.id)).all()

    def list_targets(self) -> List[str]:
        """Return the distinct targets in alphabetical order."""
        stmt = select(models.Exercise.target).distinct().order_by(models.Exercise.target)
        return self.session.exec(stmt).all()

    def list_by_target(self, target: str) -> List[models.Exercise]:
        stmt = select(models.Exercise).where(models.Exercise.target == target).order_by(models.Exercise.id)
        return self.session.exec(stmt).all()

    def replace_all(self, exercises: Iterable[models.Exercise]) -> int:
        """Delete every exercise (and the favorites pointing at them) and insert `exercises`.

        Nothing is committed here; the caller commits or rolls back the
        whole replacement.
        """
        self.session.exec(delete(models.UserFavorite))
        self.session.exec(delete(models.Exercise))
        count = 0
        for exercise in exercises:
            self.session.add(exercise)
            count += 1
        self.session.flush()
        return count


class FavoriteRepository:
    """Membership operations on the `user_favorites` join table."""
    def __init__(self, session: Session):
        self.session = session

    def exists(self, user_id: int, exercise_id: int) -> bool:
        stmt = select(models.UserFavorite.user_id).where(
            models.UserFavorite.user_id == user_id,
            models.UserFavorite.exercise_id == exercise_id,
        )
        return self.session.exec(stmt).first() is not None

    def add(self, user_id: int, exercise_id: int) -> None:
        """Insert the pair. Raises `IntegrityError` if it is already present."""
        self.session.exec(insert(models.UserFavorite).values(user_id=user_id, exercise_id=exercise_id))

    def remove(self, user_id: int, exercise_id: int) -> None:
        stmt = delete(models.UserFavorite).where(
            models.UserFavorite.user_id == user_id,
            models.UserFavorite.exercise_id == exercise_id,
        )
        self.session.exec(stmt)

    def list_exercises_for_user(self, user_id: int) -> List[models.Exercise]:
        """Return the exercises favorited by `user_id`, ordered by id."""
        stmt = (
            select(models.Exercise)
            .join(models.UserFavorite, models.UserFavorite.exercise_id == models.Exercise.id)
            .where(models.UserFavorite.user_id == user_id)
            .order_by(models.Exercise.id)
        )
        return self.session.exec(stmt).all()
