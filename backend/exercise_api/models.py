"""SQLModel data models.

This module defines the application's database tables using SQLModel.
Table names follow the storage schema: `users`, `exercises` and the
`user_favorites` join table.
"""

from typing import List, Optional
from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field


class User(SQLModel, table=True):
    """A registered user.

    Fields:
    - `username`: unique login name
    - `password_hash`: hashed password string (never store plaintext)
    - `is_admin`: elevated-privilege flag
    """
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, nullable=False, unique=True)
    password_hash: str
    first_name: str
    last_name: str
    email: str
    is_admin: bool = False


class Exercise(SQLModel, table=True):
    """An exercise from the external catalog.

    `secondary` and `instructions` are stored as JSON lists; the order of
    `instructions` is significant.
    """
    __tablename__ = "exercises"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    target: str = Field(index=True)
    secondary: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    gif: Optional[str] = None
    instructions: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))


class UserFavorite(SQLModel, table=True):
    """Membership of an exercise in a user's favorites.

    The composite primary key makes the relation a set: at most one row
    per (user, exercise) pair.
    """
    __tablename__ = "user_favorites"

    user_id: int = Field(foreign_key="users.id", primary_key=True)
    exercise_id: int = Field(foreign_key="exercises.id", primary_key=True)
