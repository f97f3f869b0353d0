"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable and provide validation for
controller handlers and tests. Outward user shapes never carry the
password hash.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class LoginIn(BaseModel):
    """Payload for the login endpoint."""
    username: str = Field(min_length=1, max_length=25)
    password: str = Field(min_length=1, max_length=128)


class UserRegisterIn(BaseModel):
    """Payload for self-registration."""
    username: str = Field(min_length=1, max_length=25)
    password: str = Field(min_length=5, max_length=128)
    first_name: str = Field(min_length=1, max_length=30)
    last_name: str = Field(min_length=1, max_length=30)
    email: str = Field(min_length=6, max_length=60)


class UserNewIn(UserRegisterIn):
    """Payload for admins creating users; the new user may be an admin."""
    is_admin: bool = False


class UserUpdateIn(BaseModel):
    """Sparse update payload; unset fields are left untouched.

    Extra keys are accepted here and filtered by the update allow-list.
    """
    model_config = ConfigDict(extra="allow")

    password: Optional[str] = Field(default=None, min_length=5, max_length=128)
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=30)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=30)
    email: Optional[str] = Field(default=None, min_length=6, max_length=60)


class UserOut(BaseModel):
    """Public representation of a user."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    first_name: str
    last_name: str
    email: str
    is_admin: bool = False


class ExerciseOut(BaseModel):
    """Representation of a catalog exercise."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    target: str
    secondary: List[str] = []
    gif: Optional[str] = None
    instructions: List[str] = []


class FavoriteIn(BaseModel):
    """Request body for the favorite toggle."""
    userId: int
    exerciseId: int


class UserFavoritesIn(BaseModel):
    """Request body for listing a user's favorites."""
    userId: int
