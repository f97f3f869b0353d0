"""Helpers for building partial UPDATE statements from sparse payloads."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping

from ..errors import BadRequestError


@dataclass(frozen=True)
class UpdatableField:
    """Column an external field maps to, and whether callers may change it."""
    column: str
    mutable: bool = True


@dataclass
class PartialUpdate:
    """Ordered column assignments and their bound values.

    `values[i]` is the value for `columns[i]`. Values are always passed to
    the database as bound parameters, never interpolated into SQL.
    """
    columns: List[str] = field(default_factory=list)
    values: List[Any] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return dict(zip(self.columns, self.values))


USER_UPDATE_FIELDS: Mapping[str, UpdatableField] = {
    "first_name": UpdatableField("first_name"),
    "last_name": UpdatableField("last_name"),
    "email": UpdatableField("email"),
    "password": UpdatableField("password_hash"),
    "username": UpdatableField("username", mutable=False),
    "is_admin": UpdatableField("is_admin", mutable=False),
}


def sql_for_partial_update(data: Mapping[str, Any], fields: Mapping[str, UpdatableField]) -> PartialUpdate:
    """Map `data` onto the columns declared in `fields`.

    Keys that are unknown or declared immutable are dropped without error.
    Output order follows the insertion order of `data`.

    >>> sql_for_partial_update({"email": "x@y.com", "junk": 1}, USER_UPDATE_FIELDS).as_dict()
    {'email': 'x@y.com'}
    """
    if not data:
        raise BadRequestError("No data")
    update = PartialUpdate()
    for key, value in data.items():
        entry = fields.get(key)
        if entry is None or not entry.mutable:
            continue
        update.columns.append(entry.column)
        update.values.append(value)
    if not update.columns:
        raise BadRequestError("No updatable fields supplied")
    return update
