from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from sqlalchemy import select

from crud_app.core.db.connection import Database
from crud_app.core.errors import UserNotFoundError, UserValidationError
from crud_app.feature.user.model import users_table
from crud_app.feature.user.schemas import UserRead, UserWrite
from crud_app.feature.user.validation import normalize_user, validate_user


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _validated(payload: Mapping[str, Any], *, user_id: str | None = None) -> UserWrite:
    result = validate_user(payload)
    if not result.valid:
        context: dict[str, Any] = {"data": {key: payload.get(key) for key in ("fullname", "study_level", "age")}}
        if user_id is not None:
            context["id"] = user_id
        raise UserValidationError(result.error or "", context=context)
    return normalize_user(payload)


async def list_users(database: Database) -> list[UserRead]:
    result = await database.execute(select(users_table).order_by(users_table.c.created_at.desc()))
    return [UserRead.model_validate(row) for row in result.rows]


async def get_user(database: Database, user_id: str) -> UserRead:
    result = await database.execute(select(users_table).where(users_table.c.id == user_id))
    if not result.rows:
        raise UserNotFoundError(user_id)
    return UserRead.model_validate(result.rows[0])


async def create_user(database: Database, payload: Mapping[str, Any]) -> UserRead:
    user = _validated(payload)
    now = _now()
    record = UserRead(id=str(uuid4()), created_at=now, updated_at=now, **user.model_dump())
    await database.execute(users_table.insert().values(**record.model_dump()))
    return record


async def update_user(database: Database, user_id: str, payload: Mapping[str, Any]) -> UserRead:
    user = _validated(payload, user_id=user_id)

    existing = await database.execute(select(users_table).where(users_table.c.id == user_id))
    if not existing.rows:
        raise UserNotFoundError(user_id)

    # Last write wins: there is no version check between the lookup and the update.
    values = {**user.model_dump(), "updated_at": _now()}
    await database.execute(users_table.update().where(users_table.c.id == user_id).values(**values))
    return UserRead.model_validate({**existing.rows[0], **values})


async def delete_user(database: Database, user_id: str) -> None:
    result = await database.execute(users_table.delete().where(users_table.c.id == user_id))
    if result.rowcount == 0:
        raise UserNotFoundError(user_id)
