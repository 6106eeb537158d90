import json
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request

from crud_app.core.db.connection import Database, get_database
from crud_app.core.errors import RequestBodyError
from crud_app.core.schemas import ApiResponse
from crud_app.feature.user import service
from crud_app.utils.operation_log import Outcome, logged_operation

router = APIRouter(prefix="/users", tags=["users"])

DatabaseDep = Annotated[Database, Depends(get_database)]


async def _read_payload(request: Request) -> dict[str, Any]:
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        payload = json.loads(raw)
    except ValueError as exc:
        raise RequestBodyError("Corps de requête JSON invalide") from exc
    # Anything but an object carries none of the fields and fails the required check.
    return payload if isinstance(payload, dict) else {}


@router.get("", response_model=None)
@logged_operation("list_users", started="Fetching all users", succeeded="Users fetched")
async def list_users(request: Request, database: DatabaseDep) -> Outcome:
    users = await service.list_users(database)
    data = [user.model_dump(mode="json") for user in users]
    return Outcome(200, ApiResponse(success=True, data=data, count=len(data)), {"count": len(data)})


@router.get("/{user_id}", response_model=None)
@logged_operation(
    "get_user",
    started="Fetching user by id",
    succeeded="User fetched",
    rejected="User not found",
)
async def get_user(request: Request, user_id: str, database: DatabaseDep) -> Outcome:
    user = await service.get_user(database, user_id)
    return Outcome(
        200,
        ApiResponse(success=True, data=user.model_dump(mode="json")),
        {"id": user.id, "fullname": user.fullname},
    )


@router.post("", response_model=None, status_code=201)
@logged_operation(
    "create_user",
    started="Creating user",
    succeeded="User created",
    rejected="User creation rejected",
)
async def create_user(request: Request, database: DatabaseDep) -> Outcome:
    payload = await _read_payload(request)
    user = await service.create_user(database, payload)
    return Outcome(
        201,
        ApiResponse(success=True, data=user.model_dump(mode="json"), message="Utilisateur créé avec succès"),
        {"id": user.id, "fullname": user.fullname},
    )


@router.put("/{user_id}", response_model=None)
@logged_operation(
    "update_user",
    started="Updating user",
    succeeded="User updated",
    rejected="User update rejected",
)
async def update_user(request: Request, user_id: str, database: DatabaseDep) -> Outcome:
    payload = await _read_payload(request)
    user = await service.update_user(database, user_id, payload)
    return Outcome(
        200,
        ApiResponse(success=True, data=user.model_dump(mode="json"), message="Utilisateur mis à jour avec succès"),
        {"id": user.id, "fullname": user.fullname},
    )


@router.delete("/{user_id}", response_model=None)
@logged_operation(
    "delete_user",
    started="Deleting user",
    succeeded="User deleted",
    rejected="User deletion rejected",
)
async def delete_user(request: Request, user_id: str, database: DatabaseDep) -> Outcome:
    await service.delete_user(database, user_id)
    return Outcome(200, ApiResponse(success=True, message="Utilisateur supprimé avec succès"), {"id": user_id})
