# src/dblocator/api/v1/database_user.py

from fastapi import APIRouter, status, Query
from typing import List, Optional
from dblocator.core.context import AppContext
from dblocator.api.dependencies.context import AdminContextDep
from dblocator.models import DatabaseRole
from dblocator.schemas.common import JsonResponse, MsgResponse
from dblocator.schemas.credential.database_user_schemas import (
    DatabaseUserCreate, DatabaseUserUpdate, DatabaseUserRead,
    DatabaseUserRoleCreate, DatabaseUserRoleRead
)
from dblocator.services.credential.database_user_service import DatabaseUserService
from dblocator.services.credential.database_user_role_service import DatabaseUserRoleService
from dblocator.services.exceptions import InvalidRequestError

router = APIRouter()

# ==============================================================================
# 1. Database users
# ==============================================================================

@router.post("", response_model=JsonResponse[DatabaseUserRead], status_code=status.HTTP_201_CREATED, summary="Create Database User")
async def create_user(user_in: DatabaseUserCreate, context: AppContext = AdminContextDep):
    user = await DatabaseUserService(context).create_user(user_in)
    return JsonResponse(data=user)

@router.get("", response_model=JsonResponse[List[DatabaseUserRead]], summary="List Database Users")
async def list_users(
    database_id: Optional[int] = Query(None, description="Only users attached to this database"),
    context: AppContext = AdminContextDep
):
    users = await DatabaseUserService(context).list_users(database_id=database_id)
    return JsonResponse(data=users)

@router.get("/{user_id}", response_model=JsonResponse[DatabaseUserRead], summary="Get Database User")
async def get_user(user_id: int, context: AppContext = AdminContextDep):
    user = await DatabaseUserService(context).get_user(user_id)
    return JsonResponse(data=user)

@router.put("/{user_id}", response_model=JsonResponse[DatabaseUserRead], summary="Update Database User")
async def update_user(user_id: int, user_in: DatabaseUserUpdate, context: AppContext = AdminContextDep):
    user = await DatabaseUserService(context).update_user(user_id, user_in)
    return JsonResponse(data=user)

@router.delete("/{user_id}", response_model=MsgResponse, summary="Delete Database User")
async def delete_user(
    user_id: int,
    affect_database: bool = Query(True, description="Also drop the logins and database users"),
    context: AppContext = AdminContextDep
):
    await DatabaseUserService(context).delete_user(user_id, affect_database=affect_database)
    return MsgResponse(msg=f"Database user {user_id} deleted successfully.")

# ==============================================================================
# 2. Role grants
# ==============================================================================

@router.get("/{user_id}/roles", response_model=JsonResponse[List[DatabaseUserRoleRead]], summary="List Granted Roles")
async def list_roles(user_id: int, context: AppContext = AdminContextDep):
    roles = await DatabaseUserRoleService(context).list_roles(user_id)
    return JsonResponse(data=roles)

@router.post("/{user_id}/roles", response_model=JsonResponse[DatabaseUserRoleRead], status_code=status.HTTP_201_CREATED, summary="Grant Role")
async def grant_role(user_id: int, role_in: DatabaseUserRoleCreate, context: AppContext = AdminContextDep):
    user_role = await DatabaseUserRoleService(context).grant_role(user_id, role_in)
    return JsonResponse(data=user_role)

@router.delete("/{user_id}/roles/{role}", response_model=MsgResponse, summary="Revoke Role")
async def revoke_role(
    user_id: int,
    role: str,
    affect_database: bool = Query(True, description="Also remove the role membership on the servers"),
    context: AppContext = AdminContextDep
):
    try:
        parsed = DatabaseRole.parse(role)
    except ValueError as e:
        raise InvalidRequestError(str(e))
    await DatabaseUserRoleService(context).revoke_role(user_id, parsed, affect_database=affect_database)
    return MsgResponse(msg=f"Role {parsed.name} revoked from database user {user_id}.")
