# src/dblocator/api/v1/database.py

from fastapi import APIRouter, status, Query
from typing import List
from dblocator.core.context import AppContext
from dblocator.api.dependencies.context import AdminContextDep
from dblocator.schemas.common import JsonResponse, MsgResponse
from dblocator.schemas.directory.database_schemas import DatabaseCreate, DatabaseUpdate, DatabaseRead
from dblocator.services.directory.database_service import DatabaseService

router = APIRouter()

@router.post("", response_model=JsonResponse[DatabaseRead], status_code=status.HTTP_201_CREATED, summary="Create Database")
async def create_database(database_in: DatabaseCreate, context: AppContext = AdminContextDep):
    database = await DatabaseService(context).create_database(database_in)
    return JsonResponse(data=database)

@router.get("", response_model=JsonResponse[List[DatabaseRead]], summary="List Databases")
async def list_databases(context: AppContext = AdminContextDep):
    databases = await DatabaseService(context).list_databases()
    return JsonResponse(data=databases)

@router.get("/{database_id}", response_model=JsonResponse[DatabaseRead], summary="Get Database")
async def get_database(database_id: int, context: AppContext = AdminContextDep):
    database = await DatabaseService(context).get_database(database_id)
    return JsonResponse(data=database)

@router.put("/{database_id}", response_model=JsonResponse[DatabaseRead], summary="Update Database")
async def update_database(database_id: int, database_in: DatabaseUpdate, context: AppContext = AdminContextDep):
    database = await DatabaseService(context).update_database(database_id, database_in)
    return JsonResponse(data=database)

@router.delete("/{database_id}", response_model=MsgResponse, summary="Delete Database")
async def delete_database(
    database_id: int,
    affect_database: bool = Query(True, description="Also drop the physical database"),
    context: AppContext = AdminContextDep
):
    await DatabaseService(context).delete_database(database_id, affect_database=affect_database)
    return MsgResponse(msg=f"Database {database_id} deleted successfully.")
