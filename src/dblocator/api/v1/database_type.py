# src/dblocator/api/v1/database_type.py

from fastapi import APIRouter, status
from typing import List
from dblocator.core.context import AppContext
from dblocator.api.dependencies.context import AdminContextDep
from dblocator.schemas.common import JsonResponse, MsgResponse
from dblocator.schemas.directory.database_type_schemas import DatabaseTypeCreate, DatabaseTypeUpdate, DatabaseTypeRead
from dblocator.services.directory.database_type_service import DatabaseTypeService

router = APIRouter()

@router.post("", response_model=JsonResponse[DatabaseTypeRead], status_code=status.HTTP_201_CREATED, summary="Create Database Type")
async def create_type(type_in: DatabaseTypeCreate, context: AppContext = AdminContextDep):
    database_type = await DatabaseTypeService(context).create_database_type(type_in)
    return JsonResponse(data=database_type)

@router.get("", response_model=JsonResponse[List[DatabaseTypeRead]], summary="List Database Types")
async def list_types(context: AppContext = AdminContextDep):
    types = await DatabaseTypeService(context).list_database_types()
    return JsonResponse(data=types)

@router.get("/{type_id}", response_model=JsonResponse[DatabaseTypeRead], summary="Get Database Type")
async def get_type(type_id: int, context: AppContext = AdminContextDep):
    database_type = await DatabaseTypeService(context).get_database_type(type_id)
    return JsonResponse(data=database_type)

@router.put("/{type_id}", response_model=JsonResponse[DatabaseTypeRead], summary="Update Database Type")
async def update_type(type_id: int, type_in: DatabaseTypeUpdate, context: AppContext = AdminContextDep):
    database_type = await DatabaseTypeService(context).update_database_type(type_id, type_in)
    return JsonResponse(data=database_type)

@router.delete("/{type_id}", response_model=MsgResponse, summary="Delete Database Type")
async def delete_type(type_id: int, context: AppContext = AdminContextDep):
    await DatabaseTypeService(context).delete_database_type(type_id)
    return MsgResponse(msg=f"Database type {type_id} deleted successfully.")
