# src/dblocator/api/v1/database_server.py

from fastapi import APIRouter, status
from typing import List
from dblocator.core.context import AppContext
from dblocator.api.dependencies.context import AdminContextDep
from dblocator.schemas.common import JsonResponse, MsgResponse
from dblocator.schemas.directory.database_server_schemas import DatabaseServerCreate, DatabaseServerUpdate, DatabaseServerRead
from dblocator.services.directory.database_server_service import DatabaseServerService

router = APIRouter()

@router.post("", response_model=JsonResponse[DatabaseServerRead], status_code=status.HTTP_201_CREATED, summary="Register Database Server")
async def create_server(server_in: DatabaseServerCreate, context: AppContext = AdminContextDep):
    server = await DatabaseServerService(context).create_server(server_in)
    return JsonResponse(data=server)

@router.get("", response_model=JsonResponse[List[DatabaseServerRead]], summary="List Database Servers")
async def list_servers(context: AppContext = AdminContextDep):
    servers = await DatabaseServerService(context).list_servers()
    return JsonResponse(data=servers)

@router.get("/{server_id}", response_model=JsonResponse[DatabaseServerRead], summary="Get Database Server")
async def get_server(server_id: int, context: AppContext = AdminContextDep):
    server = await DatabaseServerService(context).get_server(server_id)
    return JsonResponse(data=server)

@router.put("/{server_id}", response_model=JsonResponse[DatabaseServerRead], summary="Update Database Server")
async def update_server(server_id: int, server_in: DatabaseServerUpdate, context: AppContext = AdminContextDep):
    server = await DatabaseServerService(context).update_server(server_id, server_in)
    return JsonResponse(data=server)

@router.delete("/{server_id}", response_model=MsgResponse, summary="Delete Database Server")
async def delete_server(server_id: int, context: AppContext = AdminContextDep):
    await DatabaseServerService(context).delete_server(server_id)
    return MsgResponse(msg=f"Database server {server_id} deleted successfully.")
