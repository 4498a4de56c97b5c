# src/dblocator/api/v1/connection.py

from fastapi import APIRouter, status
from typing import List
from dblocator.core.context import AppContext
from dblocator.api.dependencies.context import AdminContextDep
from dblocator.schemas.common import JsonResponse, MsgResponse
from dblocator.schemas.directory.connection_schemas import (
    ConnectionCreate, ConnectionRead, ConnectionRequest, ConnectionHandleRead
)
from dblocator.services.directory.connection_service import ConnectionService

router = APIRouter()

@router.post("", response_model=JsonResponse[ConnectionRead], status_code=status.HTTP_201_CREATED, summary="Create Connection")
async def create_connection(connection_in: ConnectionCreate, context: AppContext = AdminContextDep):
    connection = await ConnectionService(context).create_connection(connection_in)
    return JsonResponse(data=connection)

@router.get("", response_model=JsonResponse[List[ConnectionRead]], summary="List Connections")
async def list_connections(context: AppContext = AdminContextDep):
    connections = await ConnectionService(context).list_connections()
    return JsonResponse(data=connections)

@router.post("/resolve", response_model=JsonResponse[ConnectionHandleRead], summary="Resolve Connection String")
async def resolve_connection(request_in: ConnectionRequest, context: AppContext = AdminContextDep):
    """
    Resolves a connection id, or a tenant (id or code) plus database type,
    into a connection string for a database user holding the requested roles.
    """
    handle = await ConnectionService(context).resolve(request_in)
    return JsonResponse(data=ConnectionHandleRead.model_validate(handle))

@router.get("/{connection_id}", response_model=JsonResponse[ConnectionRead], summary="Get Connection")
async def get_connection(connection_id: int, context: AppContext = AdminContextDep):
    connection = await ConnectionService(context).get_connection(connection_id)
    return JsonResponse(data=connection)

@router.delete("/{connection_id}", response_model=MsgResponse, summary="Delete Connection")
async def delete_connection(connection_id: int, context: AppContext = AdminContextDep):
    await ConnectionService(context).delete_connection(connection_id)
    return MsgResponse(msg=f"Connection {connection_id} deleted successfully.")
