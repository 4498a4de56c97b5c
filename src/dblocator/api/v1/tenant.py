# src/dblocator/api/v1/tenant.py

from fastapi import APIRouter, status
from typing import List
from dblocator.core.context import AppContext
from dblocator.api.dependencies.context import AdminContextDep
from dblocator.schemas.common import JsonResponse, MsgResponse
from dblocator.schemas.directory.tenant_schemas import TenantCreate, TenantUpdate, TenantRead
from dblocator.services.directory.tenant_service import TenantService

router = APIRouter()

@router.post("", response_model=JsonResponse[TenantRead], status_code=status.HTTP_201_CREATED, summary="Create Tenant")
async def create_tenant(tenant_in: TenantCreate, context: AppContext = AdminContextDep):
    tenant = await TenantService(context).create_tenant(tenant_in)
    return JsonResponse(data=tenant)

@router.get("", response_model=JsonResponse[List[TenantRead]], summary="List Tenants")
async def list_tenants(context: AppContext = AdminContextDep):
    tenants = await TenantService(context).list_tenants()
    return JsonResponse(data=tenants)

@router.get("/by-code/{code}", response_model=JsonResponse[TenantRead], summary="Get Tenant by Code")
async def get_tenant_by_code(code: str, context: AppContext = AdminContextDep):
    tenant = await TenantService(context).get_tenant_by_code(code)
    return JsonResponse(data=tenant)

@router.get("/{tenant_id}", response_model=JsonResponse[TenantRead], summary="Get Tenant")
async def get_tenant(tenant_id: int, context: AppContext = AdminContextDep):
    tenant = await TenantService(context).get_tenant(tenant_id)
    return JsonResponse(data=tenant)

@router.put("/{tenant_id}", response_model=JsonResponse[TenantRead], summary="Update Tenant")
async def update_tenant(tenant_id: int, tenant_in: TenantUpdate, context: AppContext = AdminContextDep):
    tenant = await TenantService(context).update_tenant(tenant_id, tenant_in)
    return JsonResponse(data=tenant)

@router.delete("/{tenant_id}", response_model=MsgResponse, summary="Delete Tenant")
async def delete_tenant(tenant_id: int, context: AppContext = AdminContextDep):
    await TenantService(context).delete_tenant(tenant_id)
    return MsgResponse(msg=f"Tenant {tenant_id} deleted successfully.")
