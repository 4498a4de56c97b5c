# src/dblocator/services/directory/tenant_service.py

import logging
from typing import List
from sqlalchemy.exc import IntegrityError
from dblocator.core.context import AppContext
from dblocator.dao.directory.connection_dao import ConnectionDao
from dblocator.dao.directory.tenant_dao import TenantDao
from dblocator.models import Tenant
from dblocator.schemas.directory.tenant_schemas import TenantCreate, TenantUpdate, TenantRead
from dblocator.services.cache_service import (
    TENANTS_KEY, CONNECTIONS_KEY, tenant_key, tenant_code_key
)
from dblocator.services.exceptions import NotFoundError, ConflictError

logger = logging.getLogger(__name__)

class TenantService:
    """Tenants: the customers connections are resolved for."""
    def __init__(self, context: AppContext):
        self.context = context
        self.db = context.db
        self.cache = context.cache
        self.dao = TenantDao(self.db)
        self.connection_dao = ConnectionDao(self.db)

    async def create_tenant(self, data: TenantCreate) -> TenantRead:
        await self._ensure_unique(data.name, data.code)
        tenant = Tenant(name=data.name, code=data.code, status=int(data.status))
        try:
            tenant = await self.dao.add(tenant)
        except IntegrityError:
            raise ConflictError(f"Tenant '{data.name}' already exists.")
        await self.db.commit()
        await self.cache.remove(TENANTS_KEY)
        logger.info(f"Created tenant {tenant.id} ({tenant.name}).")
        return TenantRead.model_validate(tenant)

    async def get_tenant(self, tenant_id: int) -> TenantRead:
        cached = await self.cache.get(tenant_key(tenant_id))
        if cached is not None:
            return TenantRead.model_validate(cached)
        tenant = await self._get_or_404(tenant_id)
        result = TenantRead.model_validate(tenant)
        await self.cache.put(tenant_key(tenant_id), result.model_dump(mode="json"))
        return result

    async def get_tenant_by_code(self, code: str) -> TenantRead:
        cached = await self.cache.get(tenant_code_key(code))
        if cached is not None:
            return TenantRead.model_validate(cached)
        tenant = await self.dao.get_by_code(code)
        if not tenant:
            raise NotFoundError(f"Tenant with code {code} not found.")
        result = TenantRead.model_validate(tenant)
        await self.cache.put(tenant_code_key(code), result.model_dump(mode="json"))
        return result

    async def list_tenants(self) -> List[TenantRead]:
        cached = await self.cache.get(TENANTS_KEY)
        if cached is not None:
            return [TenantRead.model_validate(t) for t in cached]
        tenants = [TenantRead.model_validate(t) for t in await self.dao.get_list()]
        await self.cache.put(TENANTS_KEY, [t.model_dump(mode="json") for t in tenants])
        return tenants

    async def update_tenant(self, tenant_id: int, data: TenantUpdate) -> TenantRead:
        tenant = await self._get_or_404(tenant_id)
        old_code = tenant.code
        changes = data.model_dump(exclude_unset=True)
        await self._ensure_unique(changes.get("name"), changes.get("code"), exclude_id=tenant.id)

        if changes.get("name") is not None:
            tenant.name = changes["name"]
        if "code" in changes:
            tenant.code = changes["code"]
        if changes.get("status") is not None:
            tenant.status = int(changes["status"])

        await self.db.flush()
        await self.db.commit()
        await self._invalidate(tenant.id, old_code, tenant.code)
        return TenantRead.model_validate(tenant)

    async def delete_tenant(self, tenant_id: int) -> None:
        tenant = await self._get_or_404(tenant_id)
        if await self.connection_dao.exists({"tenant_id": tenant.id}):
            raise ConflictError(f"Tenant {tenant_id} still has connections; delete them first.")
        await self.dao.remove(tenant)
        await self.db.commit()
        await self._invalidate(tenant.id, tenant.code)
        logger.info(f"Deleted tenant {tenant_id}.")

    async def _get_or_404(self, tenant_id: int) -> Tenant:
        tenant = await self.dao.get_by_pk(tenant_id)
        if not tenant:
            raise NotFoundError(f"Tenant with ID {tenant_id} not found.")
        return tenant

    async def _ensure_unique(self, name, code, exclude_id=None) -> None:
        if name:
            existing = await self.dao.get_by_name(name)
            if existing and existing.id != exclude_id:
                raise ConflictError(f"Tenant name '{name}' already exists.")
        if code:
            existing = await self.dao.get_by_code(code)
            if existing and existing.id != exclude_id:
                raise ConflictError(f"Tenant code '{code}' already exists.")

    async def _invalidate(self, tenant_id: int, *codes) -> None:
        await self.cache.remove(TENANTS_KEY, CONNECTIONS_KEY, tenant_key(tenant_id))
        for code in {c for c in codes if c}:
            await self.cache.remove(tenant_code_key(code))
        await self.cache.clear_connection_strings(tenant_id=tenant_id)
        for code in {c for c in codes if c}:
            await self.cache.clear_connection_strings(tenant_code=code)
