# src/dblocator/api/router.py

from fastapi import APIRouter
from dblocator.api.v1 import tenant
from dblocator.api.v1 import database_server
from dblocator.api.v1 import database_type
from dblocator.api.v1 import database
from dblocator.api.v1 import database_user
from dblocator.api.v1 import connection

# The main router for API v1
router = APIRouter(prefix="/api/v1")

# ===================================================================
# Directory Routes
# ===================================================================

router.include_router(tenant.router, prefix="/tenants", tags=["Directory - Tenants"])
router.include_router(database_server.router, prefix="/database-servers", tags=["Directory - Servers"])
router.include_router(database_type.router, prefix="/database-types", tags=["Directory - Database Types"])
router.include_router(database.router, prefix="/databases", tags=["Directory - Databases"])

# ===================================================================
# Credential & Resolution Routes
# ===================================================================

router.include_router(database_user.router, prefix="/database-users", tags=["Credentials - Database Users"])
router.include_router(connection.router, prefix="/connections", tags=["Connections"])
