# src/dblocator/api/dependencies/context.py

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from dblocator.core.context import AppContext
from dblocator.core.encryption import get_cipher
from dblocator.db.session import get_db
from dblocator.api.dependencies.authentication import require_admin
from dblocator.services.cache_service import build_cache
from dblocator.services.provisioning.sql_executor import get_executor

async def get_base_context(
    request: Request,
    db: AsyncSession = Depends(get_db)
) -> AppContext:
    """
    Builds the context from the per-request session and the process-wide
    collaborators stored on app.state by the lifespan.
    """
    state = request.app.state
    return AppContext(
        db=db,
        cache=build_cache(getattr(state, "redis_service", None)),
        cipher=getattr(state, "cipher", None) or get_cipher(),
        executor=getattr(state, "executor", None) or get_executor(),
    )

async def require_admin_context(
    context: AppContext = Depends(get_base_context),
    _subject: str = Depends(require_admin),
) -> AppContext:
    return context

# Every directory route is admin-only
AdminContextDep = Depends(require_admin_context)
