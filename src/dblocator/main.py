# src/dblocator/main.py

import logging
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from dblocator.core.config import settings
from dblocator.core.encryption import get_cipher
from dblocator.api.router import router
from dblocator.db.session import SessionLocal
from dblocator.db.init_db import seed_database_roles
from dblocator.services.redis_service import RedisService
from dblocator.services.provisioning.sql_executor import get_executor
from dblocator.services.exceptions import (
    ServiceException, InvalidRequestError, NotFoundError, ConflictError,
    NoEligibleUserError, ProvisioningError
)
from dblocator.middleware import AuthenticationMiddleware
from dblocator.schemas.common import MsgResponse

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # --- Redis cache ---
    app.state.redis_service = None
    if settings.CACHE_ENABLED:
        logger.info("Connecting to Redis...")
        app.state.redis_service = RedisService()

    # --- Process-wide collaborators ---
    app.state.cipher = get_cipher()
    app.state.executor = get_executor()

    async with SessionLocal() as db_session:
        await seed_database_roles(db_session)
        await db_session.commit()

    yield

    # --- Cleanup ---
    if app.state.redis_service is not None:
        logger.info("Closing Redis connections...")
        await app.state.redis_service.close()

app = FastAPI(
    title="DbLocator",
    lifespan=lifespan
)

app.add_middleware(AuthenticationMiddleware)

origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"])

app.include_router(router)

@app.get("/health", response_model=MsgResponse, tags=["Health"])
async def health():
    return MsgResponse(msg="ok")

def _envelope(status_code: int, msg, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": status_code, "msg": msg, "data": None},
        headers=headers,
    )

# Most specific first; the ServiceException handler catches the rest.
SERVICE_ERROR_STATUS = {
    InvalidRequestError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    NoEligibleUserError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ProvisioningError: status.HTTP_502_BAD_GATEWAY,
}

@app.exception_handler(ServiceException)
async def service_exception_handler(request: Request, exc: ServiceException):
    """
    Expected business errors from the service layer. The status follows the
    exception type; anything unmapped is a 400.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    for exc_type, mapped in SERVICE_ERROR_STATUS.items():
        if isinstance(exc, exc_type):
            status_code = mapped
            break
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected ({status_code}): {exc.message}")
    return _envelope(status_code, exc.message)

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "status": status.HTTP_422_UNPROCESSABLE_ENTITY,
            "msg": "Request validation failed",
            "data": jsonable_encoder(exc.errors()),
        },
    )

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    # Matches FastAPI's HTTPException to our response envelope
    return _envelope(exc.status_code, exc.detail, headers=exc.headers)

@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _envelope(500, "Internal Server Error")
