import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import health, periods, timetable
from app.core.config import get_settings
from app.core.exceptions import AppError
from app.db.bootstrap import ensure_runtime_schema_compatibility

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(_: FastAPI):
    ensure_runtime_schema_compatibility()
    yield


async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, "code": exc.code, "details": exc.details},
    )


app = FastAPI(title=settings.project_name, lifespan=lifespan)
app.add_exception_handler(AppError, app_error_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix=settings.api_prefix, tags=["health"])
app.include_router(timetable.router, prefix=f"{settings.api_prefix}/timetable", tags=["timetable"])
app.include_router(periods.router, prefix=f"{settings.api_prefix}/periods", tags=["periods"])
