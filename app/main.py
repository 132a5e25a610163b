import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api_routers.v1 import api_router
from app.features.auth.workers.session_cleanup import run_session_cleanup
from app.features.health.routes.health import router as health_router
from app.platform.config import settings
from app.platform.db.session import init_models
from app.platform.exceptions import add_exception_handlers
from app.platform.logger import LOG_FORMAT

logging.basicConfig(level=settings.LOG_LEVEL.upper(), format=LOG_FORMAT)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_models()

    cleanup_task = None
    if settings.SESSION_CLEANUP_INTERVAL_SECONDS > 0:
        cleanup_task = asyncio.create_task(
            run_session_cleanup(settings.SESSION_CLEANUP_INTERVAL_SECONDS)
        )

    logger.info(f"{settings.APP_NAME} started ({settings.ENVIRONMENT})")
    yield

    if cleanup_task is not None:
        cleanup_task.cancel()
        try:
            await cleanup_task
        except asyncio.CancelledError:
            pass


app = FastAPI(
    title=settings.APP_NAME,
    description="Phone number registration and login with SMS verification codes",
    version="1.0.0",
    lifespan=lifespan,
)


# Root endpoint for basic info
@app.get("/", tags=["Info"])
def root():
    return {
        "app_name": settings.APP_NAME,
        "description": "Phone-verified accounts with one-time SMS codes.",
        "version": "1.0.0",
        "docs_url": "/docs",
        "api_base": "/api/v1",
    }


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

add_exception_handlers(app)

app.include_router(health_router)
app.include_router(api_router, prefix="/api/v1")
