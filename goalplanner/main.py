import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .checkins import router as checkins_router
from .config import settings
from .dashboard import router as dashboard_router
from .database import close_db_pool, init_db_pool
from .dependencies import get_store
from .goals import router as goals_router
from .profile import router as profile_router
from .storage import PostgresStore

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.storage_backend == "postgres":
        await init_db_pool()
        store = get_store()
        if isinstance(store, PostgresStore):
            await store.ensure_schema()
    logger.info("Started %s with %s storage", settings.app_name, settings.storage_backend)
    yield
    await close_db_pool()


app = FastAPI(title=settings.app_name, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.cors_allow_origins.split(",") if origin.strip()],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(profile_router)
app.include_router(goals_router)
app.include_router(checkins_router)
app.include_router(dashboard_router)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
