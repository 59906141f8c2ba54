"""Deep-Think Crisis Trainer - FastAPI app entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from deepthink.core.config import get_settings
from deepthink.db.base import Base
from deepthink.db.session import engine, AsyncSessionLocal
from deepthink.routers import api
from deepthink.services.seeding import seed_scenarios

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # create tables (async)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    if settings.seed_scenarios_on_startup:
        async with AsyncSessionLocal() as db:
            await seed_scenarios(db)

    yield
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description="Time-pressured crisis decision training",
    lifespan=lifespan,
)

app.include_router(api.router)


@app.get("/health")
async def health():
    return {"status": "ok"}
