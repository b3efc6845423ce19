import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from weekscore.config import settings
from weekscore.db import engine
from weekscore.schema import create_all
from weekscore.scoring.data_router import router as data_router
from weekscore.scoring.quarters_router import router as quarters_router
from weekscore.scoring.router import router as score_router

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.create_schema:
        logger.info("Creating missing tables")
        await create_all(engine)
    yield


app = FastAPI(title="WeekScore", version="0.1.0", lifespan=lifespan)
app.include_router(score_router)
app.include_router(data_router)
app.include_router(quarters_router)


@app.get("/")
async def root() -> dict:
    return {
        "status": "ok",
        "docs": "/docs",
        "health": "/health",
        "api": {
            "score": "/api/records/score",
            "records": "/api/records",
            "tactics": "/api/tactics",
            "week_selections": "/api/week-selections",
            "quarters": "/api/quarters",
            "quarters_active": "/api/quarters/active",
        },
    }


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
