from contextlib import asynccontextmanager
from fastapi import FastAPI

from sqlstream.api.routes_health import router as health_router
from sqlstream.api.routes_transcripts import router as transcripts_router
from sqlstream.core.config import get_settings
from sqlstream.core.logging_config import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(get_settings().LOG_LEVEL)
    yield


app = FastAPI(title="SQL Agent Stream Backend", lifespan=lifespan)

app.include_router(health_router)
app.include_router(transcripts_router)
