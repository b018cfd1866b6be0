from contextlib import asynccontextmanager
from datetime import datetime
import logging
import time

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from intellicode.core.config import settings
from intellicode.api.v1 import auth, user, projects, ai, realtime
from intellicode.collab.hub import CollaborationHub
from intellicode.core.logging_config import setup_logging
from intellicode.db.base import SessionLocal
from intellicode.db.init_db import init_db

# Initialize logging
loggers = setup_logging()
logger = logging.getLogger(__name__)

STARTED_AT = time.monotonic()

@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    app.state.collab_hub = CollaborationHub(
        SessionLocal,
        serialize_writes=settings.COLLAB_SERIALIZE_FILE_WRITES,
    )
    logger.info("Application startup: collaboration hub ready")
    yield
    logger.info("Application shutdown: collaboration hub released")
    app.state.collab_hub = None

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger.info("Application startup: Initializing routes")
# Include routers
app.include_router(auth.router, prefix=settings.API_V1_STR)
app.include_router(user.router, prefix=settings.API_V1_STR)
app.include_router(projects.router, prefix=settings.API_V1_STR)
app.include_router(ai.router, prefix=settings.API_V1_STR)
app.include_router(realtime.router, prefix=settings.API_V1_STR)
logger.info("Application startup: Routes initialized successfully")

@app.get("/health")
def health():
    logger.debug("Health endpoint accessed")
    return {
        "status": "OK",
        "timestamp": datetime.utcnow().isoformat() + "Z",
        "uptime": round(time.monotonic() - STARTED_AT, 3),
    }
