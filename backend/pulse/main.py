import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from sqlalchemy.exc import SQLAlchemyError

from pulse.config import get_settings
from pulse.models.base import init_db
from pulse.api import dashboard, flags, functions, notifications, profiles, surveys

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, str(settings.log_level).upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: initialize database tables
    await init_db()
    yield


app = FastAPI(
    title="Pulse Feedback API",
    description="Employee feedback surveys with AI sentiment scoring and HR review flags",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS: the sentiment function is called straight from browsers on any origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials="*" not in settings.cors_allow_origins,
    allow_methods=["*"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)


@app.exception_handler(SQLAlchemyError)
async def persistence_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Persistence failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": "Something went wrong while saving your data."})


app.include_router(surveys.router, prefix="/surveys", tags=["surveys"])
app.include_router(dashboard.router, prefix="/surveys", tags=["dashboard"])
app.include_router(flags.router, tags=["flags"])
app.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
app.include_router(profiles.router, prefix="/profiles", tags=["profiles"])
app.include_router(functions.router, prefix="/functions", tags=["functions"])


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


@app.get("/")
async def root():
    return {"message": "Pulse Feedback API", "docs": "/docs"}
