import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mindcare.core.cache import RedisClient
from mindcare.core.config import settings
from mindcare.core.database import engine, Base
from mindcare.core.exceptions import register_exception_handlers
from mindcare.core.logger import setup_logging
from mindcare.routers import articles, comments, forum, consultations, notifications, users
from mindcare.tasks.jobs import start_scheduler, stop_scheduler


setup_logging()
logger = logging.getLogger("mindcare")

# Create database tables
Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    queued = settings.NOTIFICATION_DISPATCH_MODE == "queue"
    if queued:
        start_scheduler()
    logger.info(
        f"{settings.APP_NAME} {settings.APP_VERSION} started "
        f"(env={settings.ENVIRONMENT}, notifications={settings.NOTIFICATION_DISPATCH_MODE})"
    )
    yield
    if queued:
        stop_scheduler()


app = FastAPI(
    title=settings.APP_NAME,
    description="Mental-health community API: articles, forum, consultations and notifications",
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify your frontend domain
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


# Include routers
app.include_router(articles.router, prefix=settings.API_V1_PREFIX)
app.include_router(comments.router, prefix=settings.API_V1_PREFIX)
app.include_router(forum.router, prefix=settings.API_V1_PREFIX)
app.include_router(consultations.router, prefix=settings.API_V1_PREFIX)
app.include_router(notifications.router, prefix=settings.API_V1_PREFIX)
app.include_router(users.router, prefix=settings.API_V1_PREFIX)


@app.get("/")
def root():
    return {"message": f"Welcome to {settings.APP_NAME}", "docs": "/docs"}


@app.get("/health")
def health_check():
    if settings.NOTIFICATION_DISPATCH_MODE == "queue" and not RedisClient().ping():
        return {"status": "degraded", "redis": "unreachable"}
    return {"status": "healthy"}
