"""
SheetGrade Backend - Main FastAPI Application

AI-assisted re-evaluation of graded answer sheet sections.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from motor.motor_asyncio import AsyncIOMotorClient

from sheetgrade import __version__
from sheetgrade.config.settings import settings
from sheetgrade.routes import create_reevaluation_routes, register_error_handlers
from sheetgrade.store import MongoReEvaluationStore

# Setup logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """FastAPI lifespan context manager for startup/shutdown."""
    logger.info("SheetGrade Backend Starting Up...")

    try:
        settings.validate()
        logger.info("Settings validated")

        client = AsyncIOMotorClient(
            settings.MONGODB_URL,
            maxPoolSize=50,
            serverSelectionTimeoutMS=5000
        )
        await client.server_info()
        db = client[settings.DATABASE_NAME]
        logger.info(f"Connected to MongoDB: {settings.DATABASE_NAME}")

        store = MongoReEvaluationStore(db)
        try:
            await store.create_indexes()
            logger.info("Database indexes created")
        except Exception as e:
            # Existing indexes with other options should not block startup
            logger.warning(f"Index creation warning: {e}")

        app.state.db = db
        app.state.store = store
        app.include_router(create_reevaluation_routes(store))
        logger.info(f"Routes registered, models: {', '.join(settings.GEMINI_MODELS)}")

    except Exception as e:
        logger.error(f"Startup failed: {e}")
        raise

    yield

    logger.info("Shutting down...")
    client.close()


app = FastAPI(
    title="SheetGrade API",
    description="AI-assisted answer sheet section re-evaluation",
    version=__version__,
    lifespan=lifespan
)

register_error_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": __version__,
        "database": "connected" if getattr(app.state, "db", None) is not None else "disconnected"
    }


@app.get("/")
async def root():
    return {
        "app": "SheetGrade",
        "version": __version__,
        "docs": "/docs",
        "health": "/api/health"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
