"""
Application factory for the EduCentral assessment service.

``create_app`` wires the feature routers, the exception handlers and the
WebSocket dashboard onto a FastAPI application. Startup opens the database,
optionally creates tables and seeds sample data, then starts the realtime
background tasks; shutdown stops them in reverse order.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from educentral import config
from educentral.ai.controllers import router as ai_tutor_router
from educentral.ai.huggingface import close_huggingface_client
from educentral.api import (
    create_api_router,
    database_exception_handler,
    educentral_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from educentral.assessments.controllers import router as assessments_router
from educentral.assessments.enhanced import router as enhanced_router
from educentral.auth.controllers import router as auth_router
from educentral.common.error_handling import EduCentralError
from educentral.common.logger import app_logger, configure_logger
from educentral.common.redis import create_redis_client
from educentral.dashboard.controllers import router as dashboard_router
from educentral.database.init_db import close_database, initialize_database, session_scope
from educentral.gamification.controllers import router as learning_router
from educentral.quiz.controllers import router as quiz_router
from educentral.realtime import DashboardBroadcaster, WebSocketManager, completed_today_from_database, ws_router
from educentral.seed import seed_sample_data
from educentral.storage.repository import DatabaseStorage

logger = app_logger.getChild("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = config.use_settings(app.state.settings)

    configure_logger(
        level=settings.LOG_LEVEL,
        format_string=settings.LOG_FORMAT,
        use_json=settings.LOG_JSON,
        log_file=settings.LOG_FILE,
    )

    await initialize_database(
        database_url=settings.DATABASE_URL,
        echo=settings.SQL_ECHO,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        create_tables=settings.AUTO_CREATE_TABLES,
    )

    if settings.SEED_SAMPLE_DATA:
        async with session_scope() as session:
            await seed_sample_data(DatabaseStorage(session))

    redis_client = await create_redis_client(settings.REDIS_URL)
    manager = WebSocketManager(redis_client)
    dashboard = DashboardBroadcaster(
        manager,
        stats_provider=completed_today_from_database,
        recent_activity_size=settings.RECENT_ACTIVITY_SIZE,
        interval=settings.DASHBOARD_BROADCAST_INTERVAL,
    )
    app.state.components["websocket_manager"] = manager
    app.state.components["dashboard"] = dashboard

    if redis_client is not None:
        await manager.start_redis_listener()
    await dashboard.start()
    logger.info(f"Application startup complete ({settings.ENV})")

    try:
        yield
    finally:
        await dashboard.stop()
        await manager.stop_redis_listener()
        if redis_client is not None:
            await redis_client.aclose()
        await close_huggingface_client()
        await close_database()
        app.state.components.clear()
        logger.info("Application shutdown complete")


def create_app(settings: Optional[config.Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Settings to run with, defaults to the process-wide settings

    Returns:
        Configured application; resources are opened by its lifespan
    """
    settings = config.use_settings(settings or config.get_settings())

    app = FastAPI(
        title="EduCentral Assessments API",
        description="Tests, quizzes, AI-graded answers and learning progress",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.components = {}

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(EduCentralError, educentral_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(create_api_router({
        "auth": auth_router,
        "assessments": assessments_router,
        "enhanced-assessment": enhanced_router,
        "learning": learning_router,
        "quiz": quiz_router,
        "dashboard": dashboard_router,
        "ai-tutor": ai_tutor_router,
    }))
    app.include_router(ws_router)

    @app.get("/")
    async def root():
        return {"message": "Welcome to EduCentral Assessments API"}

    logger.info(f"Application initialized with {len(app.routes)} routes")
    return app
