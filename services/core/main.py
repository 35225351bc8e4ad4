from contextlib import asynccontextmanager

from fastapi import FastAPI

from api.endpoints.custom_field_answers import router as custom_field_answers_router
from api.endpoints.custom_field_definitions import router as custom_field_definitions_router
from api.endpoints.goal_types import router as goal_types_router
from api.endpoints.goals import router as goals_router
from api.errors import register_exception_handlers
from api.middleware import LoggingMiddleware, configure_cors
from database import close_db_connections, init_models
from logging_config import get_logger

logger = get_logger(__name__)

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_models()
    logger.info("service_started")
    yield
    await close_db_connections()
    logger.info("service_stopped")


def create_app(use_lifespan: bool = True) -> FastAPI:
    """
    Build the application.

    use_lifespan=False lets tests bring their own engine and schema.
    """
    app = FastAPI(title="Goal Schema Service", lifespan=lifespan if use_lifespan else None)

    app.add_middleware(LoggingMiddleware)
    configure_cors(app)
    register_exception_handlers(app)

    app.include_router(goal_types_router, prefix=API_PREFIX)
    app.include_router(custom_field_definitions_router, prefix=API_PREFIX)
    app.include_router(goals_router, prefix=API_PREFIX)
    app.include_router(custom_field_answers_router, prefix=API_PREFIX)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
