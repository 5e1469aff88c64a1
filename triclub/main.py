import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.orm import Session

from triclub.config import Config, config as default_config
from triclub.core.schema import verify_schema
from triclub.database import build_session_factory, create_db_engine
from triclub.dependencies import get_db
from triclub.endpoints import cron, posts, workouts
from triclub.services.notifications import NotificationDispatcher

logging.basicConfig(level=logging.INFO)

# Create a logger for the application
logger = logging.getLogger(__name__)

# Create a console handler with the application format
ch = logging.StreamHandler()
ch.setLevel(logging.INFO)
formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
ch.setFormatter(formatter)
logger.addHandler(ch)
logger.propagate = False


def create_app(
    app_config: Config = default_config,
    engine: Optional[Engine] = None,
    notification_dispatcher: Optional[NotificationDispatcher] = None,
) -> FastAPI:
    """
    Builds the application and owns the database engine for its lifetime.
    Tests pass their own engine and dispatcher.
    """
    owns_engine = engine is None
    engine = engine or create_db_engine(app_config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app_config.SCHEMA_CHECK_ENABLED:
            verify_schema(engine)
        logger.info("Application started.")
        yield
        if owns_engine:
            engine.dispose()
        logger.info("Application stopped.")

    app = FastAPI(
        title="Triathlon Club API",
        description="API for workout signups, waitlists and attendance",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.notification_dispatcher = notification_dispatcher or NotificationDispatcher()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routes
    app.include_router(workouts.router)
    app.include_router(posts.router)
    app.include_router(cron.router)

    @app.get("/healthz")
    async def healthz():
        return {"message": "Healthy!"}

    # Database connectivity check
    @app.get("/health")
    def health_check(db: Session = Depends(get_db)):
        try:
            db.execute(text("SELECT 1"))
            return {"status": "healthy", "database": "connected"}
        except OperationalError as e:
            logger.error(f"Health check failed: {str(e)}")
            return {"status": "unhealthy", "database": "disconnected"}

    # Validation errors
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = []
        for error in exc.errors():
            if 'ctx' in error and 'error' in error['ctx']:
                # Use the ValueError message and drop the unserializable ctx
                if isinstance(error['ctx']['error'], ValueError):
                    error['msg'] = str(error['ctx']['error'])
                    del error['ctx']
            errors.append(error)

        return JSONResponse(
            status_code=422,
            content={"detail": errors},
        )

    # Lock timeouts and lost connections: the transaction was rolled back,
    # the client may retry the whole request
    @app.exception_handler(DBAPIError)
    async def database_exception_handler(request: Request, exc: DBAPIError):
        logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=500,
            content={"detail": "Temporary database error, please try again"},
        )

    return app


app = create_app()
