# Essential imports
import time
from typing import Optional
from fastapi import FastAPI, Request
from contextlib import asynccontextmanager

# Import all models for SQLAlchemy relationship resolution
import models  # noqa: F401
from core.database import Base, build_engine, build_session_factory
from routers import auth, users, health

# Rate limiter imports
from slowapi.middleware import SlowAPIMiddleware
from middleware.rate_limiter import limiter

# Logging imports
from core.logging_config import setup_logging, get_logger
from middleware import RequestIDMiddleware
from core.config import Settings, settings as default_settings
from core.error_handlers import register_exception_handlers
from utils.logger import log_request

# CORS imports
from fastapi.middleware.cors import CORSMiddleware

logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application.

    The database engine and session factory are created here and kept on
    app.state; request handlers reach them through the get_db dependency.
    """
    settings = settings or default_settings

    setup_logging(
        log_level=settings.LOG_LEVEL,
        log_dir=settings.LOG_DIR
    )

    engine = build_engine(settings.DATABASE_URL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if not settings.is_production:
            # Production schemas are managed outside the app
            Base.metadata.create_all(bind=engine)
        logger.info("Application startup complete", extra={"event": "startup", "env": settings.ENV})
        yield
        engine.dispose()
        logger.info("Application shutting down", extra={"event": "shutdown"})

    app = FastAPI(
        title="User Auth API",
        description="User registration, login and JWT session management",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """
        Log every request with method, path, status code and duration.
        """
        start_time = time.time()

        response = await call_next(request)

        duration = (time.time() - start_time) * 1000
        user = getattr(request.state, "user", None)
        log_request(
            logger,
            request.method,
            request.url.path,
            response.status_code,
            duration,
            user_id=user.id if user else None,
            extra={"client_ip": request.client.host if request.client else "unknown"},
        )

        return response

    # Wraps the request logger so its records carry the request id
    app.add_middleware(RequestIDMiddleware)

    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)

    register_exception_handlers(app, settings)

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(users.router)

    return app


app = create_app()
