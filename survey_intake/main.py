import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api.endpoints import responses, submit
from .api.middleware import BodySizeLimitMiddleware
from .core.config import Settings, get_settings
from .core.errors import IntakeError
from .core.logging_setup import configure_logging
from .database import build_engine, build_session_factory, create_db_and_tables
from .services.mailer import build_mailer

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"ok": False, "error": message})


def _describe_validation_error(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "Invalid request: " + "; ".join(parts)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(IntakeError)
    async def intake_error_handler(request: Request, exc: IntakeError):
        return _error(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _error(status.HTTP_400_BAD_REQUEST, _describe_validation_error(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Server error")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    engine = build_engine(settings)

    # --- Lifecycle Events ---
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting %s", settings.APP_NAME)
        await create_db_and_tables(engine)
        yield
        logger.info("Shutting down %s", settings.APP_NAME)
        await engine.dispose()

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.mailer = build_mailer(settings)

    if settings.uses_default_admin_token:
        logger.warning("ADMIN_TOKEN is the default placeholder, set it before deploying.")
    if app.state.mailer is None:
        logger.info("SMTP not configured, forwarding is disabled.")

    # --- CORS middleware (needed by the admin dashboard on another origin) ---
    origins = settings.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    logger.info("CORS origins: %s", origins)

    app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=settings.MAX_BODY_BYTES)

    register_exception_handlers(app)

    app.include_router(submit.router)
    app.include_router(responses.router)

    # Admin dashboard, the token is checked by the API calls it makes
    if os.path.isdir(settings.ADMIN_STATIC_DIR):
        app.mount(
            "/admin",
            StaticFiles(directory=settings.ADMIN_STATIC_DIR, html=True),
            name="admin",
        )
    else:
        logger.warning("Admin static directory %s not found, /admin is disabled.", settings.ADMIN_STATIC_DIR)

    @app.get("/", response_class=PlainTextResponse)
    async def health():
        return f"{settings.APP_NAME} OK"

    return app


def run() -> None:
    import uvicorn

    settings = get_settings()
    app = create_app(settings)
    logger.info("Listening on http://%s:%s", settings.HOST, settings.PORT)
    logger.info("DB file: %s", settings.DB_FILE)
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
