import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from todo_api import config
from todo_api.database import init_schema, make_engine, make_session_factory
from todo_api.errors import AuthenticationError, TodoAPIError
from todo_api.log import configure_logging
from todo_api.routers import auth, tasks, users
from todo_api.utils.auth import PasswordHasher, TokenService
from todo_api.utils.images import LocalImageStore

logger = structlog.get_logger()


def _pick(value, default):
    return default if value is None else value


def create_app(
    database_url=None,
    secret_key=None,
    algorithm=None,
    access_token_expire_minutes=None,
    bcrypt_rounds=None,
    upload_dir=None,
    upload_base_url=None,
    max_upload_bytes=None,
    image_store=None,
    log_level=None,
) -> FastAPI:
    """Build the application and everything it depends on.

    Each argument falls back to the matching setting in :mod:`todo_api.config`.
    The engine, hasher, token service and image store are created here and
    placed on ``app.state``; nothing else reads configuration at request time.
    """
    configure_logging(_pick(log_level, config.LOG_LEVEL), json_logs=config.LOG_JSON)

    engine = make_engine(_pick(database_url, config.DATABASE_URL))
    init_schema(engine)

    upload_dir = _pick(upload_dir, config.UPLOAD_DIR)
    upload_base_url = _pick(upload_base_url, config.UPLOAD_BASE_URL)

    app = FastAPI(title="Todo API")
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)
    app.state.hasher = PasswordHasher(rounds=_pick(bcrypt_rounds, config.BCRYPT_ROUNDS))
    app.state.token_service = TokenService(
        _pick(secret_key, config.SECRET_KEY),
        algorithm=_pick(algorithm, config.ALGORITHM),
        expire_minutes=_pick(access_token_expire_minutes, config.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    app.state.image_store = _pick(image_store, LocalImageStore(upload_dir, upload_base_url))
    app.state.max_upload_bytes = _pick(max_upload_bytes, config.MAX_UPLOAD_BYTES)

    # API routers
    app.include_router(auth.router)
    app.include_router(tasks.router)
    app.include_router(users.router)

    # Serve stored profile images when they live on this host
    if image_store is None and upload_base_url.startswith("/"):
        app.mount(upload_base_url, StaticFiles(directory=upload_dir, check_dir=False), name="uploads")

    _register_exception_handlers(app)
    logger.info("app.created", dialect=engine.dialect.name)
    return app


def _register_exception_handlers(app: FastAPI):
    @app.exception_handler(TodoAPIError)
    async def todo_api_error_handler(request: Request, exc: TodoAPIError):
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=headers)

    # Malformed input is a 400 here, not FastAPI's default 422
    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", "Invalid request")
        detail = f"{location}: {message}" if location else message
        return JSONResponse(status_code=400, content={"detail": detail})

    # Generic error handler to return JSON errors for unexpected exceptions
    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.error("app.unhandled_error", path=request.url.path, error=repr(exc))
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
