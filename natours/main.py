"""FastAPI application initialization."""

from contextlib import asynccontextmanager

from dotenv import load_dotenv

# Load environment variables before anything else
load_dotenv()

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from natours.api.auth import router as auth_router
from natours.api.middleware import CorrelationIdMiddleware
from natours.api.tours import router as tours_router
from natours.api.users import router as users_router
from natours.config import get_settings
from natours.errors import AppError
from natours.services.logging_service import configure_logging, get_logger

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    settings = get_settings()
    configure_logging(settings.log_level, json_output=settings.is_production)
    startup_logger = get_logger("main")

    if not settings.jwt_secret:
        startup_logger.warning("jwt_secret_missing", note="Token issuing will fail")

    try:
        from natours.database import init_database, run_migrations

        await init_database()
        await run_migrations()
        startup_logger.info("database_initialized")
    except Exception as e:
        startup_logger.warning(
            "database_initialization_failed",
            error=str(e),
            note="Continuing without database - every data route will fail",
        )

    startup_logger.info("application_started", environment=settings.environment)

    yield

    from natours.database import close_database

    await close_database()
    startup_logger.info("application_shutdown")


app = FastAPI(
    title="Natours API",
    description="Tour booking API with JWT cookie sessions",
    version="1.0.0",
    lifespan=lifespan,
)


def _error_response(status_code: int, message: str, **extra) -> JSONResponse:
    body = {
        "status": "fail" if 400 <= status_code < 500 else "error",
        "message": message,
        **extra,
    }
    return JSONResponse(status_code=status_code, content=body)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render an expected application error."""
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, message=exc.message)
    return _error_response(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report the first invalid field as a 400."""
    errors = exc.errors()
    if errors:
        first_error = errors[0]
        field = ".".join(str(loc) for loc in first_error.get("loc", []) if loc != "body")
        message = first_error.get("msg", "Validation failed").removeprefix("Value error, ")
        detail = f"Invalid input data. {field}: {message}" if field else f"Invalid input data. {message}"
    else:
        detail = "Invalid input data."

    logger.warning("validation_error", path=request.url.path, detail=detail)
    return _error_response(status.HTTP_400_BAD_REQUEST, detail)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        message = f"Can't find {request.url.path} on this server!"
    else:
        message = str(exc.detail)
    return _error_response(exc.status_code, message)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: never leak internals in production."""
    logger.exception("unhandled_exception", path=request.url.path)
    if get_settings().is_production:
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Something went very wrong!"
        )
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Something went very wrong!",
        error=f"{type(exc).__name__}: {exc}",
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(CorrelationIdMiddleware)

# Auth routes first: /logout must match before /{user_id}
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(tours_router)


@app.get("/health")
async def health() -> dict:
    from natours.database import health_check

    return {"status": "ok", "database": await health_check()}
