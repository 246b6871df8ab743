"""
Main FastAPI application entry point.
"""
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from prometheus_fastapi_instrumentator import Instrumentator

from wii.core.config import settings
from wii.core.database import close_db, init_db
from wii.core.errors import BadRequestAlert, WiiError
from wii.core.headers import failure_alert
from wii.middleware.logging import LoggingMiddleware
from wii.api.questions import router as questions_router
from wii.api.subjects import router as subjects_router
from wii.api.tags import router as tags_router

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Initialize Sentry if configured
if settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENVIRONMENT,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting %s %s...", settings.APP_NAME, settings.APP_VERSION)
    if settings.AUTO_CREATE_SCHEMA:
        init_db()
    yield
    logger.info("Shutting down %s...", settings.APP_NAME)
    close_db()


app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    docs_url=settings.DOCS_URL if not settings.is_production() else None,
    redoc_url=settings.REDOC_URL if not settings.is_production() else None,
    openapi_url=settings.OPENAPI_URL if not settings.is_production() else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
    expose_headers=["Location", f"X-{settings.CLIENT_APP_NAME}-alert",
                    f"X-{settings.CLIENT_APP_NAME}-error", f"X-{settings.CLIENT_APP_NAME}-params"],
)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(LoggingMiddleware)

if settings.PROMETHEUS_ENABLED:
    Instrumentator().instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)


def _error(status_code: int, message, error_type: str, headers=None, **extra) -> JSONResponse:
    body = {"message": message, "type": error_type, "status_code": status_code}
    body.update(extra)
    return JSONResponse(status_code=status_code, content={"error": body}, headers=headers)


# Exception handlers
@app.exception_handler(WiiError)
async def wii_exception_handler(request: Request, exc: WiiError):
    if isinstance(exc, BadRequestAlert):
        return _error(exc.status_code, exc.message, exc.error_type,
                      headers=failure_alert(exc.entity_name, exc.error_key),
                      entity=exc.entity_name, key=f"error.{exc.error_key}")
    if exc.status_code >= 500:
        logger.error("%s %s: %s", request.method, request.url.path, exc.message, exc_info=exc.__cause__)
    return _error(exc.status_code, exc.message, exc.error_type)


@app.exception_handler(OperationalError)
async def storage_exception_handler(request: Request, exc: OperationalError):
    logger.error("Database unavailable: %s", exc, exc_info=True)
    return _error(status.HTTP_503_SERVICE_UNAVAILABLE, "Storage is unavailable", "storage_unavailable")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, exc.detail, "http_error")


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return _error(422, "Validation error", "validation_error",
                  details=jsonable_encoder(exc.errors()))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    message = "An internal error occurred" if settings.is_production() else str(exc)
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, message, "internal_error")


@app.get("/health", tags=["Health"])
def health():
    return {"status": "ok", "version": settings.APP_VERSION, "environment": settings.ENVIRONMENT}


app.include_router(subjects_router, prefix=settings.API_PREFIX, tags=["subjects"])
app.include_router(questions_router, prefix=settings.API_PREFIX, tags=["questions"])
app.include_router(tags_router, prefix=settings.API_PREFIX, tags=["tag-meta-data"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "wii.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
        workers=settings.WORKERS if not settings.RELOAD else 1,
        log_level=settings.LOG_LEVEL.lower(),
    )
