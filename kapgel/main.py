import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from kapgel.config import settings
from kapgel.db import STORE_ERRORS, close_pool, get_pool, init_schema
from kapgel.metrics import get_metrics_bytes, get_metrics_content_type
from kapgel.rate_limit import limiter, rate_limit_exceeded_handler
from kapgel.redis_client import close_redis, get_redis
from kapgel.routes import admin, auth, orders

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s [%(levelname)s] %(message)s",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await get_redis()
    if settings.init_schema_on_startup:
        await init_schema(await get_pool())
        logger.info("Schema ready.")
    yield
    await close_redis()
    await close_pool()


app = FastAPI(title="KapGel Orders", lifespan=lifespan)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
app.include_router(orders.router)
app.include_router(auth.router)
app.include_router(admin.router)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request body") if errors else "Invalid request body"
    return JSONResponse(status_code=400, content={"error": message, "code": "VALIDATION_ERROR"})


async def store_error_handler(request: Request, exc: Exception) -> JSONResponse:
    # Store failures raised outside a route body, e.g. while resolving the caller
    logger.error("Store error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Store unavailable", "code": "STORE_ERROR"})


for _exc_class in STORE_ERRORS:
    app.add_exception_handler(_exc_class, store_error_handler)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail, "code": str(exc.detail).upper().replace(" ", "_")},
        headers=getattr(exc, "headers", None),
    )


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@app.get("/metrics")
async def metrics() -> Response:
    """Prometheus scrape endpoint."""
    return Response(
        content=get_metrics_bytes(),
        media_type=get_metrics_content_type(),
    )
