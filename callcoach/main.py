"""
FastAPI application for CallCoach
Sales call transcription and analysis API
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import get_settings
from .services.pipeline import CallProcessor
from .tasks.queue import AnalysisQueue
from .web.dependencies import get_processor, get_queue
from .web.routers.calls import router as calls_router


def configure_logging(log_level: str = "INFO"):
    """Setup structured logging"""
    logging.basicConfig(format="%(message)s", level=getattr(logging, log_level))
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


configure_logging(get_settings().log_level)
logger = structlog.get_logger("callcoach.main")


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    settings = get_settings()
    logger.info("Starting CallCoach", version=__version__, environment=settings.environment)

    queue = get_queue()
    cleanup_task = None
    try:
        await queue.start()

        # Forget finished jobs periodically
        cleanup_task = asyncio.create_task(queue.start_periodic_cleanup(
            interval_seconds=settings.job_cleanup_interval_seconds,
            hours=settings.job_retention_hours
        ))
        app.state.cleanup_task = cleanup_task

        logger.info("Application startup completed")

        yield

    finally:
        logger.info("Shutting down application")
        if cleanup_task:
            cleanup_task.cancel()
            await asyncio.gather(cleanup_task, return_exceptions=True)
        await queue.stop()
        await get_processor().cache.close()
        logger.info("Application shutdown completed")


app = FastAPI(
    title="CallCoach",
    description="AI-powered sales call coaching",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if get_settings().is_development else None,
    redoc_url="/redoc" if get_settings().is_development else None
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if get_settings().is_development else [],
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(calls_router)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests"""
    start_time = datetime.now(timezone.utc)
    request_id = f"{int(start_time.timestamp())}-{id(request)}"

    logger.info(
        "Request started",
        request_id=request_id,
        method=request.method,
        path=request.url.path,
        client_ip=request.client.host if request.client else None
    )

    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(
            "Request failed",
            request_id=request_id,
            error=str(e),
            duration_seconds=round((datetime.now(timezone.utc) - start_time).total_seconds(), 3)
        )
        raise

    logger.info(
        "Request completed",
        request_id=request_id,
        status_code=response.status_code,
        duration_seconds=round((datetime.now(timezone.utc) - start_time).total_seconds(), 3)
    )
    return response


# Error handlers
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions"""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "code": exc.status_code,
                "message": exc.detail,
                "timestamp": utc_timestamp()
            }
        }
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies and form fields are bad input"""
    return JSONResponse(
        status_code=400,
        content={
            "error": {
                "code": 400,
                "message": "Invalid request",
                "details": jsonable_encoder(exc.errors()),
                "timestamp": utc_timestamp()
            }
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": 500,
                "message": "Internal server error",
                "timestamp": utc_timestamp()
            }
        }
    )


@app.get("/health")
async def health_check(
    processor: CallProcessor = Depends(get_processor),
    queue: AnalysisQueue = Depends(get_queue)
):
    """Health check with cache and queue status"""
    cache_health = await processor.cache.health_check()
    queue_stats = queue.get_stats()

    return {
        "status": "healthy",
        "version": __version__,
        "cache": cache_health,
        "queue": queue_stats,
        "timestamp": utc_timestamp()
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("callcoach.main:app", host="0.0.0.0", port=8000, reload=get_settings().is_development)
