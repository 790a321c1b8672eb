from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from storefront.core.config import settings
from storefront.core.exceptions import DeliveryFailed, StorageUnavailable
from storefront.core.logging_config import get_logger, setup_logging
from storefront.api.endpoints import health, subscriptions, verification

setup_logging(settings.LOG_LEVEL, settings.JSON_LOGS)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    """
    logger.info("Starting up Storefront Access API...")
    logger.info(
        f"Verification store: {settings.VERIFICATION_STORE_BACKEND}, "
        f"notifier: {settings.VERIFICATION_NOTIFIER}"
    )

    yield

    logger.info("Shutting down Storefront Access API...")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    description="Verification codes and subscription quota tracking for the marketplace storefront",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StorageUnavailable)
async def storage_unavailable_handler(request: Request, exc: StorageUnavailable):
    logger.error(f"Storage unavailable on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Verification service temporarily unavailable. Please try again."}
    )


@app.exception_handler(DeliveryFailed)
async def delivery_failed_handler(request: Request, exc: DeliveryFailed):
    logger.error(f"Delivery failed on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": "Could not send verification code. Please try again."}
    )


app.include_router(health.router)
app.include_router(verification.router, prefix=settings.API_V1_STR)
app.include_router(subscriptions.router, prefix=settings.API_V1_STR)


@app.get("/")
async def root():
    """Root endpoint - API health check"""
    return {
        "message": "Storefront Access API",
        "version": "1.0.0",
        "status": "healthy"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
