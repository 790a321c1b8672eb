"""
FastAPI dependencies for the verification service and clock.

Endpoints depend on these instead of module globals so tests can override
them with app.dependency_overrides.
"""

import logging
from functools import lru_cache

from storefront.core.clock import Clock, SystemClock
from storefront.core.config import settings
from storefront.core.verification import VerificationService
from storefront.core.verification_store import (
    InMemoryVerificationStore,
    RedisVerificationStore,
    SqlAlchemyVerificationStore,
    VerificationStore,
)
from storefront.services.notifier import build_notifier

logger = logging.getLogger(__name__)


def build_verification_store() -> VerificationStore:
    """Create the store named by VERIFICATION_STORE_BACKEND"""
    backend = settings.VERIFICATION_STORE_BACKEND
    if backend == "redis":
        logger.info(f"Using Redis verification store at {settings.REDIS_HOST}:{settings.REDIS_PORT}")
        return RedisVerificationStore.from_settings(settings)
    if backend == "database":
        from storefront.core.database import SessionLocal, init_db
        init_db()
        logger.info("Using database verification store")
        return SqlAlchemyVerificationStore(SessionLocal)
    logger.info("Using in-memory verification store")
    return InMemoryVerificationStore()


@lru_cache(maxsize=None)
def get_clock() -> Clock:
    return SystemClock()


@lru_cache(maxsize=None)
def get_verification_service() -> VerificationService:
    """Process-wide verification service (one store, one notifier)"""
    return VerificationService.from_settings(
        settings,
        store=build_verification_store(),
        notifier=build_notifier(settings),
        clock=get_clock()
    )
