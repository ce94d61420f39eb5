import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cheongyak.config import settings
from cheongyak.routes import documents_router, eligibility_router, offers_router, profiles_router
from cheongyak.services.cache_service import MemoryCacheStore, MongoCacheStore, analysis_cache
from cheongyak.services.llm_service import llm_service
from cheongyak.services.mongo_service import mongo_service
from cheongyak.services.offer_service import offer_service
from cheongyak.services.resilience import breaker_registry
from cheongyak.services.scheduler import PeriodicTask
from cheongyak.services.task_queue import analysis_worker_pool

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    settings.validate_required()
    await mongo_service.connect()
    logger.info("Connected to MongoDB")

    breaker_registry.configure(
        failure_threshold=settings.breaker_failure_threshold,
        recovery_timeout=settings.breaker_recovery_timeout
    )
    if settings.cache_backend == "memory":
        analysis_cache.init(MemoryCacheStore())
    else:
        analysis_cache.init(MongoCacheStore(mongo_service.cache_collection))

    await analysis_worker_pool.start()

    expiry_sweep = PeriodicTask(
        "offer-expiry-sweep",
        settings.expiry_sweep_interval,
        offer_service.deactivate_expired
    )
    expiry_sweep.start()

    yield

    # Shutdown
    await expiry_sweep.stop()
    await analysis_worker_pool.stop()
    await llm_service.close()
    await mongo_service.close()
    logger.info("Disconnected from MongoDB")


app = FastAPI(
    title=settings.app_name,
    description="Housing subscription eligibility matching and announcement analysis",
    version=settings.app_version,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(documents_router, prefix=settings.api_prefix)
app.include_router(eligibility_router, prefix=settings.api_prefix)
app.include_router(offers_router, prefix=settings.api_prefix)
app.include_router(profiles_router, prefix=settings.api_prefix)


@app.get("/")
async def root():
    return {"message": f"{settings.app_name} is running", "version": settings.app_version}


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    mongo_healthy = await mongo_service.health_check()
    return {
        "status": "healthy" if mongo_healthy else "degraded",
        "service": "cheongyak-backend",
        "mongodb": mongo_healthy,
        "cache_entries": await analysis_cache.size() if mongo_healthy else None
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("cheongyak.main:app", host="0.0.0.0", port=8000, reload=True)
