from contextlib import asynccontextmanager
import logging
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from api_client import ApiClient
from config import settings
from manifest_cache import ManifestCache, create_storage
from pages import registry
from resolver import RouteResolver
from routers.health import router as health_router
from routers.navigation import router as navigation_router
from services import ManifestFetcher, NavigationEngine
logger = logging.getLogger(__name__)


def build_navigation_engine(client: ApiClient = None, cache: ManifestCache = None) -> NavigationEngine:
    """Wire fetcher, cache and resolver once per process."""
    client = client or ApiClient()
    cache = cache or ManifestCache(storage=create_storage())
    fetcher = ManifestFetcher(client, cache)
    return NavigationEngine(fetcher, RouteResolver(registry))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup / shutdown hooks."""
    logger.info("Initializing navigation engine ...")
    app.state.navigation_engine = build_navigation_engine()
    try:
        yield
    finally:
        logger.info("Application shutting down ...")
        await app.state.navigation_engine.fetcher.client.aclose()


app = FastAPI(
    title="Navigation Manifest Service",
    description="Role-filtered navigation trees built from the backend menu manifest",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Register routers ---
for r in (
    health_router,
    navigation_router,
):
    app.include_router(r)


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
