from contextlib import asynccontextmanager
from typing import Optional
import logging
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from config import settings
from exceptions import register_exception_handlers
from repository import MenuRepository, create_repository
from routers.health import router as health_router
from routers.menu import router as menu_router
from seed import seed_default_menus
from services import MenuService

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(repository: Optional[MenuRepository] = None, seed: Optional[bool] = None) -> FastAPI:
    """Build the API around a menu store.

    Without an explicit ``repository`` the store named by ``MENU_STORE`` is
    used.
    """
    repository = repository or create_repository(settings.MENU_STORE)
    seed = settings.SEED_DEFAULT_DATA if seed is None else seed

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application startup / shutdown hooks."""
        try:
            logger.info(f"Initializing {repository.name} menu store ...")
            repository.init_schema()
            if seed:
                seed_default_menus(app.state.menu_service)
            logger.info("Menu store initialized successfully")
            yield
        finally:
            logger.info("Application shutting down ...")

    app = FastAPI(
        title="Menu Tree API",
        description="API for managing hierarchical menu system",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.menu_service = MenuService(repository)

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
        allow_headers=["Content-Type", "Authorization"],
    )

    register_exception_handlers(app)

    # --- Register routers ---
    for r in (
        menu_router,
        health_router,
    ):
        app.include_router(r)

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
