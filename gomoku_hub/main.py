import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gomoku_hub.api import register_exception_handlers
from gomoku_hub.api import router as rooms_router
from gomoku_hub.config import settings
from gomoku_hub.coordinator import Coordinator
from gomoku_hub.ws_handler import router as ws_router

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(coordinator: Coordinator | None = None) -> FastAPI:
    coordinator = coordinator or Coordinator(settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting Gomoku hub...")
        coordinator.start_sweeper()
        yield
        logger.info("Shutting down Gomoku hub...")
        await coordinator.shutdown()

    app = FastAPI(title="Gomoku Hub", lifespan=lifespan)
    app.state.coordinator = coordinator

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    app.include_router(ws_router)
    app.include_router(rooms_router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
