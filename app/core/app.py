from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from app.api.deps import SESSION_HEADER
from app.api.main import api_router
from app.services.pipeline import RecommendationPipeline
from app.services.profile.inference import ProfileInferenceEngine
from app.services.recommendation.engine import RankingEngine
from app.services.telemetry.factory import create_telemetry_service
from app.services.telemetry.service import TelemetryService

from .config import Settings, settings
from .version import __version__


def create_app(config: Settings = settings, telemetry: TelemetryService | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Services are created in the lifespan and kept on app.state; pass a
    telemetry service to run against a prepared store.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Manage application lifespan events (startup/shutdown).
        """
        service = telemetry or create_telemetry_service(config)
        await service.start()

        app.state.settings = config
        app.state.telemetry = service
        app.state.pipeline = RecommendationPipeline(
            telemetry=service,
            inference=ProfileInferenceEngine(),
            ranking=RankingEngine(seed=config.RANKING_SEED),
        )
        logger.info(f"{config.APP_NAME} {__version__} started ({config.APP_ENV})")
        yield
        try:
            await service.close()
            logger.info("Telemetry store closed")
        except Exception as exc:
            logger.warning(f"Failed to close telemetry store: {exc}")

    app = FastAPI(
        title=config.APP_NAME,
        description="Local behavioral recommendations for family outings, books and events",
        version=__version__,
        lifespan=lifespan,
        docs_url=None if config.APP_ENV != "development" else "/docs",
        redoc_url=None if config.APP_ENV != "development" else "/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[SESSION_HEADER],
    )

    app.include_router(api_router)
    return app


app = create_app()
