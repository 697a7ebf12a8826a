# queue_optimizer/main.py
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from queue_optimizer.api import AppState, router
from queue_optimizer.config import OptimizerConfig
from queue_optimizer.log_handler import setup_logging, get_logger, shutdown_logging
from queue_optimizer.throttle import RayThrottleService

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifecycle manager for the FastAPI application.
    Sets up logging and, when a Ray address is configured, cluster-wide throttle actors.
    """
    state: AppState = app.state.services
    config = state.config

    setup_logging(
        log_level=config.log_level,
        log_file=config.log_file,
        module_levels={
            "ray": config.ray_log_level,
            "queue_optimizer.throttle": config.throttle_log_level,
        },
    )
    try:
        logger.info("Starting queue optimizer services...")

        if config.ray_address:
            from queue_optimizer.ray_init import get_ray_dashboard_url, get_ray_resources, initialize_ray

            initialize_ray(address=config.ray_address)
            state.ray_throttles = RayThrottleService()
            logger.info(f"Ray throttle admission enabled via {config.ray_address}")
            logger.info(f"Ray cluster resources: {get_ray_resources()}")
            dashboard_url = get_ray_dashboard_url()
            if dashboard_url:
                logger.info(f"Ray dashboard available at {dashboard_url}")

        logger.info("Application startup complete")
        yield

        logger.info("Initiating graceful shutdown...")
        state.is_shutting_down = True
        if state.ray_throttles is not None:
            from queue_optimizer.ray_init import shutdown_ray

            await state.ray_throttles.shutdown()
            shutdown_ray()
        logger.info("Application shutdown complete")

    except Exception as e:
        logger.error(f"Error during application lifecycle: {str(e)}")
        raise
    finally:
        shutdown_logging()


def create_app(state: Optional[AppState] = None) -> FastAPI:
    """Creates and configures the FastAPI application"""
    app = FastAPI(
        title="Queue Optimizer",
        description="Queue analysis, throttle admission and scaling advice for executor fleets",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.services = state or AppState(config=OptimizerConfig.from_env())

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router, prefix="/api/v1")

    @app.get("/health")
    async def health():
        return {"status": "shutting_down" if app.state.services.is_shutting_down else "ok"}

    return app


def run_app():
    """Runs the application with Uvicorn"""
    config = OptimizerConfig.from_env()
    try:
        app = create_app(AppState(config=config))
        server = uvicorn.Server(
            uvicorn.Config(
                app=app,
                host=config.host,
                port=config.port,
                log_level=config.log_level.lower(),
                timeout_graceful_shutdown=30,
            )
        )
        server.run()
    except Exception as e:
        logger.error(f"Failed to start application: {str(e)}")
        raise


if __name__ == "__main__":
    run_app()
