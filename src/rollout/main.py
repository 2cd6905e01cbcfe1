import logging
from fastapi import FastAPI
from fastapi.routing import APIRoute

from rollout.routers.health import router as health_router
from rollout.config.settings import Settings

# Set up logging
logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create the FastAPI application served by the container."""
    settings = settings or Settings()

    app = FastAPI(
        title=settings.app_name,
        summary="Health endpoint for the load balancer",
        version="v1",
        generate_unique_id_function=custom_generate_unique_id,
    )
    app.state.settings = settings

    app.include_router(health_router, tags=["health"])
    logger.info(f"Created {settings.app_name} app")

    return app


def custom_generate_unique_id(route: APIRoute):
    """
    Generate prettier `operationId`s in the OpenAPI schema.

    These become the function names in generated client SDKs.
    """
    return f"{route.tags[0]}-{route.name}"


if __name__ == "__main__":
    import uvicorn

    app = create_app()
    uvicorn.run(app, host="0.0.0.0", port=8080)
