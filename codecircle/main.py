import uvicorn
from fastapi import FastAPI

from codecircle.api.routes.health import router as health_router
from codecircle.api.routes.internal_distribution import router as internal_distribution_router
from codecircle.core.config import get_settings
from codecircle.core.logging import configure_logging


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Code Circle Distribution API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.include_router(health_router)
    app.include_router(internal_distribution_router)
    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "codecircle.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_env == "dev",
    )


if __name__ == "__main__":
    run()
