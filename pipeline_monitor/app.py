import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pipeline_monitor.application import PipelineService, build_pipeline_service
from pipeline_monitor.core.settings import Settings
from pipeline_monitor.routes import pipelines


def create_app(settings: Settings | None = None, service: PipelineService | None = None) -> FastAPI:
    settings = settings or Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s [%(name)s] %(levelname)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    pipeline_service = service or build_pipeline_service(settings)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        yield
        await pipeline_service.aclose()

    app = FastAPI(title="Pipeline Monitor API", version="0.1.0", lifespan=lifespan)
    app.state.pipeline_service = pipeline_service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(pipelines.router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "Pipeline Monitor API",
                "docs": "/docs",
                "health": "/api/pipelines/load-state",
            }
        )

    return app


app = create_app()
