import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pagebuilder.config import settings
from pagebuilder.exception_handlers import register_exception_handlers
from pagebuilder.middleware.logging import StructuredLoggingMiddleware, setup_structured_logging
from pagebuilder.routes import monitoring, page_builder, plugins, sse
from pagebuilder.runtime import PageBuilderRuntime

logger = logging.getLogger(__name__)


def create_app(runtime: PageBuilderRuntime | None = None, load_builtin_plugins: bool = True) -> FastAPI:
    """Create the FastAPI application."""
    runtime = runtime or PageBuilderRuntime()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        report = await runtime.startup(load_builtin_plugins=load_builtin_plugins)
        if not report.ok:
            logger.warning("Plugins not ready: failed=%s skipped=%s", report.failed, report.skipped)
        yield
        await runtime.shutdown()

    app = FastAPI(
        title=settings.app_name,
        description="Block-based page builder with plugin orchestration and live preview",
        debug=settings.debug,
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.state.runtime = runtime

    app.add_middleware(StructuredLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(page_builder.router, prefix="/api/v1/page-builder")
    app.include_router(sse.router, prefix="/api/v1/page-builder")
    app.include_router(plugins.router, prefix="/api/v1/plugins")
    app.include_router(monitoring.router)

    if settings.debug:
        logger.info(f"Running in {settings.environment} mode")

    return app


setup_structured_logging(
    log_level=settings.log_level,
    json_format=settings.json_logs,
    log_file=settings.log_file,
)

app = create_app()


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.debug)
