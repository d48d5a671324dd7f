"""FastAPI application entry point for Foundry History."""

import argparse
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from foundry_history import __version__
from foundry_history.api import widgets
from foundry_history.config import settings
from foundry_history.schemas.widget import WidgetConfig
from foundry_history.services.history_client import HomeAssistantClient
from foundry_history.services.registry import WidgetRegistry
from foundry_history.services.widget_loader import load_widgets

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


def _load_configured_widgets(path: str) -> list[WidgetConfig]:
    """Load the widgets file, or run with no widgets if it does not exist."""
    if not Path(path).is_file():
        logger.warning("Widgets file %s not found, starting with no widgets", path)
        return []
    configs = load_widgets(path)
    logger.info("Loaded %d widgets from %s", len(configs), path)
    return configs


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create the registry and run one refresher per widget while the app is up."""
    registry = WidgetRegistry(
        _load_configured_widgets(settings.WIDGETS_FILE),
        HomeAssistantClient(),
    )
    app.state.registry = registry
    registry.start()
    try:
        yield
    finally:
        registry.stop()


app = FastAPI(title="Foundry History", version=__version__, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(widgets.router)


@app.get("/api/health")
async def health() -> dict[str, str]:
    """Health check."""
    return {"status": "ok", "version": __version__}


def main() -> None:
    """Entry point for CLI usage."""
    parser = argparse.ArgumentParser(description="Foundry History server")
    parser.add_argument("--host", default="0.0.0.0", help="Bind host")
    parser.add_argument("--port", type=int, default=8000, help="Bind port")
    args = parser.parse_args()

    import uvicorn

    logger.info("Starting Foundry History on %s:%d", args.host, args.port)
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
