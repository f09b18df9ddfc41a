"""
FastAPI application factory for fieldvis.

Creates and configures the FastAPI app: loads the engine configuration,
the field registry, the visibility service and the expression compiler,
and mounts the routes.

Run with:
    uvicorn fieldvis.api.app:app --reload
"""

import json
import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fieldvis.api.routes import configure_routes, router
from fieldvis.core.compiler import ExpressionCompiler
from fieldvis.core.config import EngineConfig, load_config
from fieldvis.core.registry import InMemoryFieldRegistry
from fieldvis.core.schema import FormField
from fieldvis.core.service import VisibilityService

# Load environment variables from .env
load_dotenv()

# Logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def load_registry(path: str | Path | None) -> InMemoryFieldRegistry:
    """Build a field registry from a JSON file.

    The file holds ``{"fields": {entity_type: [field, ...]},
    "lookups": {lookup_type: [name, ...]}}``. A missing path yields an
    empty registry.
    """
    if not path:
        return InMemoryFieldRegistry()

    with open(path, encoding="utf-8") as f:
        data = json.load(f)

    fields = {
        entity_type: [FormField(**field) for field in entity_fields]
        for entity_type, entity_fields in data.get("fields", {}).items()
    }
    return InMemoryFieldRegistry(fields=fields, lookups=data.get("lookups", {}))


def create_app(
    registry: InMemoryFieldRegistry | None = None,
    config: EngineConfig | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    application = FastAPI(
        title="fieldvis",
        description="Conditional field visibility engine",
        version="0.1.0",
    )

    # CORS: allow all origins unless CORS_ALLOWED_ORIGINS is set
    allowed_origins = os.getenv("CORS_ALLOWED_ORIGINS", "*").split(",")
    application.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    config = config or load_config()

    if registry is None:
        fields_file = os.getenv("FIELDS_FILE")
        try:
            registry = load_registry(fields_file)
            logger.info("Field registry loaded from: %s", fields_file or "(empty)")
        except (OSError, ValueError) as e:
            logger.warning(
                "Failed to load field registry from %s: %s. "
                "Field lookups will return empty results.",
                fields_file,
                e,
            )
            registry = InMemoryFieldRegistry()

    service = VisibilityService(registry, config)
    compiler = ExpressionCompiler(config)

    configure_routes(service, compiler)
    application.include_router(router, prefix="/api")

    logger.info("Conditional visibility enabled: %s", config.enabled)
    logger.info("Client state path: %s", config.state_path)

    return application


# Create the app instance (used by uvicorn)
app = create_app()
