"""
FastAPI routes for the fieldvis engine.

Endpoints:
- POST /visibility/evaluate                          - visibility of each field for a record
- POST /visibility/compile                           - client expressions + dependency map
- POST /visibility/validate                          - check a form's visibility rules
- GET  /fields/{entity_type}/{field_code}/options    - condition value choices
- GET  /fields/{entity_type}/{field_code}/metadata   - visibility metadata of a field
- GET  /health                                       - health check
"""

import logging
from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from fieldvis.core.compiler import ExpressionCompiler
from fieldvis.core.dependencies import VisibilityCycleError
from fieldvis.core.schema import FormField
from fieldvis.core.service import VisibilityService
from fieldvis.core.validation import validate_visibility_rules

logger = logging.getLogger(__name__)

router = APIRouter()

# These will be injected by the app factory
_service: VisibilityService | None = None
_compiler: ExpressionCompiler | None = None


def configure_routes(service: VisibilityService, compiler: ExpressionCompiler):
    """Inject the visibility service and expression compiler into the routes module.

    Called by the app factory during startup.
    """
    global _service, _compiler
    _service = service
    _compiler = compiler


def _require_configured() -> tuple[VisibilityService, ExpressionCompiler]:
    if _service is None or _compiler is None:
        raise HTTPException(status_code=500, detail="Server not properly configured")
    return _service, _compiler


# --- Request / Response Models ---


class FieldsRequest(BaseModel):
    """Request body carrying the fields of one form."""

    fields: list[FormField] = Field(..., min_length=1)


class EvaluateRequest(FieldsRequest):
    """Request body for the /visibility/evaluate endpoint."""

    record: dict[str, Any] = Field(
        default_factory=dict,
        description="Raw stored values keyed by field code",
    )


class EvaluateResponse(BaseModel):
    visibility: dict[str, bool]
    visible_values: dict[str, Any]
    persistable_values: dict[str, Any]


class CompileResponse(BaseModel):
    expressions: dict[str, str]
    dependencies: dict[str, list[str]]


class ValidateResponse(BaseModel):
    valid: bool
    errors: list[str]


# --- Endpoints ---


@router.post("/visibility/evaluate", response_model=EvaluateResponse)
async def evaluate(request: EvaluateRequest):
    """Evaluate the cascading visibility of every field for a record."""
    service, _ = _require_configured()

    try:
        visibility = service.get_visibility_map(request.record, request.fields)
        return EvaluateResponse(
            visibility=visibility,
            visible_values=service.get_visible_values(request.record, request.fields, visibility),
            persistable_values=service.get_persistable_values(
                request.record, request.fields, visibility,
            ),
        )
    except VisibilityCycleError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/visibility/compile", response_model=CompileResponse)
async def compile_expressions(request: FieldsRequest):
    """Compile the client visibility expression of every conditional field."""
    service, compiler = _require_configured()

    try:
        expressions = compiler.build_visibility_expressions(request.fields)
    except VisibilityCycleError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error("Error compiling visibility expressions: %s", e, exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Error compiling visibility expressions: {str(e)}",
        )

    return CompileResponse(
        expressions=expressions,
        dependencies=service.calculate_dependencies(request.fields),
    )


@router.post("/visibility/validate", response_model=ValidateResponse)
async def validate(request: FieldsRequest):
    """Check a form's visibility rules for unknown targets, bad operators and cycles."""
    errors = validate_visibility_rules(request.fields)
    return ValidateResponse(valid=not errors, errors=errors)


@router.get("/fields/{entity_type}/{field_code}/options")
async def field_options(entity_type: str, field_code: str):
    """List the option names a condition on this field can compare against."""
    service, _ = _require_configured()
    return {"options": service.get_field_options(field_code, entity_type)}


@router.get("/fields/{entity_type}/{field_code}/metadata")
async def field_metadata(entity_type: str, field_code: str):
    """Get the visibility metadata of a registered field."""
    service, _ = _require_configured()

    metadata = service.get_field_metadata_by_code(field_code, entity_type)
    if metadata is None:
        raise HTTPException(
            status_code=404,
            detail=f"Field '{field_code}' not found for entity '{entity_type}'",
        )
    return metadata


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "conditional_visibility": _service.config.enabled if _service else False,
    }
