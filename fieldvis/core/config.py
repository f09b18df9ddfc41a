"""
Engine configuration.

The conditional-visibility feature toggle and the client expression
settings are explicit values passed into the service and compiler, loaded
from the environment (and an optional .env file) by ``load_config``.
"""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_STATE_PATH = "custom_fields"
DEFAULT_DECIMAL_PLACES = 10


def _is_truthy(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class EngineConfig(BaseModel):
    """Settings shared by the server evaluation service and the expression compiler."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = Field(
        default=True,
        description="Whether conditional visibility is active at all",
    )
    state_path: str = Field(
        default=DEFAULT_STATE_PATH,
        min_length=1,
        description="Prefix of the client state path holding field values",
    )
    decimal_places: int = Field(
        default=DEFAULT_DECIMAL_PLACES,
        ge=0,
        le=20,
        description="Fixed precision used for decimal literals in compiled expressions",
    )


def load_config() -> EngineConfig:
    """Build an EngineConfig from environment variables.

    Environment variables:
        CONDITIONAL_VISIBILITY_ENABLED: Feature toggle (default on).
        VISIBILITY_STATE_PATH: Client state prefix (default "custom_fields").
        VISIBILITY_DECIMAL_PLACES: Decimal literal precision (default 10).
    """
    load_dotenv()

    return EngineConfig(
        enabled=_is_truthy(os.getenv("CONDITIONAL_VISIBILITY_ENABLED"), default=True),
        state_path=os.getenv("VISIBILITY_STATE_PATH", DEFAULT_STATE_PATH),
        decimal_places=int(os.getenv("VISIBILITY_DECIMAL_PLACES", str(DEFAULT_DECIMAL_PLACES))),
    )
