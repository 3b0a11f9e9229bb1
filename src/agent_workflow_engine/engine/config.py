"""Configuration for the workflow engine.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)

Workflow selection is read here once and then passed explicitly to the
loader; nothing downstream reads the environment.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Settings for the workflow engine.

    Environment variables:
    - WORKFLOWS_DIR        (optional)
    - ACTIVE_WORKFLOWS     (optional, comma-separated workflow names)
    - ENGINE_STEP_BUDGET   (optional)
    - LOG_LEVEL            (optional)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `EngineSettings(_env_file=path_to_env)`.
    """

    workflows_dir: Path = Field(
        default=Path("workflows"),
        validation_alias="WORKFLOWS_DIR",
        description="Directory holding one sub-directory per workflow",
    )

    active_workflows: str = Field(
        default="",
        validation_alias="ACTIVE_WORKFLOWS",
        description=(
            "Comma-separated workflow names to activate. "
            "Empty means every workflow found under WORKFLOWS_DIR."
        ),
    )

    step_budget: int = Field(
        default=100,
        gt=0,
        validation_alias="ENGINE_STEP_BUDGET",
        description="Maximum node turns per session before it fails with BudgetExceeded",
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
    )

    def parsed_active_workflows(self) -> list[str] | None:
        """Selected workflow names, or None to load everything discovered."""

        names = [n.strip() for n in self.active_workflows.split(",") if n.strip()]
        return names or None


class LLMAgentConfig(BaseSettings):
    """Configuration for the OpenAI-backed agent."""

    api_key: str | None = Field(
        default=None,
        description="OpenAI API key",
    )
    base_url: str | None = Field(
        default=None,
        description="Alternative API base URL (OpenAI-compatible servers)",
    )
    model: str = Field(
        default="gpt-4o-mini",
        description="Chat model to use",
    )
    temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=2.0,
        description="Sampling temperature",
    )
    max_tool_rounds: int = Field(
        default=8,
        gt=0,
        description="Model round-trips allowed within a single node turn",
    )

    model_config = SettingsConfigDict(
        env_prefix="ENGINE_LLM_",
        env_file=".env",
        extra="ignore",
    )
