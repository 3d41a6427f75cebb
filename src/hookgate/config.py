"""Gate configuration loader with Pydantic v2 validation.

Loads ``hookgate.yaml`` from the project root into a typed
:class:`GateConfig`.  Every section is optional; a missing file means
all defaults.  Unknown keys are allowed.

Example
-------
>>> config = ConfigLoader().load_string("runner:\\n  default_shell: sh\\n")
>>> config.runner.default_shell
'sh'
>>> str(config.workflows.directory)
'.github/hooks'
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, field_validator

from hookgate.runner.executor import default_shell
from hookgate.schema.discovery import WORKFLOW_DIR

DEFAULT_CONFIG_FILE = Path("hookgate.yaml")
DEBUG_ENV_VARS = ("HOOKGATE_DEBUG", "HOOKGATE_VERBOSE")

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]


class WorkflowsConfig(BaseModel):
    """Where workflow files live, relative to the project root."""

    model_config = {"extra": "allow"}

    directory: Path = Field(default=WORKFLOW_DIR)


class RunnerConfig(BaseModel):
    """Step execution settings."""

    model_config = {"extra": "allow"}

    default_shell: str = Field(default_factory=default_shell)
    action_cache_dir: Path | None = Field(default=None)
    denial_log_dir: Path | None = Field(default=None)

    @field_validator("default_shell")
    @classmethod
    def validate_shell(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("default_shell must not be empty")
        return value.strip()


class AuditConfig(BaseModel):
    """Configuration for the decision audit trail (off unless enabled)."""

    model_config = {"extra": "allow"}

    enabled: bool = Field(default=False)
    log_path: Path = Field(default=Path(".hookgate") / "audit.jsonl")
    retention_days: int = Field(default=30, ge=1)


class LoggingConfig(BaseModel):
    """Process log settings."""

    model_config = {"extra": "allow"}

    level: LogLevel = Field(default="INFO")
    directory: Path | None = Field(default=None)
    retention_days: int = Field(default=7, ge=1)

    @field_validator("level", mode="before")
    @classmethod
    def normalise_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value


class GateConfig(BaseModel):
    """Top-level ``hookgate.yaml`` schema."""

    model_config = {"extra": "allow"}

    workflows: WorkflowsConfig = Field(default_factory=WorkflowsConfig)
    runner: RunnerConfig = Field(default_factory=RunnerConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def debug_forced(self) -> bool:
        """True when ``HOOKGATE_DEBUG`` or ``HOOKGATE_VERBOSE`` is set."""
        return any(os.environ.get(name, "") not in ("", "0", "false") for name in DEBUG_ENV_VARS)

    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug_forced() else self.logging.level


class ConfigLoader:
    """Loads and validates gate YAML configuration.

    Example
    -------
    >>> loader = ConfigLoader()
    >>> config = loader.load(Path("hookgate.yaml"))
    """

    def load(self, config_path: Path) -> GateConfig:
        """Load a config file, or the defaults when it does not exist.

        Raises
        ------
        ValueError:
            When the YAML content fails Pydantic validation.
        """
        if not config_path.exists():
            return self.defaults()

        with config_path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
        return GateConfig.model_validate(raw)

    def load_string(self, yaml_content: str) -> GateConfig:
        """Load and validate a YAML string directly."""
        raw = yaml.safe_load(yaml_content) or {}
        return GateConfig.model_validate(raw)

    def defaults(self) -> GateConfig:
        return GateConfig()
