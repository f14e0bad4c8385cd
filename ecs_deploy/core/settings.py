"""Configuration for ECS deploy runs.

``DeploymentParameters`` holds the resource names of one run, all derived
from the region and resource prefix. ``PipelineSettings`` holds the
operational knobs (polling, timeout, failure marker) with environment
variable support. ``ActionInputs`` reads the GitHub Actions input variables.
"""

import os
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..constants import (
    API_SERVICE_SUFFIX,
    CLUSTER_SUFFIX,
    CONTAINER_SUFFIX,
    DEFAULT_FAILURE_MARKER,
    INPUT_AWS_REGION,
    INPUT_AWS_RESOURCE_PREFIX,
    LOG_GROUP_SUFFIX,
    MIGRATION_LOG_STREAM_PREFIX,
    MIGRATION_TASK_DEFINITION_SUFFIX,
    TASK_SECURITY_GROUP_SUFFIX,
    VPC_SUFFIX,
    WORKER_SERVICE_SUFFIX,
)
from ..models.enums import ResolutionPolicy
from .exceptions import ConfigurationError

logger = structlog.get_logger()


class DeploymentParameters(BaseModel):
    """Resource names for one deployment run."""

    model_config = ConfigDict(frozen=True)

    region: str
    prefix: str
    log_stream_prefix: str = MIGRATION_LOG_STREAM_PREFIX

    @field_validator("region", "prefix", "log_stream_prefix")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @computed_field
    @property
    def vpc_tag(self) -> str:
        return f"{self.prefix}{VPC_SUFFIX}"

    @computed_field
    @property
    def security_group_name(self) -> str:
        return f"{self.prefix}{TASK_SECURITY_GROUP_SUFFIX}"

    @computed_field
    @property
    def cluster(self) -> str:
        return f"{self.prefix}{CLUSTER_SUFFIX}"

    @computed_field
    @property
    def container(self) -> str:
        return f"{self.prefix}{CONTAINER_SUFFIX}"

    @computed_field
    @property
    def api_service(self) -> str:
        return f"{self.prefix}{API_SERVICE_SUFFIX}"

    @computed_field
    @property
    def worker_service(self) -> str:
        return f"{self.prefix}{WORKER_SERVICE_SUFFIX}"

    @computed_field
    @property
    def log_group(self) -> str:
        return f"{self.prefix}{LOG_GROUP_SUFFIX}"

    @computed_field
    @property
    def migration_task_definition(self) -> str:
        return f"{self.prefix}{MIGRATION_TASK_DEFINITION_SUFFIX}"

    def migration_log_stream(self, task_id: str) -> str:
        """Log stream written by the migration container of ``task_id``."""
        return f"{self.log_stream_prefix}/{self.container}/{task_id}"


class PipelineSettings(BaseSettings):
    """Operational settings for the deploy pipeline."""

    task_poll_interval: float = Field(
        6.0, ge=0, alias="TASK_POLL_INTERVAL", description="Seconds between task status polls"
    )

    task_wait_timeout: float | None = Field(
        3600.0,
        gt=0,
        alias="TASK_WAIT_TIMEOUT",
        description="Max seconds to wait for the migration task to stop (none disables)",
    )

    failure_marker: str = Field(
        DEFAULT_FAILURE_MARKER,
        min_length=1,
        alias="MIGRATION_FAILURE_MARKER",
        description="Substring in the migration log that marks a failed run",
    )

    resolution_policy: ResolutionPolicy = Field(
        ResolutionPolicy.FIRST,
        alias="RESOLUTION_POLICY",
        description="How lookups matching several resources are resolved",
    )

    model_config = SettingsConfigDict(
        env_file=".env", extra="ignore", populate_by_name=True, env_parse_none_str="none"
    )


class ActionInputs(BaseSettings):
    """Inputs passed by a GitHub Actions runner as INPUT_* variables."""

    aws_region: str | None = Field(None, alias=INPUT_AWS_REGION)
    aws_resource_prefix: str | None = Field(None, alias=INPUT_AWS_RESOURCE_PREFIX)

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)


def load_config_file(config_path: str | Path) -> dict[str, Any]:
    """Load a YAML config file into a dict.

    Raises:
        ConfigurationError: If the file is missing or is not a YAML mapping
    """
    path = Path(config_path).expanduser()
    if not path.is_file():
        raise ConfigurationError(f"Config file not found: {path}")

    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")

    logger.debug("Loaded config file", path=str(path), keys=sorted(data))
    return data


def load_parameters(
    region: str | None = None,
    prefix: str | None = None,
    config_path: str | Path | None = None,
) -> DeploymentParameters:
    """Resolve deployment parameters from arguments, environment and config file.

    Explicit arguments win over ``INPUT_*`` environment variables, which win
    over the ``aws_region`` / ``aws_resource_prefix`` keys of the config file.

    Raises:
        ConfigurationError: If region or prefix cannot be resolved
    """
    file_values = load_config_file(config_path) if config_path else {}
    inputs = ActionInputs()

    resolved_region = region or inputs.aws_region or file_values.get("aws_region")
    resolved_prefix = prefix or inputs.aws_resource_prefix or file_values.get("aws_resource_prefix")

    missing = [
        name
        for name, value in (("aws_region", resolved_region), ("aws_resource_prefix", resolved_prefix))
        if not value
    ]
    if missing:
        raise ConfigurationError(f"Missing required input(s): {', '.join(missing)}")

    extra: dict[str, Any] = {}
    if file_values.get("log_stream_prefix"):
        extra["log_stream_prefix"] = file_values["log_stream_prefix"]

    try:
        return DeploymentParameters(region=resolved_region, prefix=resolved_prefix, **extra)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid deployment parameters: {e}") from e


def load_settings(config_path: str | Path | None = None) -> PipelineSettings:
    """Load pipeline settings from the environment, with config file fallbacks.

    Environment variables override the ``settings`` section of the config file.
    """
    file_settings: dict[str, Any] = {}
    if config_path:
        section = load_config_file(config_path).get("settings") or {}
        if not isinstance(section, dict):
            raise ConfigurationError("Config file 'settings' must be a mapping")
        # Field aliases are the upper-cased field names
        file_settings = {
            key.upper(): value for key, value in section.items() if key.upper() not in os.environ
        }

    try:
        return PipelineSettings(**file_settings)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid pipeline settings: {e}") from e
