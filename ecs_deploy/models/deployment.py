"""Service deployment and pipeline result models."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .enums import PipelineStage
from .migration import MigrationOutcome
from .network import NetworkContext


class ServiceDeploymentRequest(BaseModel):
    """Request to force a new deployment of one ECS service."""

    model_config = ConfigDict(frozen=True)

    service_name: str
    cluster_name: str


class ServiceDeploymentResult(BaseModel):
    """Accepted redeployment of one ECS service."""

    service_name: str
    cluster_name: str
    deployment_id: str | None = None
    status: str | None = None


class DeploymentResult(BaseModel):
    """Outcome of a full pipeline run."""

    success: bool
    stage: PipelineStage
    steps: list[str] = Field(default_factory=list)
    network: NetworkContext | None = None
    migration: MigrationOutcome | None = None
    deployments: list[ServiceDeploymentResult] = Field(default_factory=list)
    error: dict[str, Any] | None = None

    @property
    def message(self) -> str:
        """Human-readable failure message, empty on success."""
        if self.error is None:
            return ""
        return str(self.error.get("error", ""))
