"""Data models for ECS deploy."""

from .deployment import (  # noqa: F401
    DeploymentResult,
    ServiceDeploymentRequest,
    ServiceDeploymentResult,
)
from .enums import PipelineStage, ResolutionPolicy, TaskState  # noqa: F401
from .migration import MigrationOutcome, TaskHandle  # noqa: F401
from .network import NetworkContext  # noqa: F401

__all__ = [
    # Deployment models
    "DeploymentResult",
    "ServiceDeploymentRequest",
    "ServiceDeploymentResult",
    # Enums
    "PipelineStage",
    "ResolutionPolicy",
    "TaskState",
    # Migration models
    "MigrationOutcome",
    "TaskHandle",
    # Network models
    "NetworkContext",
]
