"""
ECS Deploy Services

Pipeline components, run strictly in sequence:
- network: VPC, private subnet and security group resolution
- migration: migration task launch, wait and log classification
- deployer: forced redeployment of the API and worker services
- pipeline: short-circuiting orchestration of the three
"""

from .deployer import ServiceDeployer  # noqa: F401
from .migration import MigrationRunner  # noqa: F401
from .network import NetworkResolver  # noqa: F401
from .pipeline import DeploymentPipeline  # noqa: F401

__all__ = [
    "NetworkResolver",
    "MigrationRunner",
    "ServiceDeployer",
    "DeploymentPipeline",
]
