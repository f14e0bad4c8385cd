"""Forced redeployment of the long-running ECS services."""

from typing import Any

import structlog
from structlog.stdlib import BoundLogger

from ..core.aws_clients import call_aws
from ..core.settings import DeploymentParameters
from ..models.deployment import ServiceDeploymentRequest, ServiceDeploymentResult


class ServiceDeployer:
    """Restarts the API and worker services on their current task definitions."""

    def __init__(self, ecs_client: Any):
        self.ecs = ecs_client
        self.logger: BoundLogger = structlog.get_logger().bind(component="service_deployer")

    async def redeploy_all(self, params: DeploymentParameters) -> list[ServiceDeploymentResult]:
        """Force new deployments of the API service, then the worker service.

        A failure on the API service raises before the worker is touched.
        Only acceptance of the request is checked, not a steady state.
        """
        results = []
        for service_name in (params.api_service, params.worker_service):
            request = ServiceDeploymentRequest(service_name=service_name, cluster_name=params.cluster)
            results.append(await self.redeploy(request))
        return results

    async def redeploy(self, request: ServiceDeploymentRequest) -> ServiceDeploymentResult:
        """Force a new deployment of one service."""
        response = await call_aws(
            self.ecs,
            "update_service",
            cluster=request.cluster_name,
            service=request.service_name,
            forceNewDeployment=True,
        )

        primary = self._primary_deployment(response.get("service", {}))
        result = ServiceDeploymentResult(
            service_name=request.service_name,
            cluster_name=request.cluster_name,
            deployment_id=primary.get("id"),
            status=primary.get("rolloutState") or primary.get("status"),
        )
        self.logger.info(
            "Service deployment requested",
            service=result.service_name,
            cluster=result.cluster_name,
            deployment_id=result.deployment_id,
        )
        return result

    @staticmethod
    def _primary_deployment(service: dict[str, Any]) -> dict[str, Any]:
        deployments = service.get("deployments", [])
        for deployment in deployments:
            if deployment.get("status") == "PRIMARY":
                return deployment
        return deployments[0] if deployments else {}
