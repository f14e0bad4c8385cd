"""Migrate-then-redeploy pipeline orchestrator."""

import asyncio

import structlog
from structlog.stdlib import BoundLogger

from ..core.aws_clients import AwsClients
from ..core.error_response import DeployErrorResponse
from ..core.exceptions import PipelineCancelledError
from ..core.failure_markers import FailureDetector
from ..core.settings import DeploymentParameters, PipelineSettings
from ..models.deployment import DeploymentResult, ServiceDeploymentResult
from ..models.enums import PipelineStage
from ..models.migration import MigrationOutcome
from ..models.network import NetworkContext
from .deployer import ServiceDeployer
from .migration import MigrationRunner
from .network import NetworkResolver


class DeploymentPipeline:
    """Orchestrates one deployment run.

    Coordinates the three stages in order:
    1. Network placement resolution
    2. Database migration task and log classification
    3. Forced redeployment of the API and worker services

    Each stage helper returns either its value or a failed DeploymentResult;
    the first failure ends the run and no later stage is invoked.
    """

    def __init__(
        self,
        params: DeploymentParameters,
        resolver: NetworkResolver,
        runner: MigrationRunner,
        deployer: ServiceDeployer,
    ):
        self.params = params
        self.resolver = resolver
        self.runner = runner
        self.deployer = deployer
        self.logger: BoundLogger = structlog.get_logger().bind(
            component="deployment_pipeline", prefix=params.prefix, region=params.region
        )

    @classmethod
    def from_clients(
        cls,
        params: DeploymentParameters,
        clients: AwsClients,
        settings: PipelineSettings | None = None,
        detector: FailureDetector | None = None,
    ) -> "DeploymentPipeline":
        """Wire the components onto one set of AWS clients."""
        settings = settings or PipelineSettings()
        return cls(
            params,
            resolver=NetworkResolver(clients.ec2, policy=settings.resolution_policy),
            runner=MigrationRunner(clients.ecs, clients.logs, settings=settings, detector=detector),
            deployer=ServiceDeployer(clients.ecs),
        )

    async def run(self, cancel_event: asyncio.Event | None = None) -> DeploymentResult:
        """Run network resolution, migration and redeployment in sequence.

        Args:
            cancel_event: Optional event that stops the run before the next stage
                or aborts the migration wait when set

        Returns:
            DeploymentResult describing the completed run or the first failure
        """
        steps: list[str] = []

        cancelled = self._check_cancelled(PipelineStage.NETWORK, steps, cancel_event)
        if cancelled is not None:
            return cancelled

        network = await self._resolve_network(steps)
        if isinstance(network, DeploymentResult):
            return network

        cancelled = self._check_cancelled(PipelineStage.MIGRATION, steps, cancel_event)
        if cancelled is not None:
            cancelled.network = network
            return cancelled

        migration = await self._run_migration(network, steps, cancel_event)
        if isinstance(migration, DeploymentResult):
            migration.network = network
            return migration

        cancelled = self._check_cancelled(PipelineStage.DEPLOY, steps, cancel_event)
        if cancelled is not None:
            cancelled.network = network
            cancelled.migration = migration
            return cancelled

        deployments = await self._deploy_services(steps)
        if isinstance(deployments, DeploymentResult):
            deployments.network = network
            deployments.migration = migration
            return deployments

        self.logger.info("Deployment completed", steps=steps)
        return DeploymentResult(
            success=True,
            stage=PipelineStage.COMPLETE,
            steps=steps,
            network=network,
            migration=migration,
            deployments=deployments,
        )

    async def _resolve_network(self, steps: list[str]) -> DeploymentResult | NetworkContext:
        try:
            network = await self.resolver.resolve_network(
                self.params.vpc_tag, self.params.security_group_name
            )
        except Exception as e:
            return self._failure(PipelineStage.NETWORK, e, steps)
        steps.append(
            f"Resolved VPC {network.vpc_id} with {len(network.private_subnet_ids)} private subnet(s)"
        )
        return network

    async def _run_migration(
        self,
        network: NetworkContext,
        steps: list[str],
        cancel_event: asyncio.Event | None,
    ) -> DeploymentResult | MigrationOutcome:
        try:
            outcome = await self.runner.run_and_await(network, self.params, cancel_event=cancel_event)
        except Exception as e:
            return self._failure(PipelineStage.MIGRATION, e, steps)
        steps.append(f"Migration task {outcome.task_id} completed")
        return outcome

    async def _deploy_services(
        self, steps: list[str]
    ) -> DeploymentResult | list[ServiceDeploymentResult]:
        try:
            deployments = await self.deployer.redeploy_all(self.params)
        except Exception as e:
            return self._failure(PipelineStage.DEPLOY, e, steps)
        steps.extend(f"Redeployment requested for {d.service_name}" for d in deployments)
        return deployments

    def _check_cancelled(
        self, stage: PipelineStage, steps: list[str], cancel_event: asyncio.Event | None
    ) -> DeploymentResult | None:
        if cancel_event is None or not cancel_event.is_set():
            return None
        error = PipelineCancelledError(f"Cancelled before the {stage.value} stage")
        return self._failure(stage, error, steps)

    def _failure(self, stage: PipelineStage, error: Exception, steps: list[str]) -> DeploymentResult:
        self.logger.error(
            "Deployment stage failed",
            stage=stage.value,
            error=str(error),
            error_class=type(error).__name__,
            exc_info=error,
        )
        return DeploymentResult(
            success=False,
            stage=stage,
            steps=steps,
            error=DeployErrorResponse.from_exception(error, stage.value, self.params.prefix),
        )
