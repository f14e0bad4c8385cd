"""End-to-end tests for the migrate-then-redeploy pipeline."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from ecs_deploy.core.aws_clients import AwsClients
from ecs_deploy.core.exceptions import NotFoundError
from ecs_deploy.core.settings import PipelineSettings
from ecs_deploy.models.enums import PipelineStage, ResolutionPolicy
from ecs_deploy.services.deployer import ServiceDeployer
from ecs_deploy.services.migration import MigrationRunner
from ecs_deploy.services.network import NetworkResolver
from ecs_deploy.services.pipeline import DeploymentPipeline
from tests.aws_stubs import (
    FAILURE_LOG,
    SUCCESS_LOG,
    client_error,
    log_events_response,
    make_logs_client,
)


class TestDeploymentPipeline:
    """Test suite for DeploymentPipeline."""

    @pytest.mark.asyncio
    async def test_successful_run(self, params, clients, settings):
        """Private subnet, clean migration log, both services redeployed."""
        pipeline = DeploymentPipeline.from_clients(params, clients, settings=settings)

        result = await pipeline.run()

        assert result.success is True
        assert result.stage is PipelineStage.COMPLETE
        assert result.error is None
        assert result.network.private_subnet_ids == ("subnet-private",)
        assert result.network.security_group_id == "sg-tasks"
        assert result.migration.succeeded is True
        assert result.migration.log_lines == ("Migrating...", "Done")
        services = [c.kwargs["service"] for c in clients.ecs.update_service.call_args_list]
        assert services == ["acme-api-ecs-service", "acme-worker-ecs-service"]
        assert len(result.steps) == 4

    @pytest.mark.asyncio
    async def test_failed_migration_blocks_deploy(self, params, ec2_client, ecs_client, settings):
        """A 'rake aborted' log fails the run and no service is touched."""
        clients = AwsClients(ec2=ec2_client, ecs=ecs_client, logs=make_logs_client(FAILURE_LOG))
        pipeline = DeploymentPipeline.from_clients(params, clients, settings=settings)

        result = await pipeline.run()

        assert result.success is False
        assert result.stage is PipelineStage.MIGRATION
        assert "rake aborted! StandardError: boom" in result.message
        assert result.error["log_text"] == "Migrating...\nrake aborted! StandardError: boom"
        assert result.error["type"] == "/problems/migration-failed"
        assert result.network is not None
        ecs_client.update_service.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_vpc_stops_everything(self, params, clients, settings):
        """No VPC means no task launch and no redeploy."""
        clients.ec2.describe_vpcs.return_value = {"Vpcs": []}
        pipeline = DeploymentPipeline.from_clients(params, clients, settings=settings)

        result = await pipeline.run()

        assert result.success is False
        assert result.stage is PipelineStage.NETWORK
        assert result.error["error_class"] == "NotFoundError"
        assert result.error["type"] == "/problems/not-found"
        clients.ecs.run_task.assert_not_called()
        clients.ecs.update_service.assert_not_called()
        clients.logs.get_log_events.assert_not_called()

    @pytest.mark.asyncio
    async def test_api_redeploy_failure(self, params, clients, settings):
        """An API redeploy failure is reported and the worker is skipped."""
        clients.ecs.update_service.side_effect = client_error("AccessDeniedException", "UpdateService")
        pipeline = DeploymentPipeline.from_clients(params, clients, settings=settings)

        result = await pipeline.run()

        assert result.success is False
        assert result.stage is PipelineStage.DEPLOY
        assert result.error["operation"] == "update_service"
        assert result.error["error_code"] == "AccessDeniedException"
        assert "AccessDeniedException" in result.error["cause"]
        assert result.migration.succeeded is True
        assert clients.ecs.update_service.call_count == 1

    @pytest.mark.asyncio
    async def test_resolution_policy_from_settings(self, params, clients):
        """The resolver gets the configured ambiguity policy."""
        settings = PipelineSettings(TASK_POLL_INTERVAL=0, RESOLUTION_POLICY="unique")
        clients.ec2.describe_vpcs.return_value = {"Vpcs": [{"VpcId": "vpc-1"}, {"VpcId": "vpc-2"}]}
        pipeline = DeploymentPipeline.from_clients(params, clients, settings=settings)

        result = await pipeline.run()

        assert pipeline.resolver.policy is ResolutionPolicy.UNIQUE
        assert result.stage is PipelineStage.NETWORK
        assert result.error["type"] == "/problems/ambiguous-resource"

    @pytest.mark.asyncio
    async def test_stages_short_circuit(self, params):
        """Later components are never invoked after a failure."""
        resolver = MagicMock(spec=NetworkResolver)
        resolver.resolve_network = AsyncMock(side_effect=NotFoundError("No VPC tagged Name=acme-vpc"))
        runner = MagicMock(spec=MigrationRunner)
        runner.run_and_await = AsyncMock()
        deployer = MagicMock(spec=ServiceDeployer)
        deployer.redeploy_all = AsyncMock()
        pipeline = DeploymentPipeline(params, resolver=resolver, runner=runner, deployer=deployer)

        result = await pipeline.run()

        assert result.success is False
        resolver.resolve_network.assert_awaited_once_with("acme-vpc", "acme-sg-ecs-tasks")
        runner.run_and_await.assert_not_awaited()
        deployer.redeploy_all.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cancel_before_start_launches_nothing(self, params, clients, settings):
        """A cancel requested before the run touches no AWS resource."""
        cancel_event = asyncio.Event()
        cancel_event.set()
        pipeline = DeploymentPipeline.from_clients(params, clients, settings=settings)

        result = await pipeline.run(cancel_event=cancel_event)

        assert result.success is False
        assert result.stage is PipelineStage.NETWORK
        assert result.error["type"] == "/problems/cancelled"
        clients.ec2.describe_vpcs.assert_not_called()
        clients.ecs.run_task.assert_not_called()
        clients.ecs.update_service.assert_not_called()

    @pytest.mark.asyncio
    async def test_cancel_during_network_resolution_skips_migration(self, params, clients, settings):
        """A cancel arriving while the network is resolved stops before run_task."""
        cancel_event = asyncio.Event()

        def describe_security_groups(**kwargs):
            cancel_event.set()
            return {"SecurityGroups": [{"GroupId": "sg-tasks", "GroupName": "acme-sg-ecs-tasks"}]}

        clients.ec2.describe_security_groups.side_effect = describe_security_groups
        pipeline = DeploymentPipeline.from_clients(params, clients, settings=settings)

        result = await pipeline.run(cancel_event=cancel_event)

        assert result.success is False
        assert result.stage is PipelineStage.MIGRATION
        assert result.error["error_class"] == "PipelineCancelledError"
        assert result.network.security_group_id == "sg-tasks"
        clients.ecs.run_task.assert_not_called()

    @pytest.mark.asyncio
    async def test_cancel_after_migration_skips_redeploy(self, params, ec2_client, ecs_client, settings):
        """A cancel arriving while the log is read leaves both services untouched."""
        cancel_event = asyncio.Event()
        pages = [
            log_events_response(SUCCESS_LOG),
            {"events": [], "nextForwardToken": "f/end", "nextBackwardToken": "b/start"},
        ]

        def get_log_events(**kwargs):
            cancel_event.set()
            return pages.pop(0)

        logs = MagicMock()
        logs.get_log_events.side_effect = get_log_events
        clients = AwsClients(ec2=ec2_client, ecs=ecs_client, logs=logs)
        pipeline = DeploymentPipeline.from_clients(params, clients, settings=settings)

        result = await pipeline.run(cancel_event=cancel_event)

        assert result.success is False
        assert result.stage is PipelineStage.DEPLOY
        assert result.error["type"] == "/problems/cancelled"
        assert result.migration.succeeded is True
        ecs_client.run_task.assert_called_once()
        ecs_client.update_service.assert_not_called()
