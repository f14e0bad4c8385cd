"""Shared pytest fixtures for ECS deploy tests."""

from unittest.mock import MagicMock

import pytest

from ecs_deploy.core.aws_clients import AwsClients
from ecs_deploy.core.settings import DeploymentParameters, PipelineSettings
from tests.aws_stubs import SUCCESS_LOG, TASK_ARN, make_logs_client, task_description


@pytest.fixture
def params() -> DeploymentParameters:
    """Deployment parameters for the ``acme`` prefix."""
    return DeploymentParameters(region="us-east-1", prefix="acme")


@pytest.fixture
def settings() -> PipelineSettings:
    """Pipeline settings that poll without sleeping."""
    return PipelineSettings(TASK_POLL_INTERVAL=0, TASK_WAIT_TIMEOUT=5)


@pytest.fixture
def ec2_client() -> MagicMock:
    """EC2 client with one VPC, a public and a private subnet and one security group."""
    ec2 = MagicMock()
    ec2.describe_vpcs.return_value = {"Vpcs": [{"VpcId": "vpc-acme"}]}
    ec2.describe_subnets.return_value = {
        "Subnets": [
            {"SubnetId": "subnet-public", "VpcId": "vpc-acme", "MapPublicIpOnLaunch": True},
            {"SubnetId": "subnet-private", "VpcId": "vpc-acme", "MapPublicIpOnLaunch": False},
        ]
    }
    ec2.describe_security_groups.return_value = {
        "SecurityGroups": [{"GroupId": "sg-tasks", "GroupName": "acme-sg-ecs-tasks"}]
    }
    return ec2


@pytest.fixture
def ecs_client() -> MagicMock:
    """ECS client whose migration task stops on the first poll."""
    ecs = MagicMock()
    ecs.run_task.return_value = {"tasks": [{"taskArn": TASK_ARN}], "failures": []}
    ecs.describe_tasks.return_value = task_description("STOPPED", exit_code=0)
    ecs.update_service.side_effect = lambda **kwargs: {
        "service": {
            "serviceName": kwargs["service"],
            "deployments": [
                {"id": f"ecs-svc/{kwargs['service']}", "status": "PRIMARY", "rolloutState": "IN_PROGRESS"},
                {"id": "ecs-svc/old", "status": "ACTIVE"},
            ],
        }
    }
    return ecs


@pytest.fixture
def logs_client() -> MagicMock:
    """Logs client serving a successful migration log."""
    return make_logs_client(SUCCESS_LOG)


@pytest.fixture
def clients(ec2_client: MagicMock, ecs_client: MagicMock, logs_client: MagicMock) -> AwsClients:
    """All three AWS clients."""
    return AwsClients(ec2=ec2_client, ecs=ecs_client, logs=logs_client)
