"""Tests for AWS client construction and call wrapping."""

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import EndpointConnectionError

from ecs_deploy.core.aws_clients import call_aws, create_clients
from ecs_deploy.core.exceptions import DependencyError
from tests.aws_stubs import client_error


class TestCallAws:
    """Test the SDK call wrapper."""

    @pytest.mark.asyncio
    async def test_returns_response(self):
        client = MagicMock()
        client.describe_vpcs.return_value = {"Vpcs": []}

        response = await call_aws(client, "describe_vpcs", Filters=[])

        assert response == {"Vpcs": []}
        client.describe_vpcs.assert_called_once_with(Filters=[])

    @pytest.mark.asyncio
    async def test_client_error(self):
        client = MagicMock()
        client.run_task.side_effect = client_error("ClusterNotFoundException", "RunTask", "Cluster not found.")

        with pytest.raises(DependencyError, match="Cluster not found") as exc_info:
            await call_aws(client, "run_task")

        assert exc_info.value.error_code == "ClusterNotFoundException"
        assert exc_info.value.operation == "run_task"

    @pytest.mark.asyncio
    async def test_transport_error(self):
        client = MagicMock()
        client.describe_tasks.side_effect = EndpointConnectionError(endpoint_url="https://ecs")

        with pytest.raises(DependencyError) as exc_info:
            await call_aws(client, "describe_tasks")

        assert exc_info.value.error_code is None
        assert isinstance(exc_info.value.__cause__, EndpointConnectionError)


def test_create_clients_uses_one_session():
    """All clients come from a single session in the requested region."""
    with patch("ecs_deploy.core.aws_clients.boto3.session.Session") as session_cls:
        session = session_cls.return_value

        clients = create_clients("us-east-1", profile="ops")

    session_cls.assert_called_once_with(profile_name="ops", region_name="us-east-1")
    assert [c.args[0] for c in session.client.call_args_list] == ["ec2", "ecs", "logs"]
    assert clients.ecs is session.client.return_value
