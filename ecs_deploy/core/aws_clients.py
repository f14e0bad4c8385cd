"""AWS client construction and call wrapping.

One boto3 client per service, built from a single session and handed to the
pipeline components. Every call goes through :func:`call_aws`, which runs the
blocking SDK call in a worker thread and maps SDK failures onto
:class:`DependencyError`.
"""

import asyncio
from dataclasses import dataclass
from typing import Any

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from .exceptions import DependencyError

logger = structlog.get_logger()


@dataclass(frozen=True)
class AwsClients:
    """The EC2, ECS and CloudWatch Logs clients used by a run."""

    ec2: Any
    ecs: Any
    logs: Any


def create_clients(region: str, profile: str | None = None) -> AwsClients:
    """Build the service clients for ``region`` from one boto3 session."""
    session = boto3.session.Session(profile_name=profile, region_name=region)
    logger.debug("Creating AWS clients", region=region, profile=profile)
    return AwsClients(
        ec2=session.client("ec2"),
        ecs=session.client("ecs"),
        logs=session.client("logs"),
    )


def error_code(error: ClientError) -> str:
    """AWS error code of a ClientError, empty when absent."""
    return str(error.response.get("Error", {}).get("Code", ""))


async def call_aws(client: Any, operation: str, **kwargs: Any) -> dict[str, Any]:
    """Invoke ``client.<operation>(**kwargs)`` off the event loop.

    Raises:
        DependencyError: If the SDK raises a client or transport error
    """
    method = getattr(client, operation)
    try:
        return await asyncio.to_thread(method, **kwargs)
    except ClientError as e:
        code = error_code(e)
        message = e.response.get("Error", {}).get("Message", str(e))
        raise DependencyError(
            f"{operation} failed: {code or 'ClientError'}: {message}",
            operation=operation,
            error_code=code or None,
        ) from e
    except BotoCoreError as e:
        raise DependencyError(f"{operation} failed: {e}", operation=operation) from e
