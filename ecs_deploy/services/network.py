"""VPC placement resolution for the migration task."""

from typing import Any

import structlog
from pydantic import ValidationError
from structlog.stdlib import BoundLogger

from ..constants import FILTER_GROUP_NAME, FILTER_TAG_NAME, FILTER_VPC_ID
from ..core.aws_clients import call_aws
from ..core.exceptions import AmbiguousResourceError, NotFoundError
from ..models.enums import ResolutionPolicy
from ..models.network import NetworkContext


class NetworkResolver:
    """Resolves the VPC, private subnets and task security group by tag.

    All lookups are read-only EC2 describe calls. A tag that matches several
    resources is resolved according to ``policy``.
    """

    def __init__(self, ec2_client: Any, policy: ResolutionPolicy = ResolutionPolicy.FIRST):
        self.ec2 = ec2_client
        self.policy = policy
        self.logger: BoundLogger = structlog.get_logger().bind(component="network_resolver")

    async def resolve_network(
        self, network_tag: str, security_boundary_tag: str
    ) -> NetworkContext:
        """Resolve the network placement for tasks launched in the VPC tagged ``network_tag``.

        Args:
            network_tag: Value of the VPC ``Name`` tag
            security_boundary_tag: Name of the security group attached to tasks

        Returns:
            NetworkContext with the VPC, its private subnets and the security group

        Raises:
            NotFoundError: No VPC, no private subnet or no security group matched
            AmbiguousResourceError: Several matches under the ``unique`` policy
            DependencyError: An EC2 call failed
        """
        vpc_id = await self._find_vpc(network_tag)
        subnet_ids = await self._find_private_subnets(vpc_id)
        security_group_id = await self._find_security_group(vpc_id, security_boundary_tag)

        try:
            context = NetworkContext(
                vpc_id=vpc_id,
                private_subnet_ids=tuple(subnet_ids),
                security_group_id=security_group_id,
            )
        except ValidationError as e:
            raise NotFoundError(f"Incomplete network placement for VPC {vpc_id}: {e}") from e

        self.logger.info(
            "Resolved network placement",
            vpc_id=context.vpc_id,
            private_subnets=list(context.private_subnet_ids),
            security_group_id=context.security_group_id,
        )
        return context

    async def _find_vpc(self, network_tag: str) -> str:
        response = await call_aws(
            self.ec2,
            "describe_vpcs",
            Filters=[{"Name": FILTER_TAG_NAME, "Values": [network_tag]}],
        )
        vpc_ids = [vpc["VpcId"] for vpc in response.get("Vpcs", [])]
        if not vpc_ids:
            raise NotFoundError(f"No VPC tagged Name={network_tag}")
        return self._select("VPC", network_tag, vpc_ids)

    async def _find_private_subnets(self, vpc_id: str) -> list[str]:
        subnets: list[dict[str, Any]] = []
        request: dict[str, Any] = {"Filters": [{"Name": FILTER_VPC_ID, "Values": [vpc_id]}]}
        while True:
            response = await call_aws(self.ec2, "describe_subnets", **request)
            subnets.extend(response.get("Subnets", []))
            next_token = response.get("NextToken")
            if not next_token:
                break
            request["NextToken"] = next_token

        # MapPublicIpOnLaunch is the only signal used for "private"
        private = [s["SubnetId"] for s in subnets if not s.get("MapPublicIpOnLaunch", False)]
        self.logger.debug(
            "Filtered subnets",
            vpc_id=vpc_id,
            total=len(subnets),
            private=len(private),
        )
        if not private:
            raise NotFoundError(f"No private subnets in VPC {vpc_id}")
        return private

    async def _find_security_group(self, vpc_id: str, group_name: str) -> str:
        response = await call_aws(
            self.ec2,
            "describe_security_groups",
            Filters=[
                {"Name": FILTER_VPC_ID, "Values": [vpc_id]},
                {"Name": FILTER_GROUP_NAME, "Values": [group_name]},
            ],
        )
        group_ids = [group["GroupId"] for group in response.get("SecurityGroups", [])]
        if not group_ids:
            raise NotFoundError(f"No security group named {group_name} in VPC {vpc_id}")
        return self._select("security group", group_name, group_ids)

    def _select(self, kind: str, tag: str, matches: list[str]) -> str:
        if len(matches) == 1:
            return matches[0]
        if self.policy is ResolutionPolicy.UNIQUE:
            raise AmbiguousResourceError(kind, tag, matches)
        self.logger.warning(
            "Several resources match tag, using the first",
            kind=kind,
            tag=tag,
            matches=matches,
            selected=matches[0],
        )
        return matches[0]
