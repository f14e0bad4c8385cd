"""Network placement models."""

from pydantic import BaseModel, ConfigDict, field_validator

from ..constants import ASSIGN_PUBLIC_IP_DISABLED


class NetworkContext(BaseModel):
    """VPC placement used to launch the migration task."""

    model_config = ConfigDict(frozen=True)

    vpc_id: str
    private_subnet_ids: tuple[str, ...]
    security_group_id: str

    @field_validator("private_subnet_ids")
    @classmethod
    def _require_private_subnets(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        # Keep provider order, drop repeats
        subnets = tuple(dict.fromkeys(value))
        if not subnets:
            raise ValueError("at least one private subnet is required")
        return subnets

    @field_validator("security_group_id")
    @classmethod
    def _require_security_group(cls, value: str) -> str:
        if not value:
            raise ValueError("a security group is required")
        return value

    def awsvpc_configuration(self) -> dict[str, object]:
        """Network configuration block for ``ecs.run_task``."""
        return {
            "awsvpcConfiguration": {
                "subnets": list(self.private_subnet_ids),
                "securityGroups": [self.security_group_id],
                "assignPublicIp": ASSIGN_PUBLIC_IP_DISABLED,
            }
        }
