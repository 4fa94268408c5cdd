from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog

from rdsbroker.core.errors import InstanceGoneError, InstanceNotReadyError
from rdsbroker.discovery.models import PASSWORD_TAG, ManagedInstance
from rdsbroker.discovery.pipeline import InstanceDiscovery

logger = structlog.get_logger()


@dataclass(frozen=True)
class Credentials:
    host: str
    port: int
    username: str | None
    password: str | None

    def to_reply(self) -> dict[str, Any]:
        return {
            "credentials": {
                "host": self.host,
                "username": self.username,
                "port": self.port,
                "password": self.password,
            }
        }


def credentials_for(instance: ManagedInstance) -> Credentials:
    """Connection credentials from the live instance; the password only lives in its tags."""
    if instance.endpoint is None:
        raise InstanceNotReadyError(
            f"No endpoint set on the instance '{instance.identifier}'. "
            f"The instance is in state '{instance.status_label}'.",
            status=instance.status_label,
            details={"identifier": instance.identifier},
        )
    return Credentials(
        host=instance.endpoint.address,
        port=instance.endpoint.port,
        username=instance.master_username,
        password=instance.reserved_tags.last(PASSWORD_TAG),
    )


class BindingResolver:
    def __init__(self, discovery: InstanceDiscovery) -> None:
        self._discovery = discovery

    async def bind(self, marketplace_instance_id: str) -> Credentials:
        instance = await self._discovery.find_by_marketplace_id(marketplace_instance_id)
        if instance is None:
            raise InstanceGoneError(
                "database instance has been deleted",
                {"marketplace_instance_id": marketplace_instance_id},
            )

        credentials = credentials_for(instance)
        logger.info(
            "instance_bound",
            marketplace_instance_id=marketplace_instance_id,
            identifier=instance.identifier,
        )
        return credentials

    async def unbind(self, marketplace_instance_id: str | None = None) -> dict[str, Any]:
        return {}
