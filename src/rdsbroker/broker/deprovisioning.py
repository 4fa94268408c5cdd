from __future__ import annotations

from typing import Any

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from rdsbroker.core.errors import ProviderDeleteError
from rdsbroker.discovery.models import ManagedInstance, needs_snapshot_on_delete
from rdsbroker.discovery.pipeline import InstanceDiscovery
from rdsbroker.providers.base import DatabaseProvider

logger = structlog.get_logger()


def final_snapshot_name(identifier: str) -> str:
    return f"Final-snapshot-{identifier}"


def delete_parameters(instance: ManagedInstance) -> dict[str, Any]:
    """DeleteDBInstance parameters, with a final snapshot unless still creating."""
    params: dict[str, Any] = {"DBInstanceIdentifier": instance.identifier}
    if needs_snapshot_on_delete(instance.status):
        params["FinalDBSnapshotIdentifier"] = final_snapshot_name(instance.identifier)
        params["SkipFinalSnapshot"] = False
    else:
        params["SkipFinalSnapshot"] = True
    return params


class DeprovisioningEngine:
    def __init__(self, provider: DatabaseProvider, discovery: InstanceDiscovery) -> None:
        self._provider = provider
        self._discovery = discovery

    async def unprovision(self, marketplace_instance_id: str) -> None:
        log = logger.bind(marketplace_instance_id=marketplace_instance_id)

        instance = await self._discovery.find_by_marketplace_id(marketplace_instance_id)
        if instance is None:
            log.warning("instance_not_found_on_unprovision")
            return

        params = delete_parameters(instance)
        try:
            await self._provider.delete_instance(params)
        except (ClientError, BotoCoreError) as exc:
            log.error("instance_delete_failed", identifier=instance.identifier, error=str(exc))
            raise ProviderDeleteError(
                "failed to delete DB instance",
                {"identifier": instance.identifier, "error": str(exc)},
            ) from exc

        log.info(
            "instance_deleted",
            identifier=instance.identifier,
            status=instance.status_label,
            final_snapshot=params.get("FinalDBSnapshotIdentifier"),
        )
