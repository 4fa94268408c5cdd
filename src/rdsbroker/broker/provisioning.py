from __future__ import annotations

import random
import string
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from rdsbroker.broker.dashboard import dashboard_url
from rdsbroker.config.catalog import Catalog
from rdsbroker.core.errors import ProviderCreateError
from rdsbroker.discovery.models import RESERVED_TAG_KEYS, MarketplaceBinding
from rdsbroker.discovery.pipeline import InstanceDiscovery
from rdsbroker.providers.base import DatabaseProvider

logger = structlog.get_logger()

PASSWORD_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits
PASSWORD_LENGTH = 12


def generate_password(length: int = PASSWORD_LENGTH, rng: random.Random | None = None) -> str:
    chooser = rng or random
    return "".join(chooser.choice(PASSWORD_ALPHABET) for _ in range(length))


def generate_instance_identifier(prefix: str, now: float) -> str:
    """`<prefix>-<hex of the timestamp in 100ms ticks>`; not checked for collisions."""
    ticks = int(now * 1000) // 100
    return f"{prefix}-{ticks:x}"


@dataclass(frozen=True)
class ProvisionResult:
    dashboard_url: str
    exists: bool = False

    def to_reply(self) -> dict[str, Any]:
        reply: dict[str, Any] = {"dashboard_url": self.dashboard_url}
        if self.exists:
            reply["exists"] = True
        return reply


class ProvisioningEngine:
    """Creates a tagged DB instance per marketplace instance, idempotently."""

    def __init__(
        self,
        provider: DatabaseProvider,
        discovery: InstanceDiscovery,
        catalog: Catalog,
        *,
        db_subnet_group_name: str | None = None,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
    ) -> None:
        self._provider = provider
        self._discovery = discovery
        self._catalog = catalog
        self._db_subnet_group_name = db_subnet_group_name
        self._clock = clock
        self._rng = rng

    async def provision(
        self,
        plan_id: str,
        service_id: str,
        organization_id: str,
        space_id: str,
        marketplace_instance_id: str,
    ) -> ProvisionResult:
        plan = self._catalog.plan(plan_id)
        log = logger.bind(marketplace_instance_id=marketplace_instance_id, plan_id=plan_id)

        existing = await self._discovery.find_by_marketplace_id(marketplace_instance_id)
        if existing is not None:
            log.info("instance_already_provisioned", identifier=existing.identifier)
            return ProvisionResult(
                dashboard_url=dashboard_url(self._provider.region, existing.identifier),
                exists=True,
            )

        password = generate_password(rng=self._rng)
        binding = MarketplaceBinding(
            service_id=service_id,
            plan_id=plan_id,
            organization_id=organization_id,
            space_id=space_id,
            marketplace_instance_id=marketplace_instance_id,
            generated_password=password,
        )

        params = plan.create_parameters()
        params["DBInstanceIdentifier"] = generate_instance_identifier(
            plan.identifier_prefix, self._clock()
        )
        params["MasterUserPassword"] = password
        if self._db_subnet_group_name:
            params["DBSubnetGroupName"] = self._db_subnet_group_name
        plan_tags = [t for t in params.get("Tags") or () if t.get("Key") not in RESERVED_TAG_KEYS]
        params["Tags"] = [tag.to_aws() for tag in binding.to_tags()] + plan_tags

        identifier = params["DBInstanceIdentifier"]
        try:
            await self._provider.create_instance(params)
        except (ClientError, BotoCoreError) as exc:
            log.error("instance_create_failed", identifier=identifier, error=str(exc))
            raise ProviderCreateError(
                "failed to create DB instance",
                {"identifier": identifier, "error": str(exc)},
            ) from exc

        log.info("instance_created", identifier=identifier)
        return ProvisionResult(dashboard_url=dashboard_url(self._provider.region, identifier))
