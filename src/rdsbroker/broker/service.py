from __future__ import annotations

import random
import time
from collections.abc import Callable
from typing import Any

import aioboto3

from rdsbroker.broker.binding import BindingResolver, Credentials
from rdsbroker.broker.dashboard import dashboard_url
from rdsbroker.broker.deprovisioning import DeprovisioningEngine
from rdsbroker.broker.provisioning import ProvisioningEngine, ProvisionResult
from rdsbroker.config.catalog import Catalog
from rdsbroker.config.settings import Settings
from rdsbroker.discovery.filters import InstanceFilter
from rdsbroker.discovery.models import MarketplaceBinding
from rdsbroker.discovery.pipeline import InstanceDiscovery
from rdsbroker.providers.base import DatabaseProvider
from rdsbroker.providers.rds import RDSProvider


class RDSServiceBroker:
    """Provision, unprovision, bind and unbind marketplace instances on RDS."""

    def __init__(
        self,
        provider: DatabaseProvider,
        catalog: Catalog,
        *,
        db_subnet_group_name: str | None = None,
        page_timeout: float | None = None,
        tag_timeout: float | None = None,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
    ) -> None:
        self.provider = provider
        self.catalog = catalog
        self.discovery = InstanceDiscovery(
            provider, page_timeout=page_timeout, tag_timeout=tag_timeout
        )
        self._provisioning = ProvisioningEngine(
            provider,
            self.discovery,
            catalog,
            db_subnet_group_name=db_subnet_group_name,
            clock=clock,
            rng=rng,
        )
        self._deprovisioning = DeprovisioningEngine(provider, self.discovery)
        self._binding = BindingResolver(self.discovery)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        catalog: Catalog,
        *,
        session: aioboto3.Session | None = None,
    ) -> RDSServiceBroker:
        provider = RDSProvider(
            settings.aws_region,
            session=session,
            max_attempts=settings.provider_max_attempts,
        )
        return cls(
            provider,
            catalog,
            db_subnet_group_name=settings.db_subnet_group_name,
            page_timeout=settings.page_fetch_timeout,
            tag_timeout=settings.tag_fetch_timeout,
        )

    async def provision(
        self,
        plan_id: str,
        service_id: str,
        organization_id: str,
        space_id: str,
        marketplace_instance_id: str,
    ) -> ProvisionResult:
        return await self._provisioning.provision(
            plan_id, service_id, organization_id, space_id, marketplace_instance_id
        )

    async def unprovision(self, marketplace_instance_id: str) -> None:
        await self._deprovisioning.unprovision(marketplace_instance_id)

    async def bind(self, marketplace_instance_id: str) -> Credentials:
        return await self._binding.bind(marketplace_instance_id)

    async def unbind(self, marketplace_instance_id: str | None = None) -> dict[str, Any]:
        return await self._binding.unbind(marketplace_instance_id)

    async def list_instances(self, instance_filter: InstanceFilter | None = None) -> list[dict[str, Any]]:
        """Inventory of DB instances with their decoded marketplace identity."""
        rows = []
        for instance in await self.discovery.discover(instance_filter):
            binding = MarketplaceBinding.from_instance(instance)
            rows.append(
                {
                    "identifier": instance.identifier,
                    "status": instance.status_label,
                    "marketplace_instance_id": binding.marketplace_instance_id if binding else None,
                    "service_id": binding.service_id if binding else None,
                    "plan_id": binding.plan_id if binding else None,
                    "organization_id": binding.organization_id if binding else None,
                    "space_id": binding.space_id if binding else None,
                    "dashboard_url": dashboard_url(self.provider.region, instance.identifier),
                }
            )
        return rows
