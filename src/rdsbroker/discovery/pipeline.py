from __future__ import annotations

from contextlib import aclosing

import structlog

from rdsbroker.discovery.enricher import TagEnricher
from rdsbroker.discovery.enumerator import enumerate_instances
from rdsbroker.discovery.filters import ByMarketplaceId, InstanceFilter, SelectAll
from rdsbroker.discovery.identity import IdentityResolver
from rdsbroker.discovery.models import ManagedInstance
from rdsbroker.providers.base import DatabaseProvider

logger = structlog.get_logger()


class InstanceDiscovery:
    """
    One discovery pass: resolve identity, walk pages, enrich tags, filter.

    A pass is all-or-nothing. Any identity, page or tag failure propagates and
    nothing collected before it is returned.
    """

    def __init__(
        self,
        provider: DatabaseProvider,
        *,
        page_timeout: float | None = None,
        tag_timeout: float | None = None,
    ) -> None:
        self._provider = provider
        self._page_timeout = page_timeout
        self._identity = IdentityResolver(provider)
        self._enricher = TagEnricher(provider, tag_timeout=tag_timeout)

    async def discover(self, instance_filter: InstanceFilter | None = None) -> list[ManagedInstance]:
        instance_filter = instance_filter or SelectAll()
        arn_prefix = await self._identity.arn_prefix()

        seen: set[str] = set()
        matches: list[ManagedInstance] = []
        scanned = 0
        pages = enumerate_instances(self._provider, page_timeout=self._page_timeout)
        async with aclosing(pages):
            async for page in pages:
                fresh = []
                for instance in page:
                    if instance.identifier in seen:
                        logger.debug("duplicate_instance_skipped", identifier=instance.identifier)
                        continue
                    seen.add(instance.identifier)
                    fresh.append(instance)
                if not fresh:
                    continue

                scanned += len(fresh)
                enriched = await self._enricher.enrich(fresh, arn_prefix)
                matches.extend(instance_filter.apply(enriched))

        logger.debug(
            "discovery_completed",
            filter=type(instance_filter).__name__,
            scanned=scanned,
            matched=len(matches),
        )
        return matches

    async def find_by_marketplace_id(self, marketplace_instance_id: str) -> ManagedInstance | None:
        """The instance carrying the marketplace id, first match if several do."""
        matches = await self.discover(ByMarketplaceId(marketplace_instance_id))
        if len(matches) > 1:
            logger.warning(
                "ambiguous_marketplace_instance",
                marketplace_instance_id=marketplace_instance_id,
                identifiers=[m.identifier for m in matches],
            )
        return matches[0] if matches else None
