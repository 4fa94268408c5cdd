from __future__ import annotations

import asyncio
from collections.abc import Sequence

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from rdsbroker.core.errors import TagFetchError
from rdsbroker.discovery.models import ManagedInstance, Tag
from rdsbroker.providers.base import DatabaseProvider

logger = structlog.get_logger()

# RDS throttles ListTagsForResource aggressively; never raise this.
MAX_CONCURRENT_TAG_FETCHES = 2


class TagEnricher:
    """Attach tags to the instances of one page, two fetches at a time."""

    def __init__(
        self,
        provider: DatabaseProvider,
        *,
        tag_timeout: float | None = None,
    ) -> None:
        self._provider = provider
        self._tag_timeout = tag_timeout

    async def _fetch(
        self,
        instance: ManagedInstance,
        arn_prefix: str,
        semaphore: asyncio.Semaphore,
    ) -> ManagedInstance:
        resource_name = arn_prefix + instance.identifier
        async with semaphore:
            try:
                tag_list = await asyncio.wait_for(
                    self._provider.list_tags(resource_name),
                    timeout=self._tag_timeout,
                )
            except TimeoutError as exc:
                raise TagFetchError(
                    "timed out fetching tags",
                    {"resource_name": resource_name, "timeout": self._tag_timeout},
                ) from exc
            except (ClientError, BotoCoreError) as exc:
                logger.error("tag_fetch_failed", resource_name=resource_name, error=str(exc))
                raise TagFetchError(
                    "failed to fetch tags",
                    {"resource_name": resource_name, "error": str(exc)},
                ) from exc

        tags = tuple(Tag(key=t["Key"], value=t["Value"]) for t in tag_list or ())
        return instance.with_tags(tags)

    async def enrich(
        self,
        instances: Sequence[ManagedInstance],
        arn_prefix: str,
    ) -> list[ManagedInstance]:
        """Return the instances with tags attached, in input order."""
        if not instances:
            return []

        semaphore = asyncio.Semaphore(MAX_CONCURRENT_TAG_FETCHES)
        tasks = [
            asyncio.ensure_future(self._fetch(instance, arn_prefix, semaphore))
            for instance in instances
        ]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
