from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import aclosing

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from rdsbroker.core.errors import PageFetchError
from rdsbroker.discovery.models import ManagedInstance
from rdsbroker.providers.base import DatabaseProvider

logger = structlog.get_logger()


async def enumerate_instances(
    provider: DatabaseProvider,
    *,
    page_timeout: float | None = None,
) -> AsyncIterator[list[ManagedInstance]]:
    """
    Walk the provider's DB instance listing page by page.

    Yields one list per page, possibly empty. Only the end of pagination stops
    the walk. A failing or timed-out page raises PageFetchError; callers must
    discard anything collected so far.
    """
    page_number = 0
    async with aclosing(provider.iter_instance_pages()) as pages:
        while True:
            page_number += 1
            try:
                records = await asyncio.wait_for(anext(pages), timeout=page_timeout)
            except StopAsyncIteration:
                logger.debug("instance_pages_exhausted", pages=page_number - 1)
                return
            except TimeoutError as exc:
                raise PageFetchError(
                    "timed out fetching DB instance page",
                    {"page": page_number, "timeout": page_timeout},
                ) from exc
            except (ClientError, BotoCoreError) as exc:
                logger.error("instance_page_failed", page=page_number, error=str(exc))
                raise PageFetchError(
                    "failed to fetch DB instance page",
                    {"page": page_number, "error": str(exc)},
                ) from exc

            yield [ManagedInstance.from_aws(record) for record in records]
