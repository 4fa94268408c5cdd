"""
AWS RDS provider backed by aioboto3.

Each call opens a short-lived client from the injected session; an instance
listing keeps one client for the whole paginator walk. Listing and
tag calls are retried with exponential backoff when AWS reports throttling;
create and delete are never retried.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any, TypeVar

import aioboto3
import structlog
from botocore.exceptions import ClientError
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

logger = structlog.get_logger()

T = TypeVar("T")

THROTTLING_ERROR_CODES = frozenset(
    {
        "Throttling",
        "ThrottlingException",
        "RequestLimitExceeded",
        "TooManyRequestsException",
        "RequestThrottled",
    }
)


def is_throttling_error(exc: BaseException) -> bool:
    """Determine if an AWS error is a throttling response worth retrying."""
    if not isinstance(exc, ClientError):
        return False
    return exc.response.get("Error", {}).get("Code") in THROTTLING_ERROR_CODES


class RDSProvider:
    """RDS and STS calls used by the broker."""

    def __init__(
        self,
        region: str = "us-east-1",
        *,
        session: aioboto3.Session | None = None,
        max_attempts: int = 3,
        backoff: float = 0.5,
    ) -> None:
        self.region = region
        self._session = session or aioboto3.Session(region_name=region)
        self._max_attempts = max(1, max_attempts)
        self._backoff = backoff

    async def _retrying(self, operation: str, call: Callable[[], Awaitable[T]]) -> T:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception(is_throttling_error),
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=self._backoff, min=self._backoff, max=10),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.warning(
                        "aws_call_retrying",
                        operation=operation,
                        attempt=attempt.retry_state.attempt_number,
                    )
                return await call()
        raise AssertionError("unreachable")  # pragma: no cover

    async def get_caller_identity(self) -> dict[str, Any]:
        async with self._session.client("sts", region_name=self.region) as client:
            return await client.get_caller_identity()

    async def iter_instance_pages(self) -> AsyncIterator[list[dict[str, Any]]]:
        """
        Yield DB instance records page by page from the DescribeDBInstances paginator.

        A throttled page is fetched again by restarting the paginator from the
        last marker seen; botocore's repeated-token guard still applies within
        each walk and surfaces as PaginationError.
        """
        async with self._session.client("rds", region_name=self.region) as client:
            paginator = client.get_paginator("describe_db_instances")
            marker: str | None = None
            pages: AsyncIterator[dict[str, Any]] | None = None

            async def next_page() -> dict[str, Any] | None:
                nonlocal pages
                if pages is None:
                    config = {"StartingToken": marker} if marker else {}
                    pages = aiter(paginator.paginate(PaginationConfig=config))
                try:
                    return await anext(pages)
                except StopAsyncIteration:
                    return None
                except ClientError:
                    pages = None
                    raise

            while True:
                page = await self._retrying("describe_db_instances", next_page)
                if page is None:
                    return
                yield list(page.get("DBInstances") or [])
                marker = page.get("Marker") or marker

    async def list_tags(self, resource_name: str) -> list[dict[str, str]] | None:
        async def call() -> dict[str, Any] | None:
            async with self._session.client("rds", region_name=self.region) as client:
                return await client.list_tags_for_resource(ResourceName=resource_name)

        response = await self._retrying("list_tags_for_resource", call)
        if not response:
            return None
        return response.get("TagList")

    async def create_instance(self, params: dict[str, Any]) -> dict[str, Any]:
        async with self._session.client("rds", region_name=self.region) as client:
            response = await client.create_db_instance(**params)
        return response.get("DBInstance", {})

    async def delete_instance(self, params: dict[str, Any]) -> dict[str, Any]:
        async with self._session.client("rds", region_name=self.region) as client:
            response = await client.delete_db_instance(**params)
        return response.get("DBInstance", {})
