"""Tests for providers/rds.py.

Tests for the aioboto3-backed RDS provider with a mocked session.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from botocore.exceptions import ClientError, PaginationError

from rdsbroker.providers.rds import RDSProvider, is_throttling_error

from fakes import client_error


def mock_session(client):
    session = MagicMock()
    session.client = MagicMock(
        return_value=AsyncMock(
            __aenter__=AsyncMock(return_value=client),
            __aexit__=AsyncMock(return_value=None),
        )
    )
    return session


def page_iterator(*items):
    """Async page iterator yielding pages and raising any exception items in order."""

    async def walk():
        for item in items:
            if isinstance(item, Exception):
                raise item
            yield item

    return walk()


def mock_paginator(*walks):
    paginator = MagicMock()
    paginator.paginate = MagicMock(side_effect=list(walks))
    return paginator


def make_provider(client, **kwargs):
    kwargs.setdefault("backoff", 0)
    return RDSProvider("eu-west-1", session=mock_session(client), **kwargs)


class TestIsThrottlingError:
    def test_throttling_codes(self):
        assert is_throttling_error(client_error("Throttling"))
        assert is_throttling_error(client_error("RequestLimitExceeded"))

    def test_other_errors(self):
        assert not is_throttling_error(client_error("AccessDenied"))
        assert not is_throttling_error(ValueError("boom"))


class TestRDSProvider:
    @pytest.mark.asyncio
    async def test_caller_identity_uses_sts(self):
        client = AsyncMock()
        client.get_caller_identity = AsyncMock(
            return_value={"Arn": "arn:aws:iam::123456789012:user/broker"}
        )
        provider = make_provider(client)

        identity = await provider.get_caller_identity()

        assert identity["Arn"].startswith("arn:aws:iam::123456789012")
        provider._session.client.assert_called_with("sts", region_name="eu-west-1")

    @pytest.mark.asyncio
    async def test_pages_come_from_paginator(self):
        client = AsyncMock()
        paginator = mock_paginator(
            page_iterator(
                {"DBInstances": [{"DBInstanceIdentifier": "a"}], "Marker": "m1"},
                {"DBInstances": [], "Marker": "m2"},
                {"DBInstances": [{"DBInstanceIdentifier": "b"}]},
            )
        )
        client.get_paginator = MagicMock(return_value=paginator)
        provider = make_provider(client)

        pages = [page async for page in provider.iter_instance_pages()]

        assert pages == [[{"DBInstanceIdentifier": "a"}], [], [{"DBInstanceIdentifier": "b"}]]
        client.get_paginator.assert_called_once_with("describe_db_instances")
        paginator.paginate.assert_called_once_with(PaginationConfig={})
        provider._session.client.assert_called_once_with("rds", region_name="eu-west-1")

    @pytest.mark.asyncio
    async def test_throttled_page_restarts_from_last_marker(self):
        client = AsyncMock()
        paginator = mock_paginator(
            page_iterator(
                {"DBInstances": [{"DBInstanceIdentifier": "a"}], "Marker": "m1"},
                client_error("Throttling"),
            ),
            page_iterator({"DBInstances": [{"DBInstanceIdentifier": "b"}]}),
        )
        client.get_paginator = MagicMock(return_value=paginator)
        provider = make_provider(client, max_attempts=3)

        pages = [page async for page in provider.iter_instance_pages()]

        assert pages == [[{"DBInstanceIdentifier": "a"}], [{"DBInstanceIdentifier": "b"}]]
        configs = [c.kwargs["PaginationConfig"] for c in paginator.paginate.call_args_list]
        assert configs == [{}, {"StartingToken": "m1"}]

    @pytest.mark.asyncio
    async def test_page_not_retried_on_other_errors(self):
        client = AsyncMock()
        paginator = mock_paginator(page_iterator(client_error("AccessDenied")))
        client.get_paginator = MagicMock(return_value=paginator)
        provider = make_provider(client, max_attempts=3)

        with pytest.raises(ClientError):
            async for _ in provider.iter_instance_pages():
                pass

        assert paginator.paginate.call_count == 1

    @pytest.mark.asyncio
    async def test_page_throttling_retries_are_bounded(self):
        client = AsyncMock()
        paginator = mock_paginator(
            page_iterator(client_error("Throttling")),
            page_iterator(client_error("Throttling")),
        )
        client.get_paginator = MagicMock(return_value=paginator)
        provider = make_provider(client, max_attempts=2)

        with pytest.raises(ClientError):
            async for _ in provider.iter_instance_pages():
                pass

        assert paginator.paginate.call_count == 2

    @pytest.mark.asyncio
    async def test_repeated_marker_stops_the_walk(self):
        client = AsyncMock()
        paginator = mock_paginator(
            page_iterator(
                {"DBInstances": [], "Marker": "m1"},
                PaginationError(message="The same next token was received twice: m1"),
            )
        )
        client.get_paginator = MagicMock(return_value=paginator)
        provider = make_provider(client, max_attempts=3)

        pages = []
        with pytest.raises(PaginationError):
            async for page in provider.iter_instance_pages():
                pages.append(page)

        assert pages == [[]]
        assert paginator.paginate.call_count == 1

    @pytest.mark.asyncio
    async def test_retries_are_bounded(self):
        client = AsyncMock()
        client.list_tags_for_resource = AsyncMock(side_effect=client_error("Throttling"))
        provider = make_provider(client, max_attempts=2)

        with pytest.raises(ClientError):
            await provider.list_tags("arn:aws:rds:eu-west-1:1:db:a")

        assert client.list_tags_for_resource.await_count == 2

    @pytest.mark.asyncio
    async def test_list_tags(self):
        client = AsyncMock()
        client.list_tags_for_resource = AsyncMock(
            return_value={"TagList": [{"Key": "k", "Value": "v"}]}
        )
        provider = make_provider(client)

        tags = await provider.list_tags("arn:aws:rds:eu-west-1:1:db:a")

        assert tags == [{"Key": "k", "Value": "v"}]
        client.list_tags_for_resource.assert_awaited_once_with(
            ResourceName="arn:aws:rds:eu-west-1:1:db:a"
        )

    @pytest.mark.asyncio
    async def test_list_tags_empty_response(self):
        client = AsyncMock()
        client.list_tags_for_resource = AsyncMock(return_value=None)

        assert await make_provider(client).list_tags("arn") is None

    @pytest.mark.asyncio
    async def test_create_not_retried(self):
        client = AsyncMock()
        client.create_db_instance = AsyncMock(side_effect=client_error("Throttling"))
        provider = make_provider(client, max_attempts=3)

        with pytest.raises(ClientError):
            await provider.create_instance({"DBInstanceIdentifier": "a"})

        assert client.create_db_instance.await_count == 1

    @pytest.mark.asyncio
    async def test_delete_passes_parameters(self):
        client = AsyncMock()
        client.delete_db_instance = AsyncMock(
            return_value={"DBInstance": {"DBInstanceIdentifier": "a", "DBInstanceStatus": "deleting"}}
        )
        provider = make_provider(client)

        result = await provider.delete_instance(
            {"DBInstanceIdentifier": "a", "SkipFinalSnapshot": True}
        )

        assert result["DBInstanceStatus"] == "deleting"
        client.delete_db_instance.assert_awaited_once_with(
            DBInstanceIdentifier="a", SkipFinalSnapshot=True
        )
