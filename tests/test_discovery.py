"""Tests for the discovery pass: identity, enumeration, tag enrichment."""

import asyncio

import pytest
from botocore.exceptions import EndpointConnectionError, PaginationError

from rdsbroker.core.errors import IdentityLookupError, PageFetchError, TagFetchError
from rdsbroker.discovery.enricher import MAX_CONCURRENT_TAG_FETCHES, TagEnricher
from rdsbroker.discovery.enumerator import enumerate_instances
from rdsbroker.discovery.filters import ByMarketplaceId, ByParameters
from rdsbroker.discovery.identity import IdentityResolver, account_id_from_arn
from rdsbroker.discovery.models import ManagedInstance
from rdsbroker.discovery.pipeline import InstanceDiscovery

from fakes import ACCOUNT_ID, FakeRDSProvider, client_error, db_instance, marketplace_tags

PREFIX = f"arn:aws:rds:us-east-1:{ACCOUNT_ID}:db:"


class TestIdentityResolver:
    def test_account_from_user_arn(self):
        assert account_id_from_arn("arn:aws:iam::111122223333:user/broker") == "111122223333"

    def test_account_from_assumed_role_arn(self):
        arn = "arn:aws:sts::444455556666:assumed-role/broker/session"
        assert account_id_from_arn(arn) == "444455556666"

    def test_malformed_arn(self):
        with pytest.raises(IdentityLookupError):
            account_id_from_arn("not-an-arn")

    @pytest.mark.asyncio
    async def test_arn_prefix(self, provider):
        prefix = await IdentityResolver(provider).arn_prefix()
        assert prefix == PREFIX

    @pytest.mark.asyncio
    async def test_identity_failure(self, provider):
        provider.identity_error = client_error("AccessDenied", "GetCallerIdentity")

        with pytest.raises(IdentityLookupError) as exc_info:
            await IdentityResolver(provider).arn_prefix()

        assert "AccessDenied" in exc_info.value.details["error"]


class TestEnumerateInstances:
    @pytest.mark.asyncio
    async def test_walks_all_pages_including_empty(self):
        provider = FakeRDSProvider(
            pages=[[db_instance("a")], [], [db_instance("b"), db_instance("c")]]
        )

        pages = [page async for page in enumerate_instances(provider)]

        assert [[i.identifier for i in page] for page in pages] == [["a"], [], ["b", "c"]]

    @pytest.mark.asyncio
    async def test_page_failure_raises_page_fetch_error(self):
        provider = FakeRDSProvider(pages=[[db_instance("a")], [db_instance("b")]])
        provider.page_errors[1] = client_error("InternalFailure")

        seen = []
        with pytest.raises(PageFetchError) as exc_info:
            async for page in enumerate_instances(provider):
                seen.append(page)

        assert len(seen) == 1
        assert exc_info.value.details["page"] == 2

    @pytest.mark.asyncio
    async def test_connection_failure_raises_page_fetch_error(self):
        provider = FakeRDSProvider(pages=[[db_instance("a")]])
        provider.page_errors[0] = EndpointConnectionError(endpoint_url="https://rds.local")

        with pytest.raises(PageFetchError):
            async for _ in enumerate_instances(provider):
                pass

    @pytest.mark.asyncio
    async def test_repeated_marker_raises_page_fetch_error(self):
        provider = FakeRDSProvider(pages=[[db_instance("a")], []])
        provider.page_errors[1] = PaginationError(
            message="The same next token was received twice: m1"
        )

        with pytest.raises(PageFetchError) as exc_info:
            async for _ in enumerate_instances(provider):
                pass

        assert exc_info.value.details["page"] == 2

    @pytest.mark.asyncio
    async def test_page_timeout(self):
        class SlowProvider(FakeRDSProvider):
            async def iter_instance_pages(self):
                await asyncio.sleep(1)
                yield []

        with pytest.raises(PageFetchError) as exc_info:
            async for _ in enumerate_instances(SlowProvider(), page_timeout=0.01):
                pass

        assert exc_info.value.details["timeout"] == 0.01


class TestTagEnricher:
    def _instances(self, count):
        return [ManagedInstance.from_aws(db_instance(f"db-{n}")) for n in range(count)]

    @pytest.mark.asyncio
    async def test_attaches_tags_in_order(self):
        provider = FakeRDSProvider(
            tags={
                "db-0": [{"Key": "CF-AWS-PASSWORD", "Value": "zero"}],
                "db-1": [{"Key": "CF-AWS-PASSWORD", "Value": "one"}],
            }
        )

        enriched = await TagEnricher(provider).enrich(self._instances(2), PREFIX)

        assert [i.reserved_tags.last("CF-AWS-PASSWORD") for i in enriched] == ["zero", "one"]
        assert provider.tag_requests == [PREFIX + "db-0", PREFIX + "db-1"]

    @pytest.mark.asyncio
    async def test_missing_tag_response_is_empty(self):
        provider = FakeRDSProvider(tags={"db-0": None})

        enriched = await TagEnricher(provider).enrich(self._instances(1), PREFIX)

        assert enriched[0].tags == ()

    @pytest.mark.asyncio
    async def test_at_most_two_fetches_in_flight(self):
        provider = FakeRDSProvider(tag_delay=0.01)

        enriched = await TagEnricher(provider).enrich(self._instances(7), PREFIX)

        assert len(enriched) == 7
        assert MAX_CONCURRENT_TAG_FETCHES == 2
        assert provider.max_in_flight == 2

    @pytest.mark.asyncio
    async def test_failure_aborts_page(self):
        provider = FakeRDSProvider(tag_delay=0.01)
        provider.tag_errors["db-1"] = client_error("Throttling", "ListTagsForResource")

        with pytest.raises(TagFetchError) as exc_info:
            await TagEnricher(provider).enrich(self._instances(6), PREFIX)

        assert exc_info.value.details["resource_name"] == PREFIX + "db-1"
        assert len(provider.tag_requests) < 6

    @pytest.mark.asyncio
    async def test_tag_timeout(self):
        provider = FakeRDSProvider(tag_delay=1)

        with pytest.raises(TagFetchError):
            await TagEnricher(provider, tag_timeout=0.01).enrich(self._instances(1), PREFIX)

    @pytest.mark.asyncio
    async def test_empty_page(self, provider):
        assert await TagEnricher(provider).enrich([], PREFIX) == []
        assert provider.tag_requests == []


class TestInstanceDiscovery:
    @pytest.mark.asyncio
    async def test_two_pages_filtered_by_marketplace_id(self):
        provider = FakeRDSProvider(
            pages=[[db_instance("A"), db_instance("B")], [db_instance("C")]],
            tags={
                "A": marketplace_tags("svc-1"),
                "B": marketplace_tags("svc-42"),
                "C": marketplace_tags("svc-7"),
            },
        )

        result = await InstanceDiscovery(provider).discover(ByMarketplaceId("svc-42"))

        assert [i.identifier for i in result] == ["B"]
        assert provider.identity_calls == 1

    @pytest.mark.asyncio
    async def test_select_all_preserves_arrival_order(self):
        provider = FakeRDSProvider(
            pages=[[db_instance("A"), db_instance("B")], [], [db_instance("C")]]
        )

        result = await InstanceDiscovery(provider).discover()

        assert [i.identifier for i in result] == ["A", "B", "C"]

    @pytest.mark.asyncio
    async def test_duplicates_across_pages_are_dropped(self):
        provider = FakeRDSProvider(pages=[[db_instance("A")], [db_instance("A"), db_instance("B")]])

        result = await InstanceDiscovery(provider).discover()

        assert [i.identifier for i in result] == ["A", "B"]
        assert provider.tag_requests == [PREFIX + "A", PREFIX + "B"]

    @pytest.mark.asyncio
    async def test_by_parameters(self):
        provider = FakeRDSProvider(
            pages=[[db_instance("A"), db_instance("B")]],
            tags={
                "A": marketplace_tags("m-a", space_id="s1"),
                "B": marketplace_tags("m-b", space_id="s2"),
            },
        )

        result = await InstanceDiscovery(provider).discover(ByParameters("svc", "plan", "org", "s2"))

        assert [i.identifier for i in result] == ["B"]

    @pytest.mark.asyncio
    async def test_identity_failure_stops_before_listing(self):
        provider = FakeRDSProvider(pages=[[db_instance("A")]])
        provider.identity_error = client_error("AccessDenied", "GetCallerIdentity")

        with pytest.raises(IdentityLookupError):
            await InstanceDiscovery(provider).discover()

        assert provider.pages_served == 0

    @pytest.mark.asyncio
    async def test_page_failure_discards_partial_results(self):
        provider = FakeRDSProvider(
            pages=[[db_instance("A")], [db_instance("B")]],
            tags={"A": marketplace_tags("svc-42")},
        )
        provider.page_errors[1] = client_error()

        with pytest.raises(PageFetchError):
            await InstanceDiscovery(provider).discover(ByMarketplaceId("svc-42"))

    @pytest.mark.asyncio
    async def test_tag_failure_aborts_pass(self):
        provider = FakeRDSProvider(pages=[[db_instance("A")], [db_instance("B")]])
        provider.tag_errors["B"] = client_error("AccessDenied", "ListTagsForResource")

        with pytest.raises(TagFetchError):
            await InstanceDiscovery(provider).discover()

    @pytest.mark.asyncio
    async def test_find_returns_first_of_ambiguous_matches(self):
        provider = FakeRDSProvider(
            pages=[[db_instance("A"), db_instance("B")]],
            tags={"A": marketplace_tags("dup"), "B": marketplace_tags("dup")},
        )

        found = await InstanceDiscovery(provider).find_by_marketplace_id("dup")

        assert found.identifier == "A"

    @pytest.mark.asyncio
    async def test_find_none(self, provider):
        assert await InstanceDiscovery(provider).find_by_marketplace_id("nope") is None
