"""
Instance discovery.

Rebuilds the marketplace view of every RDS DB instance from its tags:
identity -> paginated listing -> tag enrichment (two at a time) -> filter.
"""

from rdsbroker.discovery.enricher import MAX_CONCURRENT_TAG_FETCHES, TagEnricher
from rdsbroker.discovery.enumerator import enumerate_instances
from rdsbroker.discovery.filters import (
    ByMarketplaceId,
    ByParameters,
    InstanceFilter,
    SelectAll,
    filter_from_params,
)
from rdsbroker.discovery.identity import IdentityResolver
from rdsbroker.discovery.models import (
    RESERVED_TAG_KEYS,
    Endpoint,
    InstanceStatus,
    ManagedInstance,
    MarketplaceBinding,
    ReservedTags,
    Tag,
    needs_snapshot_on_delete,
)
from rdsbroker.discovery.pipeline import InstanceDiscovery

__all__ = [
    "MAX_CONCURRENT_TAG_FETCHES",
    "RESERVED_TAG_KEYS",
    "ByMarketplaceId",
    "ByParameters",
    "Endpoint",
    "IdentityResolver",
    "InstanceDiscovery",
    "InstanceFilter",
    "InstanceStatus",
    "ManagedInstance",
    "MarketplaceBinding",
    "ReservedTags",
    "SelectAll",
    "Tag",
    "TagEnricher",
    "enumerate_instances",
    "filter_from_params",
    "needs_snapshot_on_delete",
]
