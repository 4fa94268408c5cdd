"""
Instance filters narrowing a discovery pass to the instances a request cares about.

Filters never mutate their input and preserve relative order.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from rdsbroker.discovery.models import (
    INSTANCE_ID_TAG,
    ORG_ID_TAG,
    PLAN_ID_TAG,
    SERVICE_ID_TAG,
    SPACE_ID_TAG,
    ManagedInstance,
)


class InstanceFilter(ABC):
    @abstractmethod
    def matches(self, instance: ManagedInstance) -> bool:
        ...

    def apply(self, instances: Iterable[ManagedInstance]) -> list[ManagedInstance]:
        return [instance for instance in instances if self.matches(instance)]


@dataclass(frozen=True)
class ByMarketplaceId(InstanceFilter):
    """Instances tagged with the given marketplace instance id."""

    marketplace_instance_id: str

    def matches(self, instance: ManagedInstance) -> bool:
        return instance.reserved_tags.has_value(INSTANCE_ID_TAG, self.marketplace_instance_id)


@dataclass(frozen=True)
class ByParameters(InstanceFilter):
    """Instances tagged with all four of service, plan, organization and space."""

    service_id: str
    plan_id: str
    organization_id: str
    space_id: str

    def matches(self, instance: ManagedInstance) -> bool:
        reserved = instance.reserved_tags
        return (
            reserved.has_value(SERVICE_ID_TAG, self.service_id)
            and reserved.has_value(PLAN_ID_TAG, self.plan_id)
            and reserved.has_value(ORG_ID_TAG, self.organization_id)
            and reserved.has_value(SPACE_ID_TAG, self.space_id)
        )


@dataclass(frozen=True)
class SelectAll(InstanceFilter):
    def matches(self, instance: ManagedInstance) -> bool:
        return True


def filter_from_params(params: Mapping[str, Any]) -> ByParameters:
    """Build a ByParameters filter from marketplace request params."""
    return ByParameters(
        service_id=params["service_id"],
        plan_id=params["plan_id"],
        organization_id=params["organization_guid"],
        space_id=params["space_guid"],
    )
