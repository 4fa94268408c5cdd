from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, replace
from enum import StrEnum
from functools import cached_property
from typing import Any

SERVICE_ID_TAG = "CF-AWS-RDS-SERVICE-ID"
PLAN_ID_TAG = "CF-AWS-RDS-PLAN-ID"
ORG_ID_TAG = "CF-AWS-RDS-ORG-ID"
SPACE_ID_TAG = "CF-AWS-RDS-SPACE-ID"
INSTANCE_ID_TAG = "CF-AWS-RDS-INSTANCE-ID"
PASSWORD_TAG = "CF-AWS-PASSWORD"

RESERVED_TAG_KEYS = frozenset(
    {
        SERVICE_ID_TAG,
        PLAN_ID_TAG,
        ORG_ID_TAG,
        SPACE_ID_TAG,
        INSTANCE_ID_TAG,
        PASSWORD_TAG,
    }
)


class InstanceStatus(StrEnum):
    """DB instance lifecycle phases reported by RDS."""

    creating = "creating"
    available = "available"
    backing_up = "backing-up"
    modifying = "modifying"
    rebooting = "rebooting"
    deleting = "deleting"
    failed = "failed"
    stopped = "stopped"
    unknown = "unknown"

    @classmethod
    def parse(cls, raw: str | None) -> InstanceStatus:
        try:
            return cls(raw)
        except ValueError:
            return cls.unknown


def needs_snapshot_on_delete(status: InstanceStatus) -> bool:
    """A final snapshot cannot be taken of an instance that is still being created."""
    return status is not InstanceStatus.creating


@dataclass(frozen=True)
class Tag:
    key: str
    value: str

    def to_aws(self) -> dict[str, str]:
        return {"Key": self.key, "Value": self.value}


@dataclass(frozen=True)
class Endpoint:
    address: str
    port: int


class ReservedTags(Mapping[str, tuple[str, ...]]):
    """
    Read-only view of an instance's reserved tags.

    Maps each reserved key present on the instance to all of its values in
    arrival order. Keys outside RESERVED_TAG_KEYS are ignored.
    """

    def __init__(self, tags: tuple[Tag, ...]) -> None:
        values: dict[str, list[str]] = {}
        for tag in tags:
            if tag.key in RESERVED_TAG_KEYS:
                values.setdefault(tag.key, []).append(tag.value)
        self._values = {key: tuple(found) for key, found in values.items()}

    def __getitem__(self, key: str) -> tuple[str, ...]:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def has_value(self, key: str, value: str | None) -> bool:
        return value is not None and value in self._values.get(key, ())

    def last(self, key: str) -> str | None:
        found = self._values.get(key)
        return found[-1] if found else None


@dataclass(frozen=True)
class ManagedInstance:
    """One RDS DB instance, optionally enriched with its tags."""

    identifier: str
    status: InstanceStatus
    raw_status: str | None = None
    endpoint: Endpoint | None = None
    master_username: str | None = None
    tags: tuple[Tag, ...] = ()
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_aws(cls, record: Mapping[str, Any]) -> ManagedInstance:
        """Build from a DescribeDBInstances record."""
        endpoint = None
        raw_endpoint = record.get("Endpoint")
        if raw_endpoint and raw_endpoint.get("Address"):
            endpoint = Endpoint(
                address=raw_endpoint["Address"],
                port=int(raw_endpoint.get("Port", 0)),
            )
        raw_status = record.get("DBInstanceStatus")
        return cls(
            identifier=record["DBInstanceIdentifier"],
            status=InstanceStatus.parse(raw_status),
            raw_status=raw_status,
            endpoint=endpoint,
            master_username=record.get("MasterUsername"),
            tags=tuple(
                Tag(key=t["Key"], value=t["Value"]) for t in record.get("TagList") or ()
            ),
            raw=record,
        )

    def with_tags(self, tags: tuple[Tag, ...]) -> ManagedInstance:
        return replace(self, tags=tags)

    @cached_property
    def reserved_tags(self) -> ReservedTags:
        return ReservedTags(self.tags)

    @property
    def status_label(self) -> str:
        return self.raw_status or self.status.value


@dataclass(frozen=True)
class MarketplaceBinding:
    """Marketplace identity of a DB instance, stored only as reserved tags."""

    service_id: str
    plan_id: str
    organization_id: str
    space_id: str
    marketplace_instance_id: str
    generated_password: str | None = None

    def to_tags(self) -> list[Tag]:
        tags = [
            Tag(SERVICE_ID_TAG, self.service_id),
            Tag(PLAN_ID_TAG, self.plan_id),
            Tag(ORG_ID_TAG, self.organization_id),
            Tag(SPACE_ID_TAG, self.space_id),
        ]
        if self.generated_password is not None:
            tags.append(Tag(PASSWORD_TAG, self.generated_password))
        tags.append(Tag(INSTANCE_ID_TAG, self.marketplace_instance_id))
        return tags

    @classmethod
    def from_instance(cls, instance: ManagedInstance) -> MarketplaceBinding | None:
        """Decode the binding, or None if any identity tag is missing."""
        reserved = instance.reserved_tags
        values = {
            key: reserved.last(key)
            for key in (SERVICE_ID_TAG, PLAN_ID_TAG, ORG_ID_TAG, SPACE_ID_TAG, INSTANCE_ID_TAG)
        }
        if any(value is None for value in values.values()):
            return None
        return cls(
            service_id=values[SERVICE_ID_TAG],
            plan_id=values[PLAN_ID_TAG],
            organization_id=values[ORG_ID_TAG],
            space_id=values[SPACE_ID_TAG],
            marketplace_instance_id=values[INSTANCE_ID_TAG],
            generated_password=reserved.last(PASSWORD_TAG),
        )
