"""
Service catalog and plan specification loading.

The catalog file is YAML with two top-level sections:

    services:            # advertised to the marketplace via /v2/catalog
      - id: ...
        name: ...
        plans:
          - id: ...
            name: ...
    plans:               # plan id -> CreateDBInstance parameters
      <plan-id>:
        DBInstanceIdentifier: mysql-small   # used as identifier prefix
        Engine: mysql
        ...

Every plan advertised under services must have an entry under plans; this is
checked once at startup by check_consistency().
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import structlog
import yaml

from rdsbroker.core.errors import CatalogError, UnknownPlanError

logger = structlog.get_logger()


@dataclass(frozen=True)
class PlanTemplate:
    """CreateDBInstance parameters for one plan."""

    plan_id: str
    identifier_prefix: str
    parameters: Mapping[str, Any]

    def create_parameters(self) -> dict[str, Any]:
        """Return a deep copy of the parameters safe to mutate per request."""
        params = copy.deepcopy(dict(self.parameters))
        params["DBInstanceIdentifier"] = self.identifier_prefix
        return params


@dataclass(frozen=True)
class CatalogPlan:
    id: str
    name: str
    description: str = ""
    free: bool = True
    metadata: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CatalogService:
    id: str
    name: str
    description: str = ""
    bindable: bool = True
    tags: tuple[str, ...] = ()
    plans: tuple[CatalogPlan, ...] = ()
    metadata: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Catalog:
    """Services offered to the marketplace plus the plan specification table."""

    services: tuple[CatalogService, ...]
    plans: Mapping[str, PlanTemplate]

    def plan(self, plan_id: str) -> PlanTemplate:
        """Look up a plan specification, refusing unknown plans."""
        try:
            return self.plans[plan_id]
        except KeyError:
            raise UnknownPlanError(
                f"Plan '{plan_id}' has no specification",
                {"plan_id": plan_id},
            ) from None

    def check_consistency(self) -> None:
        """Raise CatalogError if a catalog plan is missing a specification."""
        for service in self.services:
            for plan in service.plans:
                if plan.id not in self.plans:
                    raise CatalogError(
                        f"plan '{plan.name}' of service '{service.name}' is missing a specification",
                        {"plan_id": plan.id, "service_id": service.id},
                    )

    def to_broker_catalog(self) -> dict[str, Any]:
        """Render the catalog in the marketplace's /v2/catalog shape."""
        return {
            "services": [
                {
                    "id": service.id,
                    "name": service.name,
                    "description": service.description,
                    "bindable": service.bindable,
                    "tags": list(service.tags),
                    "metadata": dict(service.metadata),
                    "plans": [
                        {
                            "id": plan.id,
                            "name": plan.name,
                            "description": plan.description,
                            "free": plan.free,
                            "metadata": dict(plan.metadata),
                        }
                        for plan in service.plans
                    ],
                }
                for service in self.services
            ]
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Catalog:
        services = tuple(_parse_service(raw) for raw in data.get("services") or [])
        plans: dict[str, PlanTemplate] = {}
        for plan_id, raw in (data.get("plans") or {}).items():
            params = dict(raw or {})
            prefix = params.pop("DBInstanceIdentifier", None)
            if not prefix:
                raise CatalogError(
                    f"plan specification '{plan_id}' has no DBInstanceIdentifier prefix",
                    {"plan_id": plan_id},
                )
            plans[str(plan_id)] = PlanTemplate(
                plan_id=str(plan_id),
                identifier_prefix=str(prefix),
                parameters=params,
            )
        return cls(services=services, plans=plans)


def _parse_service(raw: Mapping[str, Any]) -> CatalogService:
    try:
        return CatalogService(
            id=str(raw["id"]),
            name=str(raw["name"]),
            description=raw.get("description", ""),
            bindable=bool(raw.get("bindable", True)),
            tags=tuple(raw.get("tags") or ()),
            metadata=raw.get("metadata") or {},
            plans=tuple(
                CatalogPlan(
                    id=str(plan["id"]),
                    name=str(plan["name"]),
                    description=plan.get("description", ""),
                    free=bool(plan.get("free", True)),
                    metadata=plan.get("metadata") or {},
                )
                for plan in raw.get("plans") or []
            ),
        )
    except KeyError as exc:
        raise CatalogError(f"catalog entry is missing field {exc}", {"entry": dict(raw)}) from exc


def load_catalog(path: str | Path) -> Catalog:
    """Load the catalog YAML file."""
    path = Path(path)
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise CatalogError(f"cannot read catalog '{path}'", {"error": str(exc)}) from exc

    catalog = Catalog.from_dict(data)
    logger.debug(
        "loaded_catalog",
        path=str(path),
        services=len(catalog.services),
        plans=len(catalog.plans),
    )
    return catalog
