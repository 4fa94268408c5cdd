"""Open Service Broker v2 routes translated into broker events."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from rdsbroker.api.deps import dispatch_event, get_catalog, get_events, require_broker_auth
from rdsbroker.broker.events import EventBroker
from rdsbroker.config import Catalog

router = APIRouter(prefix="/v2", dependencies=[Depends(require_broker_auth)])


class ProvisionRequest(BaseModel):
    service_id: str
    plan_id: str
    organization_guid: str
    space_guid: str
    parameters: dict[str, Any] | None = None


class BindRequest(BaseModel):
    service_id: str
    plan_id: str
    app_guid: str | None = None


@router.get("/catalog")
async def get_catalog_route(catalog: Catalog = Depends(get_catalog)) -> dict[str, Any]:  # noqa: B008
    return catalog.to_broker_catalog()


@router.put("/service_instances/{instance_id}")
async def provision(
    instance_id: str,
    body: ProvisionRequest,
    events: EventBroker = Depends(get_events),  # noqa: B008
) -> JSONResponse:
    params = {"id": instance_id, **body.model_dump(exclude_none=True)}
    reply = await dispatch_event(events, "provision", params) or {}
    code = status.HTTP_200_OK if reply.get("exists") else status.HTTP_201_CREATED
    return JSONResponse(status_code=code, content={"dashboard_url": reply.get("dashboard_url")})


@router.delete("/service_instances/{instance_id}")
async def unprovision(
    instance_id: str,
    service_id: str | None = None,
    plan_id: str | None = None,
    events: EventBroker = Depends(get_events),  # noqa: B008
) -> dict[str, Any]:
    params = {"id": instance_id, "service_id": service_id, "plan_id": plan_id}
    await dispatch_event(events, "unprovision", params)
    return {}


@router.put(
    "/service_instances/{instance_id}/service_bindings/{binding_id}",
    status_code=status.HTTP_201_CREATED,
)
async def bind(
    instance_id: str,
    binding_id: str,
    body: BindRequest,
    events: EventBroker = Depends(get_events),  # noqa: B008
) -> dict[str, Any]:
    params = {"id": binding_id, "instance_id": instance_id, **body.model_dump(exclude_none=True)}
    return await dispatch_event(events, "bind", params) or {}


@router.delete("/service_instances/{instance_id}/service_bindings/{binding_id}")
async def unbind(
    instance_id: str,
    binding_id: str,
    events: EventBroker = Depends(get_events),  # noqa: B008
) -> dict[str, Any]:
    params = {"id": binding_id, "instance_id": instance_id}
    return await dispatch_event(events, "unbind", params) or {}
