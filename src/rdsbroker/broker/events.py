"""
Broker event dispatch.

The marketplace protocol layer turns each request into one of four named
events and hands it a completion callback. A handler's reply is delivered
through that callback exactly once on success; on failure the error
propagates to the protocol layer and the callback is never invoked.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

import structlog

from rdsbroker.broker.service import RDSServiceBroker
from rdsbroker.logging import bind_request_context

logger = structlog.get_logger()

EVENTS = ("provision", "unprovision", "bind", "unbind")


@dataclass(frozen=True)
class BrokerRequest:
    params: Mapping[str, Any] = field(default_factory=dict)


Reply = dict[str, Any] | None
Handler = Callable[[BrokerRequest], Awaitable[Reply]]
Next = Callable[[Reply], Any]


class EventBroker:
    def __init__(self) -> None:
        self._handlers: dict[str, Handler] = {}

    def on(self, event: str, handler: Handler | None = None) -> Any:
        """Register the handler for an event; usable as a decorator."""
        if event not in EVENTS:
            raise ValueError(f"Unsupported broker event: {event}")

        def register(func: Handler) -> Handler:
            self._handlers[event] = func
            return func

        if handler is not None:
            return register(handler)
        return register

    async def dispatch(self, event: str, request: BrokerRequest, next_: Next) -> None:
        handler = self._handlers.get(event)
        if handler is None:
            raise LookupError(f"No handler registered for event: {event}")

        bind_request_context(
            event=event,
            marketplace_instance_id=request.params.get("instance_id") or request.params.get("id"),
        )
        logger.info("broker_event_received")
        reply = await handler(request)
        result = next_(reply)
        if inspect.isawaitable(result):
            await result


def register_rds_handlers(events: EventBroker, broker: RDSServiceBroker) -> EventBroker:
    """Wire the four marketplace events to the RDS broker."""

    @events.on("provision")
    async def provision(request: BrokerRequest) -> Reply:
        params = request.params
        result = await broker.provision(
            plan_id=params["plan_id"],
            service_id=params["service_id"],
            organization_id=params["organization_guid"],
            space_id=params["space_guid"],
            marketplace_instance_id=params["id"],
        )
        return result.to_reply()

    @events.on("unprovision")
    async def unprovision(request: BrokerRequest) -> Reply:
        await broker.unprovision(request.params["id"])
        return None

    @events.on("bind")
    async def bind(request: BrokerRequest) -> Reply:
        credentials = await broker.bind(request.params["instance_id"])
        return credentials.to_reply()

    @events.on("unbind")
    async def unbind(request: BrokerRequest) -> Reply:
        return await broker.unbind(request.params.get("instance_id"))

    return events
