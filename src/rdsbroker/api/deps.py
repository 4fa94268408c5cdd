from __future__ import annotations

import secrets

import structlog
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from rdsbroker.broker.events import BrokerRequest, EventBroker, Reply
from rdsbroker.config import Catalog, Settings

logger = structlog.get_logger()
security = HTTPBasic(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_events(request: Request) -> EventBroker:
    return request.app.state.events


def get_catalog(request: Request) -> Catalog:
    return request.app.state.catalog


async def require_broker_auth(
    credentials: HTTPBasicCredentials | None = Depends(security),
    settings: Settings = Depends(get_app_settings),
) -> str:
    """Check the marketplace's HTTP basic credentials."""
    if not settings.broker_username:
        logger.warning("auth_disabled", reason="No broker credentials configured")
        return "anonymous"

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authentication credentials",
            headers={"WWW-Authenticate": "Basic"},
        )

    username_ok = secrets.compare_digest(
        credentials.username.encode(), settings.broker_username.encode()
    )
    password_ok = secrets.compare_digest(
        credentials.password.encode(), (settings.broker_password or "").encode()
    )
    if not (username_ok and password_ok):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Basic"},
        )
    return credentials.username


async def dispatch_event(events: EventBroker, event: str, params: dict) -> Reply:
    """Dispatch a broker event and return the reply passed to its completion callback."""
    replies: list[Reply] = []
    await events.dispatch(event, BrokerRequest(params=params), replies.append)
    return replies[0]
