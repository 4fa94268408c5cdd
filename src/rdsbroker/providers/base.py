from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any, Protocol


class DatabaseProvider(Protocol):
    """Capabilities the broker needs from the managed database provider."""

    region: str

    async def get_caller_identity(self) -> dict[str, Any]:
        ...

    def iter_instance_pages(self) -> AsyncIterator[list[dict[str, Any]]]:
        ...

    async def list_tags(self, resource_name: str) -> list[dict[str, str]] | None:
        ...

    async def create_instance(self, params: dict[str, Any]) -> dict[str, Any]:
        ...

    async def delete_instance(self, params: dict[str, Any]) -> dict[str, Any]:
        ...
