from __future__ import annotations

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from rdsbroker.core.errors import IdentityLookupError
from rdsbroker.providers.base import DatabaseProvider

logger = structlog.get_logger()

# arn:partition:service:region:account-id:resource
ARN_ACCOUNT_FIELD = 4


def account_id_from_arn(arn: str) -> str:
    """Extract the account id from a canonical ARN."""
    fields = arn.split(":")
    if len(fields) <= ARN_ACCOUNT_FIELD or not fields[ARN_ACCOUNT_FIELD]:
        raise IdentityLookupError("caller ARN has no account field", {"arn": arn})
    return fields[ARN_ACCOUNT_FIELD]


def rds_arn_prefix(region: str, account_id: str) -> str:
    return f"arn:aws:rds:{region}:{account_id}:db:"


class IdentityResolver:
    """Resolves the caller's account to address per-instance tag lookups."""

    def __init__(self, provider: DatabaseProvider) -> None:
        self._provider = provider

    async def account_id(self) -> str:
        try:
            identity = await self._provider.get_caller_identity()
        except (ClientError, BotoCoreError) as exc:
            logger.error("caller_identity_failed", error=str(exc))
            raise IdentityLookupError(
                "failed to resolve caller identity", {"error": str(exc)}
            ) from exc

        arn = identity.get("Arn")
        if not arn:
            raise IdentityLookupError("caller identity has no ARN")
        return account_id_from_arn(arn)

    async def arn_prefix(self) -> str:
        """ARN prefix for DB instances of the caller's account in the provider region."""
        return rds_arn_prefix(self._provider.region, await self.account_id())
