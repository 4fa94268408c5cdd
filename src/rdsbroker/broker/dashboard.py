from __future__ import annotations

DASHBOARD_URL_TEMPLATE = (
    "https://{region}.console.aws.amazon.com/rds/home?region={region}#dbinstance:id={identifier}"
)


def dashboard_url(region: str, identifier: str) -> str:
    """RDS console URL for a DB instance."""
    return DASHBOARD_URL_TEMPLATE.format(region=region, identifier=identifier)
