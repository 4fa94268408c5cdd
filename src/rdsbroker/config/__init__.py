"""
Broker configuration.

- Pydantic-based settings (environment variables, .env files)
- YAML service catalog with the plan specification table
"""

from rdsbroker.config.catalog import (
    Catalog,
    CatalogPlan,
    CatalogService,
    PlanTemplate,
    load_catalog,
)
from rdsbroker.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
    "Catalog",
    "CatalogPlan",
    "CatalogService",
    "PlanTemplate",
    "load_catalog",
]
