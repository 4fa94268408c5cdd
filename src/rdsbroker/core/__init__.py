"""Core error types shared by the broker, API and CLI."""

from rdsbroker.core.errors import (
    BrokerError,
    CatalogError,
    ExitCode,
    IdentityLookupError,
    InstanceGoneError,
    InstanceNotReadyError,
    PageFetchError,
    ProviderCreateError,
    ProviderDeleteError,
    TagFetchError,
    UnknownPlanError,
    main_with_error_handling,
)

__all__ = [
    "BrokerError",
    "CatalogError",
    "ExitCode",
    "IdentityLookupError",
    "InstanceGoneError",
    "InstanceNotReadyError",
    "PageFetchError",
    "ProviderCreateError",
    "ProviderDeleteError",
    "TagFetchError",
    "UnknownPlanError",
    "main_with_error_handling",
]
