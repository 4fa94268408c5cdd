"""
Unified error handling for the RDS broker.

Every failure the broker surfaces is a BrokerError subclass. Each class carries
the exit code used by CLI commands and the HTTP status used by the API layer.

Exit Codes:
- 0: Success
- 10: Configuration error (catalog, settings)
- 11: Provider error (AWS call failed)
- 12: Request error (unknown plan, instance gone or not ready)
- 127: Unknown/internal error
"""

from __future__ import annotations

import functools
import sys
import traceback
from enum import IntEnum
from typing import Any, Callable, TypeVar

import structlog

logger = structlog.get_logger()


class ExitCode(IntEnum):
    """Standardized exit codes for CLI commands."""

    SUCCESS = 0
    CONFIG_ERROR = 10
    PROVIDER_ERROR = 11
    REQUEST_ERROR = 12
    UNKNOWN_ERROR = 127


class BrokerError(Exception):
    """Base exception for broker errors with exit code and HTTP status."""

    exit_code: ExitCode = ExitCode.UNKNOWN_ERROR
    http_status: int = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class CatalogError(BrokerError):
    """Raised when the service catalog or plan table is inconsistent."""

    exit_code = ExitCode.CONFIG_ERROR


class ProviderError(BrokerError):
    """Raised when an AWS call fails."""

    exit_code = ExitCode.PROVIDER_ERROR
    http_status = 502


class IdentityLookupError(ProviderError):
    """Caller identity could not be resolved; the discovery pass is aborted."""


class PageFetchError(ProviderError):
    """A page of the DB instance listing could not be fetched."""


class TagFetchError(ProviderError):
    """Tags of a DB instance could not be fetched."""


class ProviderCreateError(ProviderError):
    """CreateDBInstance failed."""


class ProviderDeleteError(ProviderError):
    """DeleteDBInstance failed."""


class UnknownPlanError(BrokerError):
    """The requested plan has no plan specification."""

    exit_code = ExitCode.REQUEST_ERROR
    http_status = 400


class InstanceGoneError(BrokerError):
    """No DB instance carries the requested marketplace instance id."""

    exit_code = ExitCode.REQUEST_ERROR
    http_status = 410


class InstanceNotReadyError(BrokerError):
    """The DB instance exists but has no endpoint yet."""

    exit_code = ExitCode.REQUEST_ERROR
    http_status = 422

    def __init__(self, message: str, status: str, details: dict[str, Any] | None = None):
        super().__init__(message, {"status": status, **(details or {})})
        self.status = status


F = TypeVar("F", bound=Callable[..., int])


def main_with_error_handling(
    *,
    show_traceback: bool = False,
    log_errors: bool = True,
) -> Callable[[F], F]:
    """
    Decorator for CLI entry points that converts exceptions to exit codes.

    Exit codes:
        - BrokerError subclasses: Uses the error's exit_code
        - KeyboardInterrupt: Returns 130 (standard for SIGINT)
        - Other exceptions: Returns 127 (unknown error)
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> int:
            try:
                return func(*args, **kwargs)
            except BrokerError as e:
                if log_errors:
                    logger.error(
                        "command_error",
                        error_type=type(e).__name__,
                        message=e.message,
                        exit_code=e.exit_code,
                        **e.details,
                    )
                if show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return e.exit_code
            except KeyboardInterrupt:
                if log_errors:
                    logger.info("command_interrupted")
                return 130
            except Exception as e:
                if log_errors:
                    logger.error(
                        "unexpected_error",
                        error_type=type(e).__name__,
                        message=str(e),
                        exit_code=ExitCode.UNKNOWN_ERROR,
                    )
                if show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return ExitCode.UNKNOWN_ERROR

        return wrapper  # type: ignore[return-value]

    return decorator
