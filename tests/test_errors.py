"""Tests for core/errors.py."""

from rdsbroker.core.errors import (
    CatalogError,
    ExitCode,
    InstanceGoneError,
    InstanceNotReadyError,
    PageFetchError,
    ProviderCreateError,
    UnknownPlanError,
    main_with_error_handling,
)


class TestErrorClasses:
    def test_provider_errors_share_exit_code(self):
        assert PageFetchError("x").exit_code == ExitCode.PROVIDER_ERROR
        assert ProviderCreateError("x").http_status == 502

    def test_request_errors(self):
        assert UnknownPlanError("x").http_status == 400
        assert InstanceGoneError("x").http_status == 410

    def test_not_ready_carries_status(self):
        error = InstanceNotReadyError("not ready", status="creating")
        assert error.status == "creating"
        assert error.details == {"status": "creating"}


class TestMainWithErrorHandling:
    def test_success(self):
        @main_with_error_handling()
        def command() -> int:
            return ExitCode.SUCCESS

        assert command() == ExitCode.SUCCESS

    def test_broker_error_exit_code(self):
        @main_with_error_handling()
        def command() -> int:
            raise CatalogError("bad catalog")

        assert command() == ExitCode.CONFIG_ERROR

    def test_unexpected_error(self):
        @main_with_error_handling(log_errors=False)
        def command() -> int:
            raise RuntimeError("boom")

        assert command() == ExitCode.UNKNOWN_ERROR

    def test_keyboard_interrupt(self):
        @main_with_error_handling()
        def command() -> int:
            raise KeyboardInterrupt

        assert command() == 130
