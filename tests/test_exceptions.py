"""
Tests for custom exceptions and the message catalogue.
"""

from kidsfind.core.exceptions import (
    ConfigurationError,
    ConsentDeniedError,
    CooldownActiveError,
    KidsFindError,
    LocationUnavailableError,
    NotFoundError,
    SessionStateError,
    ValidationError,
)
from kidsfind.services.error_messages import NotificationTexts, ServiceErrorMessages


class TestExceptions:
    """Test custom exception classes."""

    def test_kidsfind_error(self) -> None:
        error = KidsFindError("Monitoring failed")
        assert str(error) == "[KidsFind] Monitoring failed"

    def test_kidsfind_error_with_component_and_code(self) -> None:
        error = KidsFindError("Test error", error_code="ERR001", component="battery")
        assert str(error) == "[ERR001] [battery] Test error"

    def test_kidsfind_error_to_dict(self) -> None:
        error = KidsFindError(
            "Test error", error_code="ERR001", component="sos", details={"a": 1}
        )
        data = error.to_dict()

        assert data["error_type"] == "KidsFindError"
        assert data["message"] == "Test error"
        assert data["error_code"] == "ERR001"
        assert data["component"] == "sos"
        assert data["details"] == {"a": 1}

    def test_configuration_error_default_code(self) -> None:
        assert ConfigurationError("bad").error_code == "CONFIGURATION_ERROR"

    def test_validation_error_details(self) -> None:
        error = ValidationError("duration", -1, "must be positive")
        assert error.error_code == "VALIDATION_ERROR"
        assert error.details == {
            "field": "duration",
            "value": "-1",
            "reason": "must be positive",
        }
        assert "duration" in error.message

    def test_not_found_error(self) -> None:
        error = NotFoundError("contact", "c1")
        assert error.error_code == "NOT_FOUND"
        assert error.details["resource_id"] == "c1"

    def test_session_state_error(self) -> None:
        error = SessionStateError("s1", "completed", "active")
        assert error.error_code == "INVALID_SESSION_STATE"
        assert error.details["current_status"] == "completed"

    def test_consent_denied_timeout_flag(self) -> None:
        assert ConsentDeniedError("child", timed_out=True).details["timed_out"] is True
        assert "denied" in ConsentDeniedError("child").message

    def test_cooldown_reports_whole_seconds(self) -> None:
        error = CooldownActiveError("child", 42.7)
        assert "42s remaining" in error.message
        assert error.error_code == "COOLDOWN_ACTIVE"

    def test_all_domain_errors_are_kidsfind_errors(self) -> None:
        assert isinstance(LocationUnavailableError("child"), KidsFindError)


class TestServiceErrorMessages:
    """Test the error code catalogue."""

    def test_message_for_known_code(self) -> None:
        assert ServiceErrorMessages.for_code("PREMIUM_REQUIRED") == (
            "Fonctionnalité premium requise"
        )

    def test_unknown_code_falls_back_to_server_error(self) -> None:
        assert ServiceErrorMessages.for_code("NOPE") == ServiceErrorMessages.SERVER_ERROR
        assert ServiceErrorMessages.for_code("HTTP_STATUS") == (
            ServiceErrorMessages.SERVER_ERROR
        )

    def test_http_status_mapping(self) -> None:
        assert ServiceErrorMessages.status_for("VALIDATION_ERROR") == 400
        assert ServiceErrorMessages.status_for("SESSION_ALREADY_ACTIVE") == 409
        assert ServiceErrorMessages.status_for("COOLDOWN_ACTIVE") == 429
        assert ServiceErrorMessages.status_for("LOCATION_UNAVAILABLE") == 503
        assert ServiceErrorMessages.status_for("UNKNOWN") == 500

    def test_every_status_code_has_a_message(self) -> None:
        for code in ServiceErrorMessages.HTTP_STATUS:
            assert isinstance(getattr(ServiceErrorMessages, code), str)


class TestNotificationTexts:
    def test_render_fills_template(self) -> None:
        text = NotificationTexts.render("battery_low", level=15)
        assert text == {"title": "Batterie faible", "body": "Batterie à 15%"}

    def test_render_unknown_kind(self) -> None:
        assert NotificationTexts.render("custom") == {"title": "custom", "body": ""}
