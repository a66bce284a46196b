"""
Exception hierarchy for the KidsFind monitoring core.

Provides structured error handling with specific error types for the
monitoring services and their failure modes.
"""

from typing import Any, Dict, Optional


class KidsFindError(Exception):
    """Base exception for all KidsFind monitoring errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        component: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.component = component

    def __str__(self) -> str:
        """String representation of the error."""
        base_msg = f"[{self.component or 'KidsFind'}] {self.message}"
        if self.error_code:
            base_msg = f"[{self.error_code}] {base_msg}"
        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "component": self.component,
            "details": self.details,
        }


class ConfigurationError(KidsFindError):
    """Exception raised when configuration is invalid or missing."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "CONFIGURATION_ERROR")
        super().__init__(message, **kwargs)


class ValidationError(KidsFindError):
    """Exception raised when input validation fails."""

    def __init__(self, field: str, value: Any, reason: str, **kwargs: Any) -> None:
        super().__init__(
            f"Validation failed for field '{field}': {reason}",
            error_code="VALIDATION_ERROR",
            details={
                "field": field,
                "value": str(value),
                "reason": reason,
            },
            **kwargs,
        )


class NotFoundError(KidsFindError):
    """Exception raised when a record does not exist."""

    def __init__(self, resource: str, resource_id: str, **kwargs: Any) -> None:
        super().__init__(
            f"{resource} not found: {resource_id}",
            error_code="NOT_FOUND",
            details={"resource": resource, "resource_id": resource_id},
            **kwargs,
        )


class PermissionDeniedError(KidsFindError):
    """Exception raised when a user acts on a record they do not own."""

    def __init__(self, user_id: str, action: str, **kwargs: Any) -> None:
        super().__init__(
            f"User {user_id} is not allowed to {action}",
            error_code="FORBIDDEN",
            details={"user_id": user_id, "action": action},
            **kwargs,
        )


class SessionStateError(KidsFindError):
    """Exception raised on a lifecycle transition that is not allowed."""

    def __init__(
        self, session_id: str, current: str, requested: str, **kwargs: Any
    ) -> None:
        super().__init__(
            f"Session {session_id} cannot move from {current} to {requested}",
            error_code="INVALID_SESSION_STATE",
            details={
                "session_id": session_id,
                "current_status": current,
                "requested_status": requested,
            },
            **kwargs,
        )


class SessionConflictError(KidsFindError):
    """Exception raised when a subject already has an active session."""

    def __init__(self, subject_id: str, session_id: str, **kwargs: Any) -> None:
        super().__init__(
            f"Subject {subject_id} already has an active session {session_id}",
            error_code="SESSION_ALREADY_ACTIVE",
            details={"subject_id": subject_id, "session_id": session_id},
            **kwargs,
        )


class PremiumRequiredError(KidsFindError):
    """Exception raised when a premium-only feature is used without premium."""

    def __init__(self, parent_id: str, feature: str, **kwargs: Any) -> None:
        super().__init__(
            f"{feature} requires premium subscription",
            error_code="PREMIUM_REQUIRED",
            details={"parent_id": parent_id, "feature": feature},
            **kwargs,
        )


class DailyLimitExceededError(KidsFindError):
    """Exception raised when the daily session allowance is used up."""

    def __init__(self, used: int, limit: int, **kwargs: Any) -> None:
        super().__init__(
            f"Daily limit exceeded: {used}/{limit} sessions",
            error_code="DAILY_LIMIT_EXCEEDED",
            details={"used": used, "limit": limit},
            **kwargs,
        )


class CooldownActiveError(KidsFindError):
    """Exception raised when a new session is requested during cooldown."""

    def __init__(self, subject_id: str, remaining_seconds: float, **kwargs: Any) -> None:
        super().__init__(
            f"Cooldown period still active for {subject_id}: "
            f"{int(remaining_seconds)}s remaining",
            error_code="COOLDOWN_ACTIVE",
            details={
                "subject_id": subject_id,
                "remaining_seconds": remaining_seconds,
            },
            **kwargs,
        )


class ConsentDeniedError(KidsFindError):
    """Exception raised when the child refuses or ignores a consent request."""

    def __init__(self, subject_id: str, timed_out: bool = False, **kwargs: Any) -> None:
        reason = "timed out" if timed_out else "denied"
        super().__init__(
            f"Child consent required but {reason} for {subject_id}",
            error_code="CONSENT_DENIED",
            details={"subject_id": subject_id, "timed_out": timed_out},
            **kwargs,
        )


class RecordingError(KidsFindError):
    """Exception raised when audio capture cannot start or stop."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "RECORDING_FAILED")
        super().__init__(message, **kwargs)


class PlaybackError(KidsFindError):
    """Exception raised when the child device cannot play a remote sound."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "PLAYBACK_FAILED")
        super().__init__(message, **kwargs)


class LocationUnavailableError(KidsFindError):
    """Exception raised when no position can be obtained for a child."""

    def __init__(self, subject_id: str, **kwargs: Any) -> None:
        super().__init__(
            f"Unable to get current location for {subject_id}",
            error_code="LOCATION_UNAVAILABLE",
            details={"subject_id": subject_id},
            **kwargs,
        )
