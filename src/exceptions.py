"""
Standardized exception hierarchy for the progression engine
Provides rich context, consistent logging, and user-friendly error messages
"""

from datetime import datetime
from typing import Optional, Dict, Any
from uuid import uuid4
import json
import logging

logger = logging.getLogger(__name__)


class ProgressionError(Exception):
    """
    Base exception for all progression engine errors

    Provides:
    - Automatic timestamping
    - Request ID for tracing
    - User-friendly messages
    - Structured context
    - Automatic logging (at the class's log_level)

    Example:
        raise ProgressionError(
            message="Failed to apply reward",
            user_id="123456",
            operation="submit_activity",
            context={"activity_type": "quest"}
        )
    """

    log_level: int = logging.ERROR

    def __init__(
        self,
        message: str,
        user_id: Optional[str] = None,
        request_id: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        user_message: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.user_id = user_id
        self.request_id = request_id or str(uuid4())
        self.operation = operation
        self.context = context or {}
        self.cause = cause
        self.user_message = user_message or "An error occurred. Please try again."
        self.timestamp = datetime.utcnow()

        # Auto-log on creation
        self._log_error()

    def _log_error(self) -> None:
        """Log error with full context"""
        log_data = {
            "error_type": self.__class__.__name__,
            "error_message": self.message,  # Avoid conflict with logging's 'message' field
            "request_id": self.request_id,
            "user_id": self.user_id,
            "operation": self.operation,
            "error_context": self.context,  # Avoid conflict with logging's 'context'
            "timestamp": self.timestamp.isoformat()
        }

        if self.cause:
            log_data["cause"] = str(self.cause)
            logger.log(
                self.log_level,
                f"{self.__class__.__name__}: {self.message}",
                extra=log_data,
                exc_info=self.cause,
            )
        else:
            logger.log(self.log_level, f"{self.__class__.__name__}: {self.message}", extra=log_data)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for API responses"""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "user_message": self.user_message,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat()
        }


# ==========================================
# Validation Errors (Activity Payloads)
# ==========================================

class ValidationError(ProgressionError):
    """
    Raised when input fails validation

    Example:
        raise ValidationError(
            message="Minutes must be positive",
            field="minutes",
            value=-5,
            user_id="123456"
        )
    """

    log_level = logging.WARNING

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs
    ):
        self.field = field
        self.value = value
        kwargs.setdefault("user_message", f"Invalid {field}: {message}" if field else message)
        kwargs.setdefault("context", {"field": field, "value": value})
        super().__init__(message=message, **kwargs)


class InvalidActivityError(ValidationError):
    """Malformed or unknown activity payload, rejected before any state access"""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("user_message", "That activity could not be recorded.")
        super().__init__(message=message, **kwargs)


# ==========================================
# Activity Rejections
# ==========================================

class ActivityRejectedError(ProgressionError):
    """
    Base class for well-formed activities the rules refuse

    State is never mutated when one of these is raised.
    """

    log_level = logging.WARNING


class AlreadyCheckedInError(ActivityRejectedError):
    """Daily check-in retried on the same calendar day"""

    log_level = logging.INFO

    def __init__(
        self,
        message: str = "Already checked in today",
        checkin_date: Optional[Any] = None,
        **kwargs
    ):
        self.checkin_date = checkin_date
        super().__init__(
            message=message,
            user_message="You've already checked in today. Come back tomorrow!",
            context={"checkin_date": str(checkin_date) if checkin_date else None},
            **kwargs
        )


class StaleCompletionError(ActivityRejectedError):
    """Completion date is earlier than the last recorded completion"""

    def __init__(
        self,
        message: str,
        domain: Optional[str] = None,
        completion_date: Optional[Any] = None,
        last_completion_date: Optional[Any] = None,
        **kwargs
    ):
        self.domain = domain
        self.completion_date = completion_date
        self.last_completion_date = last_completion_date
        super().__init__(
            message=message,
            user_message="That completion is older than your latest one and was not recorded.",
            context={
                "domain": domain,
                "completion_date": str(completion_date) if completion_date else None,
                "last_completion_date": str(last_completion_date) if last_completion_date else None,
            },
            **kwargs
        )


# ==========================================
# Entitlement Errors
# ==========================================

class EntitlementError(ProgressionError):
    """Base class for entitlement unlock failures"""

    log_level = logging.WARNING

    def __init__(
        self,
        message: str,
        entitlement_id: Optional[str] = None,
        **kwargs
    ):
        self.entitlement_id = entitlement_id
        kwargs.setdefault("context", {"entitlement_id": entitlement_id})
        super().__init__(message=message, **kwargs)


class UnknownEntitlementError(EntitlementError):
    """Entitlement id is not in the catalog"""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message=message,
            user_message="That item doesn't exist.",
            **kwargs
        )


class EntitlementLockedError(EntitlementError):
    """Entitlement cannot be purchased (wrong unlock type or already owned)"""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message=message,
            user_message="That item can't be unlocked this way.",
            **kwargs
        )


class InsufficientCurrencyError(EntitlementError):
    """Not enough currency for a coin-gated entitlement"""

    def __init__(
        self,
        message: str,
        required: int = 0,
        available: int = 0,
        **kwargs
    ):
        self.required = required
        self.available = available
        super().__init__(
            message=message,
            user_message=f"You need {required} coins but only have {available}.",
            **kwargs
        )


# ==========================================
# Persistence Errors
# ==========================================

class PersistenceError(ProgressionError):
    """
    Base class for persistence collaborator failures
    """

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault(
            "user_message",
            "Your progress is saved locally but could not be synced yet.",
        )
        super().__init__(message=message, **kwargs)


class TransientPersistenceError(PersistenceError):
    """Temporary storage failure; safe to retry"""
    pass


class CorruptStateError(PersistenceError):
    """Stored progress could not be decoded"""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message=message,
            user_message="We couldn't read your saved progress.",
            **kwargs
        )


# ==========================================
# Configuration Errors
# ==========================================

class ConfigurationError(ProgressionError):
    """System configuration is invalid or missing"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs
    ):
        self.config_key = config_key
        super().__init__(
            message=message,
            user_message="The system is not properly configured. Please contact support.",
            context={"config_key": config_key},
            **kwargs
        )


# ==========================================
# Helper Functions
# ==========================================

def wrap_external_exception(
    error: Exception,
    operation: str,
    user_id: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> ProgressionError:
    """
    Wrap external exceptions (OSError, JSON and pydantic decode errors) into our hierarchy

    Args:
        error: Original exception
        operation: What operation was being performed
        user_id: User ID if applicable
        context: Additional context

    Returns:
        Appropriate ProgressionError subclass

    Example:
        try:
            path.write_text(payload)
        except OSError as e:
            raise wrap_external_exception(e, operation="save_progress", user_id="123456")
    """
    # Import here to avoid a hard dependency at module import time
    import pydantic

    if isinstance(error, ProgressionError):
        return error

    # Decode errors: the stored document is unusable, retrying won't help
    if isinstance(error, (json.JSONDecodeError, pydantic.ValidationError)):
        return CorruptStateError(
            message=f"Stored progress is corrupt: {str(error)}",
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )

    # Filesystem errors are usually transient (locks, full disk, network mounts)
    if isinstance(error, (OSError, TimeoutError)):
        return TransientPersistenceError(
            message=f"Storage operation failed: {str(error)}",
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )

    # Generic fallback
    return ProgressionError(
        message=f"{operation} failed: {str(error)}",
        user_id=user_id,
        operation=operation,
        context=context,
        cause=error
    )
