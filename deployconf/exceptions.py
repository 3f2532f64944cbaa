"""
Custom Exception Hierarchy for deployconf

Every failure raised while loading, validating or normalizing a deployment
configuration derives from DeployConfError so callers can report a single
descriptive error for the whole document.
"""

from typing import Any, Dict, Optional


class DeployConfError(Exception):
    """
    Base exception class for all deployconf errors.

    Provides structured error information including context, error codes,
    and optional recovery suggestions.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recovery_suggestion: Optional[str] = None,
    ) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error message
            error_code: Optional error code for programmatic handling
            context: Optional dictionary with error context
            cause: Optional underlying exception that caused this error
            recovery_suggestion: Optional suggestion for error recovery
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.cause = cause
        self.recovery_suggestion = recovery_suggestion

    def __str__(self) -> str:
        """Return a formatted error message with context."""
        result = self.message
        if self.error_code:
            result = f"[{self.error_code}] {result}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            result += f" (context: {context_str})"
        if self.cause:
            result += f" (caused by: {self.cause})"
        if self.recovery_suggestion:
            result += f" (suggestion: {self.recovery_suggestion})"
        return result

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None,
            "recovery_suggestion": self.recovery_suggestion,
        }

    def tag_resource(self, kind: str, name: str) -> "DeployConfError":
        """Attach the offending resource's kind and name to the context."""
        self.context.setdefault("resource_kind", kind)
        self.context.setdefault("resource_name", name)
        return self


class DecodeError(DeployConfError):
    """Raised when input is not well-formed or mismatches a typed schema."""

    def __init__(
        self, message: str, model: Optional[str] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context", {})
        if model:
            context["model"] = model
        kwargs["context"] = context
        kwargs.setdefault("error_code", "DECODE_FAILED")
        super().__init__(message, **kwargs)


class ValidationError(DeployConfError):
    """Raised when a resource fails a required-field or forbidden-config check."""

    def __init__(
        self,
        message: str,
        kind: Optional[str] = None,
        name: Optional[str] = None,
        rule: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if kind:
            context["resource_kind"] = kind
        if name:
            context["resource_name"] = name
        if rule:
            context["rule"] = rule
        kwargs["context"] = context
        kwargs.setdefault("error_code", "VALIDATION_FAILED")
        super().__init__(message, **kwargs)
        self.kind = kind
        self.name = name
        self.rule = rule


class PolicyApplicationError(DeployConfError):
    """Raised when a policy step cannot complete for a resource."""

    def __init__(
        self,
        message: str,
        kind: Optional[str] = None,
        name: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if kind:
            context["resource_kind"] = kind
        if name:
            context["resource_name"] = name
        kwargs["context"] = context
        kwargs.setdefault("error_code", "POLICY_APPLICATION_FAILED")
        super().__init__(message, **kwargs)


class ConfigError(DeployConfError):
    """Settings loading or validation error."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "CONFIG_ERROR")
        kwargs.setdefault(
            "recovery_suggestion", "Check the deployconf settings file and environment"
        )
        super().__init__(message, **kwargs)
