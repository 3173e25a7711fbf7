"""
Shared error handling for the rules engine.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    code: str
    message: str
    details: Dict[str, Any] = {}


class RulesEngineException(Exception):
    """Base exception for the rules engine."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            details=self.details
        )


class StepFunctionError(RulesEngineException):
    """A step function failed while classifying a payload."""

    def __init__(self, function: str, message: str = "Step function failed", details: Optional[Dict[str, Any]] = None):
        details = {"function": function, **(details or {})}
        super().__init__("STEP_FUNCTION_ERROR", f"{function}: {message}", details)
        self.function = function


class ResultFunctionError(RulesEngineException):
    """A result function failed while producing a result."""

    def __init__(self, function: str, message: str = "Result function failed", details: Optional[Dict[str, Any]] = None):
        details = {"function": function, **(details or {})}
        super().__init__("RESULT_FUNCTION_ERROR", f"{function}: {message}", details)
        self.function = function


class BuildError(RulesEngineException):
    """A tree could not be built from configuration."""

    def __init__(self, message: str = "Tree build failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("BUILD_ERROR", message, details)


class TreeValidationError(RulesEngineException):
    """A built tree is not well-formed."""

    def __init__(self, message: str = "Tree validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("TREE_VALIDATION_ERROR", message, details)


class ConfigFetchError(RulesEngineException):
    """Raw configuration could not be fetched from its source."""

    def __init__(self, config_id: str, message: str = "Configuration fetch failed", details: Optional[Dict[str, Any]] = None,
                 code: str = "CONFIG_FETCH_ERROR"):
        details = {"config_id": config_id, **(details or {})}
        super().__init__(code, f"{config_id}: {message}", details)
        self.config_id = config_id


class ConfigNotFoundError(ConfigFetchError):
    """The source has no configuration for the identifier."""

    def __init__(self, config_id: str, message: str = "Configuration not found", details: Optional[Dict[str, Any]] = None):
        super().__init__(config_id, message, details, code="CONFIG_NOT_FOUND")
