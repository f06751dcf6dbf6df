"""
Centralized error taxonomy for trackage.

Every error raised across a module boundary derives from
BaseApplicationException and carries an ErrorCode plus optional details.
"""
from abc import ABC
from typing import Optional, Dict, Any
from enum import Enum


class ErrorCode(Enum):
    """Standardized error codes"""
    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_STATUS = "INVALID_STATUS"
    PARSE_ERROR = "PARSE_ERROR"

    # Infrastructure errors
    DATABASE_ERROR = "DATABASE_ERROR"
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"

    # Authentication errors
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"


class BaseApplicationException(Exception, ABC):
    """Base exception for the application"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.VALIDATION_ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code.value
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the exception into a dict, used for structured logging"""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class TransportException(BaseApplicationException):
    """Network or HTTP failure talking to a courier. Fatal for one check only."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.EXTERNAL_SERVICE_ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, error_code, details)


class CredentialFetchException(TransportException):
    """The courier token endpoint refused or failed to issue a token"""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, ErrorCode.INVALID_CREDENTIALS, details)


class ParseException(BaseApplicationException):
    """A success response is missing a field the parser needs"""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, ErrorCode.PARSE_ERROR, details)


class InvalidStatusException(BaseApplicationException):
    """A status literal outside the canonical set"""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, ErrorCode.INVALID_STATUS, details)


class InfrastructureException(BaseApplicationException):
    """Storage errors"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.DATABASE_ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, error_code, details)


class ConfigurationException(BaseApplicationException):
    """Missing or invalid configuration"""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, details)
