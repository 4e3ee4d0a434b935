"""
Core package
"""

from .exceptions import (
    CopilotException,
    AuthenticationException,
    PermissionDeniedException,
    ValidationException,
    ResourceNotFoundException,
    StorageException,
    MailException,
    AnalysisServiceException,
    ConfigurationException,
)

from .logging import (
    setup_logging,
    get_logger,
    api_logger,
    service_logger,
    db_logger,
    storage_logger,
    mail_logger,
    live_logger,
)

from .middleware import (
    RequestLoggingMiddleware,
    ExceptionHandlingMiddleware,
    register_exception_handlers,
)

__all__ = [
    # Exceptions
    "CopilotException",
    "AuthenticationException",
    "PermissionDeniedException",
    "ValidationException",
    "ResourceNotFoundException",
    "StorageException",
    "MailException",
    "AnalysisServiceException",
    "ConfigurationException",
    # Logging
    "setup_logging",
    "get_logger",
    "api_logger",
    "service_logger",
    "db_logger",
    "storage_logger",
    "mail_logger",
    "live_logger",
    # Middleware
    "RequestLoggingMiddleware",
    "ExceptionHandlingMiddleware",
    "register_exception_handlers",
]
