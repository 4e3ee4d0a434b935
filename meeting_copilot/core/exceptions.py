"""
Application exceptions
"""

from fastapi import status


class CopilotException(Exception):
    """Base class for errors raised by Meeting Copilot services."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, code: str = "GENERAL_ERROR"):
        self.message = message
        self.code = code
        super().__init__(self.message)


class AuthenticationException(CopilotException):
    """Caller has no valid session"""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message, "AUTHENTICATION_FAILED")


class PermissionDeniedException(CopilotException):
    """Caller lacks admin or ownership rights"""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Access denied"):
        super().__init__(message, "PERMISSION_DENIED")


class ValidationException(CopilotException):
    """Missing or malformed request fields"""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "Invalid request"):
        super().__init__(message, "VALIDATION_ERROR")


class ResourceNotFoundException(CopilotException):
    """Referenced row does not exist"""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} not found", "RESOURCE_NOT_FOUND")


class StorageException(CopilotException):
    """Blob storage call failed"""

    def __init__(self, message: str = "Storage operation failed"):
        super().__init__(message, "STORAGE_ERROR")


class MailException(CopilotException):
    """Mail delivery failed"""

    def __init__(self, message: str = "Mail delivery failed"):
        super().__init__(message, "MAIL_ERROR")


class AnalysisServiceException(CopilotException):
    """External transcript analysis service failed"""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, message: str = "Analysis service unavailable"):
        super().__init__(message, "ANALYSIS_SERVICE_ERROR")


class ConfigurationException(CopilotException):
    """A required setting is missing"""

    def __init__(self, message: str = "Configuration error"):
        super().__init__(message, "CONFIGURATION_ERROR")
