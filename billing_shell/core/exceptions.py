"""
Custom Exceptions.

Application-specific exception classes for consistent error handling.
Every error the shell reports to the user travels as an ApplicationError,
whether it came from a builtin, the argument resolver or the billing API.
"""


class ApplicationError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, code: str = "SYS_INTERNAL_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


class ArgumentRequiredError(ApplicationError):
    """Raised when a shell command is missing a required argument."""

    def __init__(self, argument: str, command: str | None = None) -> None:
        self.argument = argument
        self.command = command
        message = f"Argument required: {argument}"
        if command:
            message = f"{command}: {message}"
        super().__init__(message, code="VAL_ARGUMENT_REQUIRED")


class UnknownCommandError(ApplicationError):
    """Raised when a command name is neither a builtin nor a client command."""

    def __init__(self, command: str) -> None:
        self.command = command
        super().__init__(f"Unknown command: {command}", code="CMD_UNKNOWN")


class ConfigurationError(ApplicationError):
    """Raised when a config file cannot be loaded."""

    def __init__(self, message: str = "Invalid configuration") -> None:
        super().__init__(message, code="SYS_CONFIGURATION_ERROR")


class CredentialsError(ApplicationError):
    """Raised when the subdomain or API key is missing."""

    def __init__(self, message: str = "Subdomain and API key are required") -> None:
        super().__init__(message, code="AUTH_CREDENTIALS_MISSING")


class NotFoundError(ApplicationError):
    """Raised when a resource cannot be found."""

    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(message, code="RES_NOT_FOUND")


class ValidationError(ApplicationError):
    """Raised when validation fails."""

    def __init__(self, message: str = "Validation failed", details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message, code="VAL_VALIDATION_ERROR")


class AuthenticationError(ApplicationError):
    """Raised when authentication fails."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message, code="AUTH_UNAUTHORIZED")


class ExternalServiceError(ApplicationError):
    """Raised when the billing API returns an unexpected error."""

    def __init__(self, message: str = "External service error", status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message, code="SYS_EXTERNAL_SERVICE_ERROR")
