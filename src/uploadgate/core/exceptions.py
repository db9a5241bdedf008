"""Custom exceptions for UploadGate."""


class UploadGateError(Exception):
    """Base exception for UploadGate."""
    pass


class UploadValidationError(UploadGateError):
    """Exception raised when a file or batch breaks the upload policy."""
    pass


class StorageError(UploadGateError):
    """Exception raised when storage operations fail."""
    pass


class ConfigurationError(UploadGateError):
    """Exception raised when required settings are missing at startup."""
    pass
